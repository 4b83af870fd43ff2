"""Built-in CLI commands for httpecho.

* :mod:`~httpecho.commands.cache` -- ``inspect`` and ``verify`` cache files.
* :mod:`~httpecho.commands.init` -- write the project settings file.

Each module exports plain callback functions registered directly on the
root app.
"""
