"""Numeric process exit codes for the ``httpecho`` command line tool.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~httpecho.exceptions.EchoError` subclass.
CI scripts can inspect the exit code to tell a corrupt recording apart
from a missing one without parsing stderr.

Example::

    $ httpecho verify tests/recordings
    $ echo $?
    3   # EXIT_BAD_CACHE_FILE -- a recording could not be parsed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (also used for configuration problems)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_BAD_CACHE_FILE = 3
"""A cache file is corrupt, truncated or line-ending normalised."""

EXIT_NO_CACHE_ENTRY = 4
"""A request had no recording and network calls were denied."""
