"""Typer application and CLI entry point for httpecho.

The ``httpecho`` tool works on recorded cache files: ``inspect`` lists the
exchanges in one, ``verify`` checks that files still load, and ``init``
writes the project settings file the transports read by default.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.

See Also:
    :mod:`httpecho.config`: Settings resolution.
    :mod:`httpecho.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from httpecho import __version__
from httpecho.commands.cache import inspect_command, verify_command
from httpecho.commands.init import init_command
from httpecho.exceptions import EchoError
from httpecho.exit_codes import EXIT_GENERIC_FAILURE
from httpecho.output import OutputFormat, OutputManager, error, set_output

app = typer.Typer(
    name="httpecho",
    help="Inspect and verify recorded HTTP cache files.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("inspect")(inspect_command)
app.command("verify")(verify_command)
app.command("init")(init_command)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"httpecho {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, no_color: bool) -> None:
    """Route library log records to stderr through Rich when ``--verbose`` is set."""
    logger = logging.getLogger("httpecho")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    if not verbose:
        return
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_time=False,
        show_path=False,
    )
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Initialise output and logging from the global flags."""
    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose, no_color)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``httpecho`` console script.

    :class:`~httpecho.exceptions.EchoError` instances escaping a command
    exit with the error's ``exit_code``; anything else exits 1 with the
    error text.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except EchoError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
