"""Cache file commands -- examine and validate recorded ``.vcr`` files.

``httpecho inspect`` lists the exchanges recorded in one cache file.
``httpecho verify`` loads any number of cache files with the same strict
rules the transports use when populating, which makes it a cheap CI check
for recordings whose line endings were rewritten by a checkout.
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError

from httpecho.cache.store import load_cache_file
from httpecho.exceptions import BadCacheFileError, InvalidUsageError
from httpecho.exit_codes import EXIT_BAD_CACHE_FILE
from httpecho.models import DEFAULT_CACHE_NAME, EchoSettings
from httpecho.output import error, get_output, info, success


def resolve_cache_file(path: Path, cache_name: str = DEFAULT_CACHE_NAME) -> Path:
    """Return *path* itself, or the cache file inside it when it is a directory.

    Raises:
        InvalidUsageError: If there is no cache file at the resolved path.
    """
    if path.is_dir():
        try:
            settings = EchoSettings(cache_name=cache_name)
        except ValidationError as exc:
            raise InvalidUsageError(f"Invalid cache name: {cache_name!r}") from exc
        path = settings.cache_file(path)
    if not path.is_file():
        raise InvalidUsageError(f"No cache file at {path}")
    return path


def inspect_command(
    path: Path = typer.Argument(..., help="Cache file, or a directory holding one."),
    cache_name: str = typer.Option(
        DEFAULT_CACHE_NAME, "--cache-name", help="Cache file base name inside a directory."
    ),
) -> None:
    """List the exchanges recorded in a cache file.

    Prints one row per exchange with the request method and URL, the
    response status, the number of request headers and the size of the
    response body.

    Example::

        httpecho inspect tests/recordings
        httpecho --json inspect tests/recordings/HttpMessageCache.vcr
    """
    try:
        cache_file = resolve_cache_file(path, cache_name)
        exchanges = load_cache_file(cache_file)
    except (BadCacheFileError, InvalidUsageError) as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    rows: list[list[str]] = []
    for exchange in exchanges:
        request, response = exchange.request, exchange.response
        rows.append([
            request.method,
            request.url,
            str(response.status_code),
            str(len(request.headers) + len(request.content_headers)),
            str(len(response.content or b"")),
        ])

    get_output().print_table(
        ["Method", "URL", "Status", "Headers", "Bytes"],
        rows,
        title=f"{cache_file} ({len(rows)})",
    )


def verify_command(
    paths: list[Path] = typer.Argument(..., help="Cache files or directories to check."),
    cache_name: str = typer.Option(
        DEFAULT_CACHE_NAME, "--cache-name", help="Cache file base name inside directories."
    ),
) -> None:
    """Check that cache files load cleanly.

    Every file is checked even after a failure.  Exits with status 3 if
    any file is corrupt.

    Example::

        httpecho verify tests/recordings other/recordings
    """
    failures = 0
    for path in paths:
        try:
            cache_file = resolve_cache_file(path, cache_name)
        except InvalidUsageError as exc:
            error(str(exc))
            raise typer.Exit(code=exc.exit_code) from None
        try:
            count = len(load_cache_file(cache_file))
        except BadCacheFileError as exc:
            error(str(exc))
            failures += 1
            continue
        info(f"OK  {cache_file} ({count} exchanges)")

    if failures:
        error(f"{failures} of {len(paths)} cache files failed to load.")
        raise typer.Exit(code=EXIT_BAD_CACHE_FILE)
    success(f"All {len(paths)} cache files are valid.")
