"""Init command -- write the project settings file.

Implements ``httpecho init``, which records where a project's tests replay
recordings from and write them to, so transports built without explicit
settings pick them up from ``./httpecho.json``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from httpecho.config import project_settings_path, save_project_settings
from httpecho.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INVALID_USAGE
from httpecho.models import DEFAULT_CACHE_NAME, EchoSettings
from httpecho.output import debug, error, info, success, warning


def init_command(
    lookup_path: Optional[Path] = typer.Option(
        None, "--lookup-path", "-l", help="Directory to replay recordings from."
    ),
    update_path: Optional[Path] = typer.Option(
        None, "--update-path", "-u", help="Directory to write new recordings to."
    ),
    cache_name: str = typer.Option(
        DEFAULT_CACHE_NAME, "--cache-name", help="Base name of the cache file."
    ),
) -> None:
    """Create or overwrite ``httpecho.json`` in the current directory.

    Paths are stored as given; relative paths are resolved against the
    directory holding the settings file when it is loaded.

    Example::

        httpecho init --lookup-path tests/recordings --update-path tests/recordings
    """
    if lookup_path is None and update_path is None:
        error("Pass --lookup-path, --update-path or both.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    try:
        settings = EchoSettings(
            lookup_path=lookup_path, update_path=update_path, cache_name=cache_name
        )
    except ValidationError as exc:
        error(f"Invalid settings: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    path = project_settings_path()
    if path.exists():
        info(f"{path.name} already exists and will be overwritten.")

    if update_path is not None and not (Path.cwd() / update_path).parent.is_dir():
        warning(f"The parent of {update_path} does not exist yet; recording will fail until it does.")

    try:
        save_project_settings(settings)
    except OSError as exc:
        error(f"Could not write {path}: {exc}")
        raise typer.Exit(code=EXIT_GENERIC_FAILURE) from None

    debug(f"Wrote {settings.model_dump(mode='json', by_alias=True, exclude_none=True)}")
    success(f"Wrote {path.name}.")
