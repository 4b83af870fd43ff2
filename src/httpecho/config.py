"""Settings resolution with a project file, environment variables and precedence.

:func:`resolve_settings` produces the :class:`~httpecho.models.EchoSettings`
a transport uses when none are passed to it explicitly.

Precedence (high to low):
    1. Keyword arguments to :func:`resolve_settings`
    2. Environment variables (``HTTPECHO_LOOKUP_PATH``,
       ``HTTPECHO_UPDATE_PATH``, ``HTTPECHO_CACHE_NAME``)
    3. Project settings file (``./httpecho.json``)
    4. Defaults (no lookup or update path: plain pass-through)

The project settings file is usually committed next to the tests::

    {
      "lookupPath": "tests/recordings",
      "updatePath": "tests/recordings"
    }

Relative paths in the file are resolved against the file's directory, so
tests find their recordings whatever the working directory of a nested
test run is.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from httpecho.exceptions import ConfigError
from httpecho.fileio import atomic_write
from httpecho.models import EchoSettings

PROJECT_SETTINGS_FILENAME = "httpecho.json"

_ENV_VARS = {
    "lookup_path": "HTTPECHO_LOOKUP_PATH",
    "update_path": "HTTPECHO_UPDATE_PATH",
    "cache_name": "HTTPECHO_CACHE_NAME",
}
_PATH_FIELDS = ("lookup_path", "update_path")


def _field_name(key: str) -> str:
    """Map a camelCase or snake_case settings key onto the model field name."""
    for name, field in EchoSettings.model_fields.items():
        if key in (name, field.alias):
            return name
    return key


def project_settings_path(directory: Optional[Path] = None) -> Path:
    """Return the location of the project settings file (``./httpecho.json`` by default)."""
    return (directory if directory is not None else Path.cwd()) / PROJECT_SETTINGS_FILENAME


def load_project_settings(directory: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load the project settings file.

    Args:
        directory: Directory holding the file.  Defaults to the current
            working directory.

    Returns:
        The settings keyed by field name, with relative paths made
        absolute against the file's directory; ``None`` if there is no
        file.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = project_settings_path(directory)
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Invalid project settings at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project settings at {path}: expected a JSON object")

    settings = {_field_name(key): value for key, value in data.items()}
    for name in _PATH_FIELDS:
        value = settings.get(name)
        if isinstance(value, str):
            settings[name] = str(path.parent / value)
    return settings


def save_project_settings(settings: EchoSettings, directory: Optional[Path] = None) -> Path:
    """Write *settings* to the project settings file atomically.

    Returns:
        The path written.
    """
    path = project_settings_path(directory)
    data = settings.model_dump(mode="json", by_alias=True, exclude_none=True)
    text = json.dumps(data, indent=2) + "\n"
    atomic_write(path, lambda stream: stream.write(text.encode("utf-8")))
    return path


def _env_settings() -> dict[str, str]:
    settings: dict[str, str] = {}
    for name, var in _ENV_VARS.items():
        value = os.environ.get(var, "")
        if value:
            settings[name] = value
    return settings


def resolve_settings(
    lookup_path: Optional[str | os.PathLike[str]] = None,
    update_path: Optional[str | os.PathLike[str]] = None,
    cache_name: Optional[str] = None,
    directory: Optional[Path] = None,
) -> EchoSettings:
    """Resolve settings with the full precedence chain.

    Args:
        lookup_path: Explicit lookup directory (highest precedence).
        update_path: Explicit update directory.
        cache_name: Explicit cache file base name.
        directory: Where to look for the project settings file.  Defaults
            to the current working directory.

    Raises:
        ConfigError: If the project settings file or the merged settings
            are invalid.
    """
    # 4 + 3. Defaults, then the project file
    merged: dict[str, Any] = dict(load_project_settings(directory) or {})
    # 2. Environment
    merged.update(_env_settings())
    # 1. Keyword arguments
    explicit = {"lookup_path": lookup_path, "update_path": update_path, "cache_name": cache_name}
    merged.update({name: value for name, value in explicit.items() if value is not None})

    try:
        return EchoSettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid httpecho settings: {exc}") from exc
