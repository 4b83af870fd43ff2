"""Pydantic models shared across httpecho.

:class:`EchoBehaviors` tunes how a transport treats each request.
:class:`EchoSettings` says where recordings are read from and written to.
It is resolved by :mod:`httpecho.config` from keyword arguments,
environment variables and the project settings file.

Both models are frozen.  A transport keeps the instances it was built with
for its whole lifetime.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_CACHE_NAME = "HttpMessageCache"
CACHE_FILE_EXTENSION = ".vcr"


class EchoBehaviors(BaseModel):
    """Independent switches that specialise record/replay handling.

    The default (all switches off) looks every request up in the cache,
    forwards misses to the network and records what comes back.

    Example::

        EchoBehaviors(deny_network_calls=True)   # replay only, fail on a miss
    """

    model_config = ConfigDict(frozen=True)

    skip_cache_lookup: bool = Field(
        default=False, description="Treat every request like a cache miss"
    )
    deny_network_calls: bool = Field(
        default=False,
        description="Raise NoCacheEntryError instead of calling the network on a miss",
    )
    skip_recording_responses: bool = Field(
        default=False,
        description="Do not record network responses, even when an update path is set",
    )

    def denies_everything(self) -> bool:
        """Return ``True`` when no request can ever succeed under these behaviors."""
        return self.skip_cache_lookup and self.deny_network_calls


class EchoSettings(BaseModel):
    """Where recordings live.

    ``lookup_path`` is the directory cached responses are replayed from and
    ``update_path`` the directory new recordings are written to.  They are
    usually the same directory in a source checkout.  Leaving both unset
    turns the transport into a plain pass-through.

    Keys may be given in snake_case or camelCase (``lookupPath``), matching
    the project settings file.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    lookup_path: Optional[Path] = Field(
        default=None, description="Directory to replay recordings from"
    )
    update_path: Optional[Path] = Field(
        default=None, description="Directory to write new recordings to"
    )
    cache_name: str = Field(
        default=DEFAULT_CACHE_NAME,
        description="Base name of the cache file (the .vcr extension is implied)",
    )

    @field_validator("cache_name")
    @classmethod
    def _check_cache_name(cls, value: str) -> str:
        if value.endswith(CACHE_FILE_EXTENSION):
            value = value[: -len(CACHE_FILE_EXTENSION)]
        if not value or "/" in value or "\\" in value:
            raise ValueError("cache_name must be a plain file name")
        return value

    @property
    def cache_file_name(self) -> str:
        """File name of the cache, e.g. ``HttpMessageCache.vcr``."""
        return f"{self.cache_name}{CACHE_FILE_EXTENSION}"

    def cache_file(self, directory: Path) -> Path:
        """Return the cache file path inside *directory*."""
        return Path(directory) / self.cache_file_name
