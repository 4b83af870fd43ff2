"""Blocking record/replay transport for :class:`httpx.Client`.

:class:`EchoTransport` wraps another :class:`httpx.BaseTransport` (the real
network by default).  For every request it:

1. Loads the shared cache once (later requests return immediately).
2. Replays a cached response on a hit, unless cache lookup is skipped.
3. Raises :class:`~httpecho.exceptions.NoCacheEntryError` on a miss when
   network calls are denied.
4. Otherwise forwards the request.  Errors from the inner transport
   propagate unchanged and leave the cache untouched.
5. Records the response and rewrites the cache file, unless recording is
   skipped or no update path is configured.  A failure to write the file
   fails the request even though the network call succeeded.
6. Returns the response.

See Also:
    :class:`~httpecho.client.async_transport.AsyncEchoTransport` for the
    equivalent asyncio implementation.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from httpecho.cache.fingerprint import fingerprint_of
from httpecho.cache.registry import CacheRegistry, get_registry
from httpecho.cache.store import CacheStore
from httpecho.client.conversions import (
    read_raw,
    recorded_request,
    recorded_response,
    to_httpx_response,
)
from httpecho.config import resolve_settings
from httpecho.exceptions import NoCacheEntryError
from httpecho.models import EchoBehaviors, EchoSettings

logger = logging.getLogger(__name__)


class EchoTransport(httpx.BaseTransport):
    """Record and replay HTTP traffic for blocking clients.

    Args:
        transport: Transport used for real network calls.  Defaults to
            :class:`httpx.HTTPTransport`.
        behaviors: Switches for lookup, network access and recording.
        settings: Lookup and update directories.  Resolved from the
            environment and ``./httpecho.json`` when omitted.
        registry: Registry the cache store is shared through.  Defaults to
            the process default registry.

    Example::

        transport = EchoTransport(settings=EchoSettings(
            lookup_path="tests/recordings", update_path="tests/recordings",
        ))
        with httpx.Client(transport=transport) as client:
            client.get("https://example.com/")
    """

    def __init__(
        self,
        transport: Optional[httpx.BaseTransport] = None,
        behaviors: Optional[EchoBehaviors] = None,
        settings: Optional[EchoSettings] = None,
        registry: Optional[CacheRegistry] = None,
    ) -> None:
        if settings is None:
            settings = resolve_settings()
        self._transport = transport if transport is not None else httpx.HTTPTransport()
        self.behaviors = behaviors if behaviors is not None else EchoBehaviors()
        self._settings = settings
        registry = registry if registry is not None else get_registry()
        self._store = registry.get(settings.lookup_path, settings.cache_file_name)

    @property
    def transport(self) -> httpx.BaseTransport:
        """The wrapped transport used for real network calls."""
        return self._transport

    @property
    def settings(self) -> EchoSettings:
        return self._settings

    @property
    def store(self) -> CacheStore:
        """The (possibly shared) cache store this transport reads and records into."""
        return self._store

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Replay, forward or deny *request* according to :attr:`behaviors`.

        Raises:
            BadCacheFileError: If the cache file cannot be parsed.
            NoCacheEntryError: On a miss while network calls are denied.
            ConfigError: If the update directory's parent does not exist.
        """
        self._store.ensure_populated()
        recorded = recorded_request(request, request.read())

        if not self.behaviors.skip_cache_lookup:
            cached = self._store.try_lookup(fingerprint_of(recorded))
            if cached is not None:
                logger.debug("Cache hit: %s %s", request.method, request.url)
                return to_httpx_response(cached)

        if self.behaviors.deny_network_calls:
            raise NoCacheEntryError(
                f"No cached response for {request.method} {request.url} "
                "and network calls are denied."
            )

        logger.debug("Forwarding to network: %s %s", request.method, request.url)
        response = self._transport.handle_request(request)
        received = recorded_response(response, read_raw(response))

        update_path = self._settings.update_path
        if not self.behaviors.skip_recording_responses and update_path is not None:
            self._store.add_or_update(recorded, received)
            self._store.persist(update_path)

        return to_httpx_response(received)

    def close(self) -> None:
        self._transport.close()
