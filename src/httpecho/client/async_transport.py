"""Asyncio record/replay transport -- mirrors :class:`~httpecho.client.sync_transport.EchoTransport`.

:class:`AsyncEchoTransport` wraps an :class:`httpx.AsyncBaseTransport` and
applies the same decision steps as the blocking transport.  Loading and
writing the cache file happen on worker threads, so the event loop is never
blocked on disk I/O.  Stores are shared with blocking transports pointed at
the same directory.

Cancelling a request while the inner transport is awaited aborts only that
request; nothing is recorded for it.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from httpecho.cache.fingerprint import fingerprint_of
from httpecho.cache.registry import CacheRegistry, get_registry
from httpecho.cache.store import CacheStore
from httpecho.client.conversions import (
    aread_raw,
    recorded_request,
    recorded_response,
    to_httpx_response,
)
from httpecho.config import resolve_settings
from httpecho.exceptions import NoCacheEntryError
from httpecho.models import EchoBehaviors, EchoSettings

logger = logging.getLogger(__name__)


class AsyncEchoTransport(httpx.AsyncBaseTransport):
    """Record and replay HTTP traffic for :class:`httpx.AsyncClient`.

    Args:
        transport: Transport used for real network calls.  Defaults to
            :class:`httpx.AsyncHTTPTransport`.
        behaviors: Switches for lookup, network access and recording.
        settings: Lookup and update directories.  Resolved from the
            environment and ``./httpecho.json`` when omitted.
        registry: Registry the cache store is shared through.

    Example::

        async with httpx.AsyncClient(transport=AsyncEchoTransport()) as client:
            response = await client.get("https://example.com/")
    """

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        behaviors: Optional[EchoBehaviors] = None,
        settings: Optional[EchoSettings] = None,
        registry: Optional[CacheRegistry] = None,
    ) -> None:
        if settings is None:
            settings = resolve_settings()
        self._transport = transport if transport is not None else httpx.AsyncHTTPTransport()
        self.behaviors = behaviors if behaviors is not None else EchoBehaviors()
        self._settings = settings
        registry = registry if registry is not None else get_registry()
        self._store = registry.get(settings.lookup_path, settings.cache_file_name)

    @property
    def transport(self) -> httpx.AsyncBaseTransport:
        """The wrapped transport used for real network calls."""
        return self._transport

    @property
    def settings(self) -> EchoSettings:
        return self._settings

    @property
    def store(self) -> CacheStore:
        return self._store

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Replay, forward or deny *request*.  See :meth:`EchoTransport.handle_request`."""
        await self._store.ensure_populated_async()
        recorded = recorded_request(request, await request.aread())

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
        response = await self._transport.handle_async_request(request)
        received = recorded_response(response, await aread_raw(response))

        update_path = self._settings.update_path
        if not self.behaviors.skip_recording_responses and update_path is not None:
            self._store.add_or_update(recorded, received)
            await self._store.persist_async(update_path)

        return to_httpx_response(received)

    async def aclose(self) -> None:
        await self._transport.aclose()
