"""httpecho -- record and replay HTTP traffic for httpx clients.

Install an :class:`EchoTransport` (or :class:`AsyncEchoTransport`) on an
httpx client.  The first run forwards requests to the network and writes
every response into a ``HttpMessageCache.vcr`` file next to the tests; later
runs replay from that file without touching the network.

Typical use::

    import httpx
    from httpecho import EchoBehaviors, EchoSettings, EchoTransport

    settings = EchoSettings(lookup_path="tests/recordings", update_path="tests/recordings")
    with httpx.Client(transport=EchoTransport(settings=settings)) as client:
        client.get("https://example.com/")

    # CI: replay only, fail on anything that was not recorded
    EchoTransport(behaviors=EchoBehaviors(deny_network_calls=True))

Modules:
    client: The record/replay httpx transports.
    cache: Cache file codec, shared stores and their registry.
    models: Pydantic models for behaviors and settings.
    config: Settings resolution from arguments, environment and ``httpecho.json``.
    exceptions: Exception hierarchy with exit-code mapping.
    app: The ``httpecho`` command line tool for cache files.
"""

__version__ = "0.1.0"

from httpecho.cache.registry import CacheRegistry, get_registry, reset_registry, set_registry
from httpecho.client import AsyncEchoTransport, EchoTransport
from httpecho.exceptions import (
    BadCacheFileError,
    CacheNotPopulatedError,
    ConfigError,
    EchoError,
    InvalidUsageError,
    NoCacheEntryError,
)
from httpecho.models import EchoBehaviors, EchoSettings

__all__ = [
    "AsyncEchoTransport",
    "BadCacheFileError",
    "CacheNotPopulatedError",
    "CacheRegistry",
    "ConfigError",
    "EchoBehaviors",
    "EchoError",
    "EchoSettings",
    "EchoTransport",
    "InvalidUsageError",
    "NoCacheEntryError",
    "__version__",
    "get_registry",
    "reset_registry",
    "set_registry",
]
