"""httpx transports that record and replay HTTP traffic.

Classes:
    :class:`EchoTransport` -- for blocking :class:`httpx.Client` instances.
    :class:`AsyncEchoTransport` -- for :class:`httpx.AsyncClient` instances.

Both wrap an inner transport that performs real network calls and share
cache stores through a :class:`~httpecho.cache.registry.CacheRegistry`.

Example::

    import httpx
    from httpecho.client import EchoTransport

    with httpx.Client(transport=EchoTransport()) as client:
        resp = client.get("https://example.com/")
"""

from httpecho.client.async_transport import AsyncEchoTransport
from httpecho.client.sync_transport import EchoTransport

__all__ = ["EchoTransport", "AsyncEchoTransport"]
