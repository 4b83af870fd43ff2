"""Cache keys derived from recorded requests.

Two requests share a :class:`Fingerprint` when their URLs, methods, message
headers and content headers are all equal (see
:class:`~httpecho.messages.HeaderFields` for how header blocks compare).
The request body is not part of the key.

The hash only covers the URL.  Requests to the same URL with different
headers land in the same bucket and equality tells them apart; recordings
rarely hold more than a handful of variants per URL.
"""

from __future__ import annotations

from dataclasses import dataclass

from httpecho.messages import HeaderFields, RecordedRequest


@dataclass(frozen=True)
class Fingerprint:
    """The lookup key for one recorded request."""

    url: str
    method: str
    headers: HeaderFields
    content_headers: HeaderFields

    def __hash__(self) -> int:
        return hash(self.url)


def fingerprint_of(request: RecordedRequest) -> Fingerprint:
    """Derive the cache key for *request*."""
    return Fingerprint(
        url=request.url,
        method=request.method,
        headers=request.headers,
        content_headers=request.content_headers,
    )
