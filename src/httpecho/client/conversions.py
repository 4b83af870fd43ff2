"""Conversions between live httpx messages and recorded values.

Bodies are captured as raw bytes.  For responses that means *before*
``Content-Encoding`` is undone, so the recorded ``Content-Length`` always
matches the recorded bytes and a replayed response decodes exactly like
the original one did.
"""

from __future__ import annotations

from typing import Optional

import httpx

from httpecho.messages import (
    CONTENT_LENGTH,
    HeaderFields,
    RecordedRequest,
    RecordedResponse,
    is_content_header,
)


def _split_headers(headers: httpx.Headers) -> tuple[HeaderFields, HeaderFields]:
    encoding = headers.encoding
    message_pairs: list[tuple[str, str]] = []
    content_pairs: list[tuple[str, str]] = []
    for raw_name, raw_value in headers.raw:
        name = raw_name.decode(encoding)
        target = content_pairs if is_content_header(name) else message_pairs
        target.append((name, raw_value.decode(encoding)))
    return HeaderFields.from_pairs(message_pairs), HeaderFields.from_pairs(content_pairs)


def _body(content_headers: HeaderFields, body: bytes) -> tuple[HeaderFields, Optional[bytes]]:
    if not body and not len(content_headers):
        return content_headers, None
    return content_headers.set(CONTENT_LENGTH, [str(len(body))]), body


def recorded_request(request: httpx.Request, body: bytes) -> RecordedRequest:
    """Build a :class:`RecordedRequest` from *request* and its fully read *body*."""
    headers, content_headers = _split_headers(request.headers)
    content_headers, content = _body(content_headers, body)
    return RecordedRequest(
        method=request.method.upper(),
        url=str(request.url),
        headers=headers,
        content_headers=content_headers,
        content=content,
    )


def recorded_response(response: httpx.Response, raw: bytes) -> RecordedResponse:
    """Build a :class:`RecordedResponse` from *response* and its undecoded body *raw*."""
    headers, content_headers = _split_headers(response.headers)
    content_headers, content = _body(content_headers, raw)
    return RecordedResponse(
        status_code=response.status_code,
        reason_phrase=response.reason_phrase,
        headers=headers,
        content_headers=content_headers,
        content=content,
    )


def to_httpx_response(recorded: RecordedResponse) -> httpx.Response:
    """Build a fresh :class:`httpx.Response` replaying *recorded*."""
    return httpx.Response(
        status_code=recorded.status_code,
        headers=recorded.headers.raw_items() + recorded.content_headers.raw_items(),
        content=recorded.content,
        extensions={"reason_phrase": recorded.reason_phrase.encode("latin-1")},
    )


def read_raw(response: httpx.Response) -> bytes:
    """Read the undecoded body of a live response and close it."""
    if response.is_stream_consumed:
        # Responses built from in-memory content are read on construction;
        # their ByteStream still holds the undecoded bytes.
        if isinstance(response.stream, httpx.ByteStream):
            return b"".join(response.stream)
        return response.content
    try:
        return b"".join(response.iter_raw())
    finally:
        response.close()


async def aread_raw(response: httpx.Response) -> bytes:
    """Asyncio counterpart of :func:`read_raw`."""
    if response.is_stream_consumed:
        if isinstance(response.stream, httpx.ByteStream):
            return b"".join(response.stream)
        return response.content
    try:
        return b"".join([chunk async for chunk in response.aiter_raw()])
    finally:
        await response.aclose()
