"""Line-oriented serialisation of recorded HTTP exchanges.

A cache file is the :data:`FILE_HEADER` followed by records separated by a
blank line.  Each record is a request immediately followed by its response::

    GET https://example.com/
    Accept: */*
    <blank line>
    200 OK
    Content-Type: text/plain; charset=utf-8
    Content-Length: 9
    <blank line>
    Mock data

* Request line: ``<METHOD> <absolute-URL>``.
* Response line: ``<status-code> <reason-phrase>``.
* Header lines: ``<Name>: <value1>,<value2>``.  Name and value are split
  at the first colon; the value is trimmed.  Headers that are never split
  on commas (``Set-Cookie``, dates) get one line per value instead.
* A blank line ends the headers.  When the content headers carry a
  ``Content-Length`` that many raw bytes follow with no delimiter.

Lines are written with CRLF.  Both CRLF and bare LF are accepted on read,
since version control may have normalised the file.  Reading is byte by
byte up to the body so nothing past a boundary is ever consumed.

Every format violation raises :class:`~httpecho.exceptions.BadCacheFileError`.
End of stream is only legitimate exactly between two records.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import BinaryIO, Iterable, Iterator, Optional, TypeVar

import httpx

from httpecho.exceptions import BadCacheFileError
from httpecho.messages import (
    CONTENT_LENGTH,
    Exchange,
    HeaderFields,
    RecordedRequest,
    RecordedResponse,
    is_content_header,
    is_unsplit_header,
)

FILE_HEADER = b"httpecho cache v1\n\r\n"
"""Magic bytes opening every cache file.

The LF followed by a CRLF does not survive line-ending normalisation in
either direction, so a checkout that rewrote the file is detected here
rather than as a confusing parse error later on.
"""

CRLF = b"\r\n"
HEADER_ENCODING = "latin-1"
_BLANK_BYTES = (b"\r", b"\n")
_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

_Message = TypeVar("_Message", RecordedRequest, RecordedResponse)


# --- Writing ---


def _encode_line(text: str) -> bytes:
    if "\r" in text or "\n" in text:
        raise ValueError(f"Line breaks are not allowed in serialised headers: {text!r}")
    return text.encode(HEADER_ENCODING) + CRLF


def _write_headers(headers: HeaderFields, stream: BinaryIO) -> None:
    for name, values in headers:
        if is_unsplit_header(name):
            for value in values:
                stream.write(_encode_line(f"{name}: {value}"))
        else:
            stream.write(_encode_line(f"{name}: {','.join(values)}"))


def _write_content(
    content_headers: HeaderFields,
    content: Optional[bytes],
    stream: BinaryIO,
) -> None:
    declared = content_headers.get(CONTENT_LENGTH)
    if content is None:
        if declared is not None:
            raise ValueError("Content-Length is declared but the message has no content")
        return
    if declared != (str(len(content)),):
        raise ValueError(
            f"Content-Length {declared!r} does not match the {len(content)} content bytes"
        )
    stream.write(content)


def _prepare(message: _Message) -> _Message:
    # Entity headers without a body still need an explicit zero length.
    if message.content is None and len(message.content_headers):
        message = replace(message, content=b"")
    return message.with_content_length()


def encode_request(request: RecordedRequest, stream: BinaryIO) -> None:
    """Write *request* to *stream*.

    A missing ``Content-Length`` is computed from the buffered body before
    the headers are written.

    Raises:
        ValueError: If a header contains a line break or a declared
            ``Content-Length`` disagrees with the body.
    """
    request = _prepare(request)
    stream.write(_encode_line(f"{request.method} {request.url}"))
    _write_headers(request.headers, stream)
    _write_headers(request.content_headers, stream)
    stream.write(CRLF)
    _write_content(request.content_headers, request.content, stream)


def encode_response(response: RecordedResponse, stream: BinaryIO) -> None:
    """Write *response* to *stream*.  See :func:`encode_request`."""
    response = _prepare(response)
    stream.write(_encode_line(f"{response.status_code} {response.reason_phrase}"))
    _write_headers(response.headers, stream)
    _write_headers(response.content_headers, stream)
    stream.write(CRLF)
    _write_content(response.content_headers, response.content, stream)


def encode_exchange(exchange: Exchange, stream: BinaryIO) -> None:
    """Write one record: the request immediately followed by its response."""
    encode_request(exchange.request, stream)
    encode_response(exchange.response, stream)


def write_cache_file(exchanges: Iterable[Exchange], stream: BinaryIO) -> int:
    """Write a complete cache file and return the number of records written."""
    stream.write(FILE_HEADER)
    count = 0
    for exchange in exchanges:
        if count:
            stream.write(CRLF)
        encode_exchange(exchange, stream)
        count += 1
    return count


# --- Reading ---


def _unexpected_end() -> BadCacheFileError:
    return BadCacheFileError("Unexpected end of stream.")


def _read_line(stream: BinaryIO, first: bytes = b"") -> Optional[str]:
    """Read one line without its terminator.

    Returns ``None`` when the stream ended before a single byte of the line
    was read.
    """
    buffer = bytearray(first)
    while True:
        byte = stream.read(1)
        if not byte:
            if not buffer:
                return None
            raise _unexpected_end()
        if byte == b"\n":
            break
        buffer += byte
    if buffer.endswith(b"\r"):
        del buffer[-1]
    return buffer.decode(HEADER_ENCODING)


def _read_required_line(stream: BinaryIO, first: bytes = b"") -> str:
    line = _read_line(stream, first=first)
    if line is None:
        raise _unexpected_end()
    return line


def _read_exact(stream: BinaryIO, length: int) -> bytes:
    chunks = bytearray()
    while len(chunks) < length:
        chunk = stream.read(length - len(chunks))
        if not chunk:
            raise _unexpected_end()
        chunks += chunk
    return bytes(chunks)


def _read_headers(stream: BinaryIO) -> tuple[HeaderFields, HeaderFields]:
    message_pairs: list[tuple[str, str]] = []
    content_pairs: list[tuple[str, str]] = []
    while True:
        line = _read_required_line(stream)
        if not line:
            break
        name, separator, value = line.partition(":")
        if not separator:
            raise BadCacheFileError("Missing colon separator in header.")
        target = content_pairs if is_content_header(name) else message_pairs
        target.append((name, value.strip()))
    return HeaderFields.from_pairs(message_pairs), HeaderFields.from_pairs(content_pairs)


def _read_content(stream: BinaryIO, content_headers: HeaderFields) -> Optional[bytes]:
    declared = content_headers.get(CONTENT_LENGTH)
    if declared is None:
        if len(content_headers):
            raise BadCacheFileError("Missing Content-Length for message content.")
        return None
    text = ",".join(declared)
    if len(declared) != 1 or not (text.isascii() and text.isdigit()):
        raise BadCacheFileError(f"Failed to parse Content-Length {text!r}.")
    return _read_exact(stream, int(text))


def decode_request(stream: BinaryIO, first: bytes = b"") -> Optional[RecordedRequest]:
    """Read one request from *stream*.

    Args:
        stream: Binary stream positioned at a request line.
        first: Bytes of the request line already consumed by the caller.

    Returns:
        The request, or ``None`` if the stream ended before the request line.

    Raises:
        BadCacheFileError: On any format violation.
    """
    line = _read_line(stream, first=first)
    if line is None:
        return None
    return _parse_request(stream, line)


def _parse_request(stream: BinaryIO, line: str) -> RecordedRequest:
    if " " not in line:
        raise BadCacheFileError(f"Missing space in request line {line!r}.")
    parts = line.split(" ")
    if len(parts) != 2 or not _TOKEN.match(parts[0]):
        raise BadCacheFileError(f"Expected HTTP method and URL in request line {line!r}.")
    method, url = parts
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise BadCacheFileError(f"Failed to parse URL {url!r} in request.") from exc
    if not parsed.is_absolute_url:
        raise BadCacheFileError(f"Failed to parse URL {url!r} in request.")

    headers, content_headers = _read_headers(stream)
    content = _read_content(stream, content_headers)
    return RecordedRequest(method, url, headers, content_headers, content)


def decode_response(stream: BinaryIO) -> RecordedResponse:
    """Read one response from *stream*.

    Raises:
        BadCacheFileError: On any format violation, including an empty stream.
    """
    line = _read_required_line(stream)
    status, separator, reason = line.partition(" ")
    if not separator:
        raise BadCacheFileError(f"Missing space after status code in response line {line!r}.")
    if not (status.isascii() and status.isdigit()):
        raise BadCacheFileError(f"Failed to parse status code {status!r}.")

    headers, content_headers = _read_headers(stream)
    content = _read_content(stream, content_headers)
    return RecordedResponse(int(status), reason, headers, content_headers, content)


def read_exchanges(stream: BinaryIO) -> Iterator[Exchange]:
    """Yield records from *stream* until it ends cleanly between two records.

    Runs of CR/LF bytes between records are skipped.
    """
    while True:
        byte = stream.read(1)
        while byte in _BLANK_BYTES:
            byte = stream.read(1)
        if not byte:
            return
        request = _parse_request(stream, _read_required_line(stream, first=byte))
        response = decode_response(stream)
        yield Exchange(request, response)


def read_cache_file(stream: BinaryIO) -> list[Exchange]:
    """Read a complete cache file.

    Raises:
        BadCacheFileError: If the file header does not match
            :data:`FILE_HEADER`, a record is malformed or truncated, or the
            file holds no records at all.
    """
    header = bytearray()
    while len(header) < len(FILE_HEADER):
        chunk = stream.read(len(FILE_HEADER) - len(header))
        if not chunk:
            break
        header += chunk
    if bytes(header) != FILE_HEADER:
        raise BadCacheFileError(
            "Unrecognized cache file header. If the file is under version control, "
            "make sure line endings are not normalized for *.vcr files."
        )
    exchanges = list(read_exchanges(stream))
    if not exchanges:
        raise BadCacheFileError("No cached responses found.")
    return exchanges
