"""Immutable HTTP message values recorded into and replayed from cache files.

A live :class:`httpx.Request` or :class:`httpx.Response` is converted into one
of these values once its body has been read in full (see
:mod:`httpecho.client.conversions`).  From then on the body bytes are fixed:
re-serialising a value never touches a live stream again.

Headers are held in two :class:`HeaderFields` blocks per message, the
*message* headers and the *content* (entity) headers, mirroring how HTTP
separates the two.  Which block a header lands in is decided by
:func:`is_content_header`.

Header values are kept as ordered sequences.  A raw header value such as
``"gzip, br"`` is split on commas and each element trimmed, the same way
:meth:`httpx.Headers.get_list` does with ``split_commas=True``, so a live
header and its decoded copy compare equal.  Headers whose single values
contain commas (cookies, dates, auth challenges) are never split; see
:data:`UNSPLIT_HEADER_NAMES`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator, Optional

CONTENT_HEADER_NAMES = frozenset({"allow", "expires", "last-modified"})
"""Lower-cased names of the entity headers besides the ``Content-*`` family."""

UNSPLIT_HEADER_NAMES = frozenset(
    {
        "date",
        "expires",
        "if-modified-since",
        "if-range",
        "if-unmodified-since",
        "last-modified",
        "proxy-authenticate",
        "retry-after",
        "set-cookie",
        "www-authenticate",
    }
)
"""Lower-cased names of headers whose raw values are kept whole.

Each raw line is one value.  Several values are written as repeated header
lines instead of being joined with commas.
"""

CONTENT_LENGTH = "Content-Length"


def is_content_header(name: str) -> bool:
    """Return ``True`` when *name* is an entity (content) header."""
    key = name.lower()
    return key.startswith("content-") or key in CONTENT_HEADER_NAMES


def is_unsplit_header(name: str) -> bool:
    """Return ``True`` when values of *name* must never be split on commas."""
    return name.lower() in UNSPLIT_HEADER_NAMES


def split_header_value(name: str, raw: str) -> list[str]:
    """Split a raw value of header *name* into its comma separated, trimmed elements."""
    if is_unsplit_header(name):
        return [raw.strip()]
    return [item.strip() for item in raw.split(",")]


@dataclass(frozen=True)
class HeaderFields:
    """An immutable, ordered block of headers.

    Each entry is ``(name, values)``.  Names are unique ignoring case and
    keep the casing of their first occurrence.

    Equality treats the names as a set (enumeration order is irrelevant,
    case is ignored) while the values of each name must match exactly and
    in order.  The hash is consistent with that definition.
    """

    fields: tuple[tuple[str, tuple[str, ...]], ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> HeaderFields:
        """Build a block from raw ``(name, value)`` pairs.

        Repeated names are merged in order of appearance.  Raw values are
        split on commas unless :func:`is_unsplit_header` says otherwise.
        """
        grouped: dict[str, tuple[str, list[str]]] = {}
        for name, raw in pairs:
            key = name.lower()
            if key not in grouped:
                grouped[key] = (name, [])
            grouped[key][1].extend(split_header_value(name, raw))
        return cls(tuple((name, tuple(values)) for name, values in grouped.values()))

    def __iter__(self) -> Iterator[tuple[str, tuple[str, ...]]]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def get(self, name: str) -> Optional[tuple[str, ...]]:
        """Return the values recorded for *name*, or ``None``."""
        key = name.lower()
        for existing, values in self.fields:
            if existing.lower() == key:
                return values
        return None

    def set(self, name: str, values: Iterable[str]) -> HeaderFields:
        """Return a copy with *name* set to *values*, keeping its position if present."""
        key = name.lower()
        new_values = tuple(values)
        updated: list[tuple[str, tuple[str, ...]]] = []
        found = False
        for existing, old_values in self.fields:
            if existing.lower() == key:
                updated.append((existing, new_values))
                found = True
            else:
                updated.append((existing, old_values))
        if not found:
            updated.append((name, new_values))
        return HeaderFields(tuple(updated))

    def remove(self, name: str) -> HeaderFields:
        """Return a copy without *name*."""
        key = name.lower()
        return HeaderFields(tuple(f for f in self.fields if f[0].lower() != key))

    def raw_items(self) -> list[tuple[str, str]]:
        """Return one ``(name, value)`` pair per element, suitable for :class:`httpx.Headers`."""
        return [(name, value) for name, values in self.fields for value in values]

    def _as_mapping(self) -> dict[str, tuple[str, ...]]:
        return {name.lower(): values for name, values in self.fields}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderFields):
            return NotImplemented
        return self._as_mapping() == other._as_mapping()

    def __hash__(self) -> int:
        return hash(frozenset(self._as_mapping().items()))


def _declared_length(content_headers: HeaderFields) -> Optional[tuple[str, ...]]:
    return content_headers.get(CONTENT_LENGTH)


def _with_length(content_headers: HeaderFields, content: Optional[bytes]) -> HeaderFields:
    if content is None or _declared_length(content_headers) is not None:
        return content_headers
    return content_headers.set(CONTENT_LENGTH, [str(len(content))])


@dataclass(frozen=True)
class RecordedRequest:
    """An HTTP request as recorded: method, absolute URL, headers and optional body."""

    method: str
    url: str
    headers: HeaderFields = field(default_factory=HeaderFields)
    content_headers: HeaderFields = field(default_factory=HeaderFields)
    content: Optional[bytes] = None

    def with_content_length(self) -> RecordedRequest:
        """Return a copy whose content headers declare the body length."""
        content_headers = _with_length(self.content_headers, self.content)
        if content_headers is self.content_headers:
            return self
        return replace(self, content_headers=content_headers)


@dataclass(frozen=True)
class RecordedResponse:
    """An HTTP response as recorded: status, reason, headers and optional body."""

    status_code: int
    reason_phrase: str = ""
    headers: HeaderFields = field(default_factory=HeaderFields)
    content_headers: HeaderFields = field(default_factory=HeaderFields)
    content: Optional[bytes] = None

    def with_content_length(self) -> RecordedResponse:
        """Return a copy whose content headers declare the body length."""
        content_headers = _with_length(self.content_headers, self.content)
        if content_headers is self.content_headers:
            return self
        return replace(self, content_headers=content_headers)


@dataclass(frozen=True)
class Exchange:
    """One recorded request together with the response it received."""

    request: RecordedRequest
    response: RecordedResponse
