"""Process-wide sharing of :class:`~httpecho.cache.store.CacheStore` instances.

Transports that replay from the same cache file must see each other's
recordings without re-reading the file, so they obtain their store from a
:class:`CacheRegistry`, keyed by the canonical path of the cache file.
Canonical paths are absolute, normalised and compared case-insensitively.

The module keeps one default registry (see :func:`get_registry`).  Tests
install a fresh one with :func:`set_registry` or pass ``registry=``
straight to the transports.
"""

from __future__ import annotations

import os
import threading
from typing import Optional

from httpecho.cache.store import CACHE_FILE_NAME, CacheStore


def canonical_cache_path(path: str | os.PathLike[str]) -> str:
    """Return the registry key for *path*."""
    return os.path.normcase(os.path.normpath(os.path.abspath(os.fspath(path)))).casefold()


class CacheRegistry:
    """Maps canonical cache file paths to shared stores.

    Example::

        registry = CacheRegistry()
        a = registry.get("tests/recordings")
        b = registry.get("TESTS/recordings/")
        assert a is b
    """

    def __init__(self) -> None:
        self._stores: dict[str, CacheStore] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._stores)

    def get(
        self,
        lookup_path: Optional[str | os.PathLike[str]],
        cache_file_name: str = CACHE_FILE_NAME,
    ) -> CacheStore:
        """Return the shared store for *lookup_path*, creating it on first use.

        Args:
            lookup_path: Directory holding the cache file.  ``None`` returns
                a new private, memory-only store that is never registered.
            cache_file_name: Cache file name inside *lookup_path*.

        Returns:
            The same :class:`CacheStore` for every call that resolves to the
            same cache file.
        """
        if lookup_path is None:
            return CacheStore(None, cache_file_name)

        key = canonical_cache_path(os.path.join(os.fspath(lookup_path), cache_file_name))
        with self._lock:
            store = self._stores.get(key)
            if store is None:
                store = CacheStore(lookup_path, cache_file_name)
                self._stores[key] = store
            return store

    def reset_all(self) -> None:
        """Reset every registered store so the next request re-reads its file."""
        with self._lock:
            stores = list(self._stores.values())
        for store in stores:
            store.reset()

    def clear(self) -> None:
        """Drop every registered store."""
        with self._lock:
            self._stores.clear()


# ------------------------------------------------------------------ #
# Default registry
# ------------------------------------------------------------------ #

_registry: Optional[CacheRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> CacheRegistry:
    """Return the process default :class:`CacheRegistry`, creating it lazily."""
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = CacheRegistry()
        return _registry


def set_registry(registry: CacheRegistry) -> None:
    """Install *registry* as the process default."""
    global _registry
    with _registry_lock:
        _registry = registry


def reset_registry() -> None:
    """Forget the process default registry.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _registry
    with _registry_lock:
        _registry = None
