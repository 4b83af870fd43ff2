"""Record/replay cache for HTTP exchanges.

* :mod:`~httpecho.cache.codec` -- the byte-exact ``.vcr`` file format.
* :mod:`~httpecho.cache.fingerprint` -- cache keys derived from requests.
* :mod:`~httpecho.cache.store` -- :class:`CacheStore`, the shared snapshot
  with single-flight loading and debounced persistence.
* :mod:`~httpecho.cache.registry` -- :class:`CacheRegistry`, which makes
  stores for the same directory shared objects.
"""

from httpecho.cache.fingerprint import Fingerprint, fingerprint_of
from httpecho.cache.registry import (
    CacheRegistry,
    canonical_cache_path,
    get_registry,
    reset_registry,
    set_registry,
)
from httpecho.cache.store import CACHE_FILE_NAME, CacheState, CacheStore

__all__ = [
    "CACHE_FILE_NAME",
    "CacheRegistry",
    "CacheState",
    "CacheStore",
    "Fingerprint",
    "canonical_cache_path",
    "fingerprint_of",
    "get_registry",
    "reset_registry",
    "set_registry",
]
