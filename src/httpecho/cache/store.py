"""Shared in-memory cache of recorded exchanges with debounced persistence.

A :class:`CacheStore` owns one immutable *snapshot*, a mapping from
:class:`~httpecho.cache.fingerprint.Fingerprint` to
:class:`~httpecho.messages.Exchange`.  Every update builds a new mapping
and swaps the reference, so readers always see a complete generation and
never a half-updated one.

Lifecycle::

    UNPOPULATED --ensure_populated()--> POPULATING --> POPULATED
                                                   \\-> FAILED
    POPULATED / FAILED --reset()--> UNPOPULATED

Population is single-flight.  The first caller loads the cache file and
every concurrent caller waits for the same outcome.  A load failure is
sticky until :meth:`CacheStore.reset`.

Persistence always rewrites the whole file.  At most one write per update
path is queued at a time.  A queued write takes its snapshot only when it
starts, so later persist requests simply join it.  The queue slot is freed
*before* the snapshot is taken, so an update that lands mid-write queues a
fresh write instead of being lost.

Outcomes are :class:`concurrent.futures.Future` objects so blocking
callers and asyncio callers (on any event loop) can share them.

Concurrent processes writing the same file are not coordinated; the last
full rewrite wins.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import threading
from concurrent.futures import Future
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from httpecho.cache.codec import read_cache_file, write_cache_file
from httpecho.cache.fingerprint import Fingerprint, fingerprint_of
from httpecho.exceptions import BadCacheFileError, CacheNotPopulatedError, ConfigError
from httpecho.fileio import atomic_write
from httpecho.messages import Exchange, RecordedRequest, RecordedResponse
from httpecho.models import CACHE_FILE_EXTENSION, DEFAULT_CACHE_NAME

logger = logging.getLogger(__name__)

CACHE_FILE_NAME = f"{DEFAULT_CACHE_NAME}{CACHE_FILE_EXTENSION}"
GITATTRIBUTES_FILE_NAME = ".gitattributes"

Snapshot = Mapping[Fingerprint, Exchange]

_EMPTY_SNAPSHOT: Snapshot = MappingProxyType({})


class CacheState(str, enum.Enum):
    """Population state of a :class:`CacheStore`."""

    UNPOPULATED = "unpopulated"
    POPULATING = "populating"
    POPULATED = "populated"
    FAILED = "failed"


def _running_future() -> Future:
    # Running futures cannot be cancelled by any single waiter.
    future: Future = Future()
    future.set_running_or_notify_cancel()
    return future


class CacheStore:
    """Recorded exchanges for one cache file.

    Args:
        lookup_path: Directory holding the cache file to replay from.
            ``None`` gives a memory-only store that starts empty.
        cache_file_name: Name of the cache file inside *lookup_path* and
            inside every update directory passed to :meth:`persist`.

    Stores are normally obtained from a
    :class:`~httpecho.cache.registry.CacheRegistry` so that every transport
    pointed at the same directory shares one instance.
    """

    def __init__(
        self,
        lookup_path: Optional[str | os.PathLike[str]] = None,
        cache_file_name: str = CACHE_FILE_NAME,
    ) -> None:
        self._lookup_path = Path(lookup_path) if lookup_path is not None else None
        self._cache_file_name = cache_file_name
        self._snapshot: Optional[Snapshot] = None
        self._population: Optional[Future] = None
        # Guards the snapshot reference and the population future only.
        self._swap_lock = threading.Lock()
        self._queue_lock = threading.Lock()
        self._queued_writes: dict[Path, Future] = {}
        # Serialises physical writes.
        self._write_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"CacheStore(lookup_path={self._lookup_path!r}, state={self.state.value!r})"

    @property
    def lookup_path(self) -> Optional[Path]:
        """Directory replayed from, or ``None`` for a memory-only store."""
        return self._lookup_path

    @property
    def cache_file_name(self) -> str:
        return self._cache_file_name

    @property
    def lookup_file(self) -> Optional[Path]:
        """Full path of the cache file replayed from."""
        if self._lookup_path is None:
            return None
        return self._lookup_path / self._cache_file_name

    @property
    def state(self) -> CacheState:
        with self._swap_lock:
            population = self._population
        if population is None:
            return CacheState.UNPOPULATED
        if not population.done():
            return CacheState.POPULATING
        if population.exception() is not None:
            return CacheState.FAILED
        return CacheState.POPULATED

    # ------------------------------------------------------------------ #
    # Population
    # ------------------------------------------------------------------ #

    def ensure_populated(self) -> None:
        """Load the cache file if that has not happened yet, blocking until done.

        Raises:
            BadCacheFileError: If the cache file exists but cannot be parsed.
                The same error is raised on every call until :meth:`reset`.
        """
        population, owner = self._claim_population()
        if owner:
            self._populate(population)
        population.result()

    async def ensure_populated_async(self) -> None:
        """Asyncio counterpart of :meth:`ensure_populated`.

        The file is read on a worker thread.
        """
        population, owner = self._claim_population()
        if owner:
            await asyncio.to_thread(self._populate, population)
        await asyncio.wrap_future(population)

    def reset(self) -> None:
        """Forget the in-memory snapshot and any load failure.

        The next :meth:`ensure_populated` reads the cache file again.  The
        file on disk is left alone.
        """
        with self._swap_lock:
            self._population = None
            self._snapshot = None

    def _claim_population(self) -> tuple[Future, bool]:
        with self._swap_lock:
            if self._population is not None:
                return self._population, False
            self._population = _running_future()
            return self._population, True

    def _populate(self, population: Future) -> None:
        try:
            snapshot = self._load()
        except Exception as exc:
            logger.debug("Loading %s failed: %s", self.lookup_file, exc)
            population.set_exception(exc)
            return
        with self._swap_lock:
            # A reset while loading orphans this population.
            if self._population is population:
                self._snapshot = snapshot
        population.set_result(None)

    def _load(self) -> Snapshot:
        path = self.lookup_file
        if path is None:
            return _EMPTY_SNAPSHOT
        try:
            exchanges = load_cache_file(path)
        except FileNotFoundError:
            logger.debug("No cache file at %s; starting empty", path)
            return _EMPTY_SNAPSHOT

        entries: dict[Fingerprint, Exchange] = {}
        for exchange in exchanges:
            entries[fingerprint_of(exchange.request)] = exchange
        logger.debug("Loaded %d cached responses from %s", len(entries), path)
        return MappingProxyType(entries)

    # ------------------------------------------------------------------ #
    # Lookup and update
    # ------------------------------------------------------------------ #

    def snapshot(self) -> Snapshot:
        """Return the current snapshot.

        Raises:
            CacheNotPopulatedError: If the store has not been populated.
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise CacheNotPopulatedError(
                "The cache has not been populated. Call ensure_populated() first."
            )
        return snapshot

    def try_lookup(self, fingerprint: Fingerprint) -> Optional[RecordedResponse]:
        """Return the cached response for *fingerprint*, or ``None`` on a miss.

        Raises:
            CacheNotPopulatedError: If the store has not been populated.
        """
        exchange = self.snapshot().get(fingerprint)
        return exchange.response if exchange is not None else None

    def add_or_update(self, request: RecordedRequest, response: RecordedResponse) -> None:
        """Record *response* for *request*, replacing any earlier entry.

        The new snapshot is built without holding a lock and committed only
        if no other writer committed in the meantime; otherwise the update
        is rebuilt on the fresh snapshot.
        """
        key = fingerprint_of(request)
        exchange = Exchange(request, response)
        while True:
            current = self.snapshot()
            candidate = dict(current)
            candidate[key] = exchange
            if self._compare_and_swap(current, MappingProxyType(candidate)):
                return

    def _compare_and_swap(self, expected: Snapshot, new: Snapshot) -> bool:
        with self._swap_lock:
            if self._snapshot is not expected:
                return False
            self._snapshot = new
            return True

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def persist(self, update_path: str | os.PathLike[str]) -> None:
        """Write the cache file into *update_path*, blocking until it is on disk.

        *update_path* itself is created if missing, but its parent must
        already exist.  A missing parent usually means the sources the
        recordings belong to are not on this machine.

        Raises:
            ConfigError: If the parent of *update_path* does not exist.
            OSError: If the file cannot be written.
        """
        target, write, owner = self._claim_write(update_path)
        if owner:
            self._write(target, write)
        write.result()

    async def persist_async(self, update_path: str | os.PathLike[str]) -> None:
        """Asyncio counterpart of :meth:`persist`.  The file is written on a worker thread."""
        target, write, owner = self._claim_write(update_path)
        if owner:
            await asyncio.to_thread(self._write, target, write)
        await asyncio.wrap_future(write)

    def _claim_write(self, update_path: str | os.PathLike[str]) -> tuple[Path, Future, bool]:
        target = Path(os.path.abspath(update_path))
        if not target.parent.is_dir():
            raise ConfigError(
                f'Caching an HTTP response to "{target}" requires that its parent '
                "directory already exist. Are the sources for these tests on this machine?"
            )
        with self._queue_lock:
            queued = self._queued_writes.get(target)
            if queued is not None:
                return target, queued, False
            write = _running_future()
            self._queued_writes[target] = write
            return target, write, True

    def _write(self, target: Path, write: Future) -> None:
        try:
            with self._write_lock:
                with self._queue_lock:
                    if self._queued_writes.get(target) is write:
                        del self._queued_writes[target]
                snapshot = self._snapshot
                if snapshot is None:
                    logger.debug("Store was reset before writing %s; nothing to persist", target)
                else:
                    self._write_files(target, snapshot.values())
        except Exception as exc:
            write.set_exception(exc)
            return
        write.set_result(None)

    def _write_files(self, directory: Path, exchanges: Iterable[Exchange]) -> None:
        directory.mkdir(exist_ok=True)
        _ensure_gitattributes(directory)
        path = directory / self._cache_file_name
        count = atomic_write(path, lambda stream: write_cache_file(exchanges, stream))
        logger.info("Wrote %d cached responses to %s", count, path)


def load_cache_file(path: str | os.PathLike[str]) -> list[Exchange]:
    """Read every record of the cache file at *path*.

    Raises:
        FileNotFoundError: If there is no file at *path*.
        BadCacheFileError: If the file is not a valid cache file; the
            message names the file.
    """
    with open(path, "rb") as stream:
        try:
            return read_cache_file(stream)
        except BadCacheFileError as exc:
            raise BadCacheFileError(f"{path}: {exc}") from exc


def _ensure_gitattributes(directory: Path) -> None:
    """Create a ``.gitattributes`` that keeps git from touching line endings in cache files."""
    path = directory / GITATTRIBUTES_FILE_NAME
    try:
        with open(path, "x", encoding="utf-8", newline="\n") as f:
            f.write(f"*{CACHE_FILE_EXTENSION} -text\n")
    except FileExistsError:
        return
    logger.debug("Created %s", path)

