"""In-process memoization of document query results."""

from __future__ import annotations

import copy
import hashlib
import logging
import os
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from section_router.config import CacheConfig
from section_router.types import QueryResult

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
MtimeProbe = Callable[[str], float]


def stat_mtime(path: str) -> float:
    """Modification time of `path`; raises `OSError` when it cannot be stat'ed."""
    return os.stat(path).st_mtime


@dataclass(slots=True)
class CacheEntry:
    result: QueryResult
    mtimes: dict[str, float]
    created_at: float


@dataclass(slots=True)
class CacheStats:
    entries: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def __str__(self) -> str:
        if self.hits + self.misses == 0:
            return "cache: 0 queries"
        return (
            f"cache: {self.entries} entries, {self.hits} hits, {self.misses} misses "
            f"({self.hit_rate * 100:.0f}% hit rate)"
        )


class ResultCache:
    """Caches query results keyed on question, mode, and file set.

    File contents are not part of the key. An entry goes stale when its age
    exceeds the TTL, or when any tracked file disappears or has a newer
    modification time than the one recorded with the entry. Stale entries are
    removed on lookup; there is no background sweep. At capacity the entry
    with the oldest creation time is evicted.

    One lock guards every read, write, and eviction.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        clock: Clock = time.time,
        mtime_probe: MtimeProbe = stat_mtime,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        self._mtime_probe = mtime_probe
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def make_key(question: str, files: Iterable[str], mode: str) -> str:
        digest = hashlib.sha256()
        digest.update(f"q:{question}\nm:{mode}\n".encode("utf-8"))
        for path in sorted(files):
            digest.update(f"f:{path}\n".encode("utf-8"))
        return digest.hexdigest()[:16]

    def get(self, key: str) -> QueryResult | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._expired(entry) or self._files_changed(entry):
                del self._entries[key]
                self._misses += 1
                logger.debug("Dropped stale cache entry %s", key)
                return None
            self._hits += 1
            return copy.deepcopy(entry.result)

    def put(self, key: str, result: QueryResult, mtimes: dict[str, float]) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.config.max_entries:
                oldest = min(self._entries, key=lambda k: self._entries[k].created_at)
                del self._entries[oldest]
                logger.debug("Evicted oldest cache entry %s", oldest)
            self._entries[key] = CacheEntry(
                result=copy.deepcopy(result),
                mtimes=dict(mtimes),
                created_at=self._clock(),
            )

    def snapshot_mtimes(self, files: Iterable[str]) -> dict[str, float]:
        """Current modification times of the files that can be stat'ed."""
        mtimes: dict[str, float] = {}
        for path in files:
            try:
                mtimes[path] = self._mtime_probe(path)
            except OSError:
                continue
        return mtimes

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(entries=len(self._entries), hits=self._hits, misses=self._misses)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def _expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.created_at > self.config.ttl_seconds

    def _files_changed(self, entry: CacheEntry) -> bool:
        for path, recorded in entry.mtimes.items():
            try:
                current = self._mtime_probe(path)
            except OSError:
                return True
            if current > recorded:
                return True
        return False
