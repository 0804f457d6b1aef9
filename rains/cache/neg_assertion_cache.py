"""Cache of shards, pshards and zones used to answer negative queries."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any

from rains.cache.base import BoundedCounter, LruCache
from rains.cache.zone_key_cache import zone_ctx_key


def intersect(first: Any, second: Any) -> bool:
    """Return True if two name intervals overlap.

    Intervals expose begin() and end(); an empty string means unbounded.
    Bounds are exclusive.
    """
    lo1, hi1 = first.begin(), first.end()
    lo2, hi2 = second.begin(), second.end()
    first_starts_in_time = lo1 == "" or hi2 == "" or lo1 < hi2
    second_starts_in_time = lo2 == "" or hi1 == "" or lo2 < hi1
    return first_starts_in_time and second_starts_in_time


@dataclass(eq=False)
class _Entry:
    cache_key: str
    zone: str
    # section hash -> (section, expiration)
    sections: dict[str, tuple[Any, int]] = field(default_factory=dict)
    deleted: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock)


class NegAssertionCache:
    """Stores shards, pshards and zones per zone and context.

    Sections are expected to expose subject_zone, context, begin(), end() and hash().
    """

    def __init__(self, max_size: int) -> None:
        self._cache = LruCache()
        self._counter = BoundedCounter(max_size)
        self._lock = threading.Lock()
        self._zone_map: dict[str, set[str]] = {}

    def add_shard(self, shard: Any, expiration: int, is_internal: bool) -> bool:
        """Add a shard; returns False if entries had to be evicted."""
        return self._add(shard, expiration, is_internal)

    def add_pshard(self, pshard: Any, expiration: int, is_internal: bool) -> bool:
        """Add a pshard; returns False if entries had to be evicted."""
        return self._add(pshard, expiration, is_internal)

    def add_zone(self, zone: Any, expiration: int, is_internal: bool) -> bool:
        """Add a zone; returns False if entries had to be evicted."""
        return self._add(zone, expiration, is_internal)

    def _add(self, sec: Any, expiration: int, is_internal: bool) -> bool:
        is_full = False
        key = zone_ctx_key(sec.subject_zone, sec.context)
        digest = sec.hash()
        while True:
            entry, new = self._cache.get_or_add(key, _Entry(key, sec.subject_zone), is_internal)
            with entry.lock:
                if entry.deleted:
                    continue
                if new:
                    with self._lock:
                        self._zone_map.setdefault(sec.subject_zone, set()).add(key)
                if digest not in entry.sections:
                    entry.sections[digest] = (sec, expiration)
                    is_full = self._counter.inc()
            break
        while self._counter.is_full():
            lru = self._cache.get_least_recently_used()
            if lru is None:
                break
            lru_key, victim = lru
            with victim.lock:
                if victim.deleted:
                    continue
                victim.deleted = True
                self._cache.remove(lru_key)
                with self._lock:
                    keys = self._zone_map.get(victim.zone)
                    if keys is not None:
                        keys.discard(victim.cache_key)
                self._counter.sub(len(victim.sections))
        return not is_full

    def get(self, zone: str, context: str, interval: Any) -> list[Any]:
        """Return cached sections of zone and context that overlap interval."""
        entry = self._cache.get(zone_ctx_key(zone, context))
        if entry is None:
            return []
        with entry.lock:
            if entry.deleted:
                return []
            return [sec for sec, _ in entry.sections.values() if intersect(sec, interval)]

    def remove_expired_values(self) -> None:
        """Remove all expired shards, pshards and zones."""
        for entry in self._cache.get_all():
            with entry.lock:
                if entry.deleted:
                    continue
                now = int(time.time())
                expired = [d for d, (_, exp) in entry.sections.items() if exp < now]
                for digest in expired:
                    del entry.sections[digest]
                if not entry.sections:
                    entry.deleted = True
                    self._cache.remove(entry.cache_key)
                    with self._lock:
                        keys = self._zone_map.get(entry.zone)
                        if keys is not None:
                            keys.discard(entry.cache_key)
            self._counter.sub(len(expired))

    def remove_zone(self, zone: str) -> None:
        """Delete all sections of the given subject zone."""
        with self._lock:
            keys = self._zone_map.pop(zone, None)
        if keys is None:
            return
        for key in list(keys):
            entry = self._cache.remove(key)
            if entry is None:
                continue
            with entry.lock:
                if entry.deleted:
                    continue
                entry.deleted = True
                self._counter.sub(len(entry.sections))

    def checkpoint(self) -> list[Any]:
        """Return all cached sections."""
        sections = []
        for entry in self._cache.get_all():
            with entry.lock:
                if not entry.deleted:
                    sections.extend(sec for sec, _ in entry.sections.values())
        return sections

    def __len__(self) -> int:
        return self._counter.value()