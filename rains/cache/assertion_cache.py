"""Cache of assertions keyed by name, context and object type."""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from rains.cache.base import BoundedCounter, LruCache

_log = logging.getLogger(__name__)


def merge_subject_zone(subject: str, zone: str) -> str:
    """Join a subject name and its zone into a fully qualified name."""
    if zone == ".":
        return f"{subject}."
    if subject == "":
        return zone
    return f"{subject}.{zone}"


def _key_fqdn(fqdn: str, context: str, obj_type: int) -> str:
    key = f"{fqdn} {context} {int(obj_type)}"
    _log.debug("assertion cache key: %s", key)
    return key


def zone_hierarchy(fqdn: str) -> list[str]:
    """Return fqdn and its ancestor names up to (excluding) the root, most specific first."""
    labels = fqdn.split(".")
    if len(labels) == 2:
        return [labels[0] + "."]
    return [".".join(labels[i:]) for i in range(len(labels) - 1)]


@dataclass(eq=False)
class _Guarded:
    """Cache value that can be marked deleted while holding its own lock."""

    deleted: bool = field(default=False, init=False)
    lock: threading.RLock = field(default_factory=threading.RLock, init=False)


class _CountedCache:
    """An LRU cache paired with a bounded count of the elements it holds."""

    def __init__(self, max_size: int) -> None:
        self._cache = LruCache()
        self._counter = BoundedCounter(max_size)
        self._lock = threading.Lock()

    def _evict(self, release: Callable[[Any], None], once: bool = False) -> None:
        """Drop least recently used entries while the counter is full."""
        while self._counter.is_full():
            lru = self._cache.get_least_recently_used()
            if lru is None:
                return
            key, entry = lru
            with entry.lock:
                if entry.deleted:
                    continue
                entry.deleted = True
                self._cache.remove(key)
                release(entry)
            if once:
                return

    def __len__(self) -> int:
        return self._counter.value()


@dataclass(eq=False)
class _Entry(_Guarded):
    cache_key: str = ""
    zone: str = ""
    # assertion hash -> (assertion, expiration)
    assertions: dict[str, tuple[Any, int]] = field(default_factory=dict)


class AssertionCache(_CountedCache):
    """Stores assertions and allows removing all entries of a zone.

    Assertions are expected to expose subject_name, subject_zone, context,
    content (objects with a type) and hash().
    """

    def __init__(self, max_size: int) -> None:
        super().__init__(max_size)
        self._zone_map: dict[str, set[str]] = {}
        self._entries_per_assertion: Counter[str] = Counter()

    def add(self, assertion: Any, expiration: int, is_internal: bool) -> bool:
        """Add assertion with an expiration in unix seconds.

        Returns False if the cache became full and entries were evicted.
        """
        is_full = False
        digest = assertion.hash()
        fqdn = merge_subject_zone(assertion.subject_name, assertion.subject_zone)
        for obj in assertion.content:
            key = _key_fqdn(fqdn, assertion.context, obj.type)
            while True:
                entry, new = self._cache.get_or_add(
                    key, _Entry(cache_key=key, zone=assertion.subject_zone), is_internal
                )
                with entry.lock:
                    if entry.deleted:
                        continue
                    if new:
                        with self._lock:
                            self._zone_map.setdefault(assertion.subject_zone, set()).add(key)
                    if digest not in entry.assertions:
                        entry.assertions[digest] = (assertion, expiration)
                        self._drop_digests([digest], delta=1)
                        is_full = self._counter.inc()
                break
        self._evict(self._forget)
        return not is_full

    def _drop_digests(self, digests: Iterable[str], delta: int = -1) -> None:
        with self._lock:
            for digest in digests:
                self._entries_per_assertion[digest] += delta

    def _unlink(self, entry: _Entry) -> None:
        with self._lock:
            keys = self._zone_map.get(entry.zone)
            if keys is not None:
                keys.discard(entry.cache_key)

    def _forget(self, entry: _Entry) -> None:
        self._unlink(entry)
        self._drop_digests(entry.assertions)
        self._counter.sub(len(entry.assertions))

    def get(self, fqdn: str, context: str, obj_type: int, strict: bool) -> list[Any]:
        """Return assertions matching the name, context and type.

        If strict, only fqdn itself is looked up; otherwise the first match
        walking up the name hierarchy is returned.
        """
        names = [fqdn] if strict else zone_hierarchy(fqdn)
        entry = None
        for name in names:
            entry = self._cache.get(_key_fqdn(name, context, obj_type))
            if entry is not None:
                break
        if entry is None:
            return []
        with entry.lock:
            if entry.deleted:
                return []
            return [assertion for assertion, _ in entry.assertions.values()]

    def remove_expired_values(self) -> None:
        """Remove all expired assertions."""
        for entry in self._cache.get_all():
            with entry.lock:
                if entry.deleted:
                    continue
                now = int(time.time())
                expired = [d for d, (_, exp) in entry.assertions.items() if exp < now]
                for digest in expired:
                    del entry.assertions[digest]
                self._drop_digests(expired)
                if not entry.assertions:
                    entry.deleted = True
                    self._cache.remove(entry.cache_key)
                    self._unlink(entry)
            self._counter.sub(len(expired))

    def remove_zone(self, zone: str) -> None:
        """Delete all assertions of the given zone."""
        with self._lock:
            keys = self._zone_map.pop(zone, None)
        for key in list(keys or ()):
            entry = self._cache.remove(key)
            if entry is None:
                continue
            with entry.lock:
                if entry.deleted:
                    continue
                entry.deleted = True
                self._forget(entry)

    def checkpoint(self) -> list[Any]:
        """Return all cached assertions."""
        assertions = []
        for entry in self._cache.get_all():
            with entry.lock:
                if not entry.deleted:
                    assertions.extend(a for a, _ in entry.assertions.values())
        return assertions

    def __len__(self) -> int:
        """Return the number of assertions in the cache."""
        return self._counter.value()