"""Cache of zone public keys together with the delegation assertions holding them."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from time import time as _now
from typing import Any, Optional

from rains.cache.assertion_cache import _CountedCache, _Guarded, merge_subject_zone

_log = logging.getLogger(__name__)


def zone_ctx_key(zone: str, context: str) -> str:
    """Return the key identifying a zone within a context."""
    return f"{zone} {context}"


def _cache_key(zone: str, context: str, algorithm: int, key_phase: int) -> str:
    return f"{zone},{context},{int(algorithm)},{key_phase}"


@dataclass(eq=False)
class _KeySet(_Guarded):
    zone: str = ""
    context: str = ""
    algorithm: int = 0
    key_phase: int = 0
    # public key hash -> (public key, assertion containing it)
    public_keys: dict[str, tuple[Any, Any]] = field(default_factory=dict)

    @property
    def cache_key(self) -> str:
        return _cache_key(self.zone, self.context, self.algorithm, self.key_phase)

    @property
    def context_zone(self) -> str:
        return f"{self.zone},{self.context}"


class ZoneKeyCache(_CountedCache):
    """Stores public keys of zones, keyed by zone, context, algorithm and key phase.

    Assertions are expected to expose subject_name, subject_zone and context;
    public keys expose algorithm, key_phase, valid_since, valid_until and hash().
    """

    def __init__(self, max_size: int, warn_size: int, max_keys_per_zone: int) -> None:
        super().__init__(max_size)
        self._warn_size = warn_size
        self._max_keys_per_zone = max_keys_per_zone
        self._keys_per_context_zone: defaultdict[str, int] = defaultdict(int)

    def add(self, assertion: Any, public_key: Any, internal: bool) -> bool:
        """Add public_key with its assertion.

        Returns False if the cache holds at least warn_size keys or a key set
        had to be evicted to make room.
        """
        _log.info("Adding key to cache: publicKey=%s assertion=%s", public_key, assertion)
        if assertion.subject_name == "@":
            subject = assertion.subject_zone
        else:
            subject = merge_subject_zone(assertion.subject_name, assertion.subject_zone)
        digest = public_key.hash()
        while True:
            candidate = _KeySet(
                zone=subject,
                context=assertion.context,
                algorithm=public_key.algorithm,
                key_phase=public_key.key_phase,
            )
            entry, _ = self._cache.get_or_add(candidate.cache_key, candidate, internal)
            with entry.lock:
                if entry.deleted:
                    continue
                added = digest not in entry.public_keys
                if added:
                    entry.public_keys[digest] = (public_key, assertion)
                    self._count_keys(entry, 1)
            break
        if added and self._counter.inc():
            self._evict(self._release, once=True)
            return False
        return self._counter.value() < self._warn_size

    def _count_keys(self, entry: _KeySet, delta: int) -> None:
        with self._lock:
            self._keys_per_context_zone[entry.context_zone] += delta
            count = self._keys_per_context_zone[entry.context_zone]
        if delta > 0 and count > self._max_keys_per_zone:
            _log.warning(
                "There are too many publicKeys for a zone and context: zone=%s "
                "context=%s allowed=%d actual=%d",
                entry.zone, entry.context, self._max_keys_per_zone, count,
            )

    def _release(self, entry: _KeySet) -> None:
        removed = len(entry.public_keys)
        entry.public_keys.clear()
        self._counter.sub(removed)
        self._count_keys(entry, -removed)

    def get(self, zone: str, context: str, sig_meta_data: Any) -> Optional[tuple[Any, Any]]:
        """Return (public key, assertion) of a non-expired key usable for sig_meta_data, or None."""
        entry = self._cache.get(
            _cache_key(zone, context, sig_meta_data.algorithm, sig_meta_data.key_phase)
        )
        if entry is None:
            return None
        with entry.lock:
            candidates = list(entry.public_keys.values())
        now = int(_now())
        return next(
            (
                (public_key, assertion)
                for public_key, assertion in candidates
                if public_key.valid_until > now
                and public_key.valid_since <= sig_meta_data.valid_until
                and public_key.valid_until >= sig_meta_data.valid_since
            ),
            None,
        )

    def remove_expired_keys(self) -> None:
        """Delete all expired public keys."""
        now = int(_now())
        for entry in self._cache.get_all():
            with entry.lock:
                stale = [d for d, (key, _) in entry.public_keys.items() if key.valid_until < now]
                for digest in stale:
                    entry.public_keys.pop(digest)
                self._counter.sub(len(stale))
                self._count_keys(entry, -len(stale))
                if not (entry.deleted or entry.public_keys):
                    entry.deleted = True
                    self._cache.remove(entry.cache_key)

    def checkpoint(self) -> list[Any]:
        """Return all cached assertions."""
        assertions = []
        for entry in self._cache.get_all():
            with entry.lock:
                assertions.extend(assertion for _, assertion in entry.public_keys.values())
        return assertions

    def __len__(self) -> int:
        """Return the number of public keys in the cache."""
        return self._counter.value()