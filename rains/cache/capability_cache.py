"""Cache mapping hashes of capability lists to the lists themselves."""

from __future__ import annotations

import hashlib
from typing import Iterable, Optional, Union

from rains.cache.assertion_cache import _CountedCache

TLS_OVER_TCP = "urn:x-rains:tlssrv"
NO_CAPABILITY = ""

TLS_OVER_TCP_KEY = b"e5365a09be554ae55b855f15264dbc837b04f5831daeb321359e18cdabab5745"
NO_CAPABILITY_KEY = b"76be8b528d0075f7aae98d6fa57a6d3c83ae480a8469e668d7b0af968995ac71"


class CapabilityCache(_CountedCache):
    """Stores capability lists under the SHA-256 hash of their sorted concatenation.

    Two well-known lists are present from the start: the TLS-over-TCP list is
    kept permanently, the empty-capability list may be evicted.
    """

    def __init__(self, max_size: int) -> None:
        super().__init__(max_size)
        for key, capability, internal in (
            (TLS_OVER_TCP_KEY, TLS_OVER_TCP, True),
            (NO_CAPABILITY_KEY, NO_CAPABILITY, False),
        ):
            self._cache.get_or_add(key, [capability], internal)
        self._counter.add(2)

    def add(self, capabilities: Iterable[str]) -> None:
        """Store the sorted capability list; evict the least recently used list when full."""
        ordered = sorted(capabilities)
        digest = hashlib.sha256("".join(ordered).encode("utf-8")).digest()
        _, new = self._cache.get_or_add(digest, ordered, False)
        if new and self._counter.inc():
            lru = self._cache.get_least_recently_used()
            if lru is not None and self._cache.remove(lru[0]) is not None:
                self._counter.dec()

    def get(self, digest: Union[bytes, bytearray, str]) -> Optional[list[str]]:
        """Return the capability list stored under digest, or None."""
        key = digest.encode("utf-8") if isinstance(digest, str) else bytes(digest)
        value = self._cache.get(key)
        return None if value is None else list(value)

    def __len__(self) -> int:
        """Return the number of capability lists in the cache."""
        return self._counter.value()