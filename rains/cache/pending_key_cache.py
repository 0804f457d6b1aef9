"""Cache of messages waiting for the answer to a delegation query."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Hashable, Optional

from rains.cache.base import BoundedCounter

_log = logging.getLogger(__name__)


class PendingKeyCache:
    """Maps query tokens to the message-section-sender waiting on the answer."""

    def __init__(self, max_size: int) -> None:
        self._lock = threading.Lock()
        # token -> (sender, expiration)
        self._token_map: dict[Hashable, tuple[Any, int]] = {}
        self._counter = BoundedCounter(max_size)

    def add(self, sender: Any, tok: Hashable, expiration: int) -> None:
        """Store sender under tok until expiration (unix seconds).

        Nothing is stored if the cache is full or tok is already present.
        """
        if self._counter.is_full():
            _log.error("Pending key cache is full")
            return
        with self._lock:
            if tok in self._token_map:
                _log.warning(
                    "Token already in key cache. Random source of Token generator no random enough?"
                )
                return
            self._token_map[tok] = (sender, expiration)
        self._counter.inc()

    def get_and_remove(self, tok: Hashable) -> Optional[Any]:
        """Remove and return the sender stored under tok, or None."""
        with self._lock:
            stored = self._token_map.pop(tok, None)
        if stored is None:
            return None
        self._counter.dec()
        return stored[0]

    def contains_token(self, tok: Hashable) -> bool:
        """Return True if tok is cached."""
        with self._lock:
            return tok in self._token_map

    def remove_expired_values(self) -> None:
        """Delete expired entries, logging the senders that got no answer in time."""
        now = int(time.time())
        with self._lock:
            expired = [tok for tok, (_, exp) in self._token_map.items() if exp < now]
            removed = [self._token_map.pop(tok)[0] for tok in expired]
        for sender in removed:
            self._counter.dec()
            _log.warning(
                "No response to delegation query received before expiration: sectionSender=%s",
                sender,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._token_map)