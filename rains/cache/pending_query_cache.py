"""Cache of clients waiting for the answer to a forwarded query."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable

from rains.cache.base import BoundedCounter

_log = logging.getLogger(__name__)

DELEGATION_TYPE = 5


def pending_query_key(sections: Iterable[Any]) -> str:
    """Return a string identifying a list of name queries.

    Raises ValueError if a section is not a name query (name, context, types).
    """
    sections = list(sections)
    parts = []
    for sec in sections:
        try:
            name, context, types = sec.name, sec.context, list(sec.types)
        except (AttributeError, TypeError):
            raise ValueError(f"sections MUST only contain queries. sections={sections}") from None
        key_phase = getattr(sec, "key_phase", 0)
        types_text = "[" + " ".join(str(int(t)) for t in types) + "]"
        for obj_type in types:
            if int(obj_type) == DELEGATION_TYPE:
                parts.append(f"{name}:{context}:{types_text}:{key_phase}")
            else:
                parts.append(f"{name}:{context}:{types_text}")
    return "::".join(parts)


@dataclass
class _Entry:
    key: str
    expiration: int
    senders: list[Any] = field(default_factory=list)


class PendingQueryCache:
    """Groups senders of identical queries under the token of the one forwarded query.

    Senders expose a sections attribute holding their queries.
    """

    def __init__(self, max_size: int) -> None:
        self._lock = threading.Lock()
        self._query_map: dict[str, Hashable] = {}
        self._token_map: dict[Hashable, _Entry] = {}
        self._counter = BoundedCounter(max_size)

    def add(self, sender: Any, tok: Hashable, expiration: int) -> bool:
        """Add sender.

        Returns True if its queries must be forwarded under tok, False if an
        identical query is already pending (sender is then queued on it), the
        cache is full, or the sections are not queries.
        """
        with self._lock:
            if self._counter.is_full():
                _log.error("Pending query cache is full")
                return False
            try:
                key = pending_query_key(sender.sections)
            except ValueError:
                return False
            self._counter.inc()
            pending_tok = self._query_map.get(key)
            if pending_tok is not None:
                pending = self._token_map.get(pending_tok)
                if pending is not None and pending.expiration > int(time.time()):
                    pending.senders.append(sender)
                    return False
            self._query_map[key] = tok
            self._token_map[tok] = _Entry(key, expiration, [sender])
            return True

    def get_and_remove(self, tok: Hashable) -> list[Any]:
        """Remove and return all senders waiting on tok."""
        with self._lock:
            entry = self._token_map.pop(tok, None)
            if entry is None:
                return []
            self._forget_key(entry.key, tok)
            self._counter.sub(len(entry.senders))
            return entry.senders

    def _forget_key(self, key: str, tok: Hashable) -> None:
        if self._query_map.get(key) == tok:
            del self._query_map[key]

    def remove_expired_values(self) -> None:
        """Delete all expired entries."""
        now = int(time.time())
        with self._lock:
            expired = [tok for tok, entry in self._token_map.items() if entry.expiration < now]
            for tok in expired:
                entry = self._token_map.pop(tok)
                self._forget_key(entry.key, tok)
                self._counter.sub(len(entry.senders))

    def __len__(self) -> int:
        return self._counter.value()