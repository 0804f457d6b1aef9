"""Thread-safe building blocks shared by the caches."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Any, Hashable, Optional


class LruCache:
    """A map with least-recently-used ordering over its non-internal entries.

    Internal entries are kept until explicitly removed and are never offered
    for eviction.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._internal: dict[Hashable, Any] = {}
        self._external: OrderedDict[Hashable, Any] = OrderedDict()

    def get_or_add(self, key: Hashable, value: Any, internal: bool) -> tuple[Any, bool]:
        """Return (stored value, True if it was just added)."""
        with self._lock:
            if key in self._internal:
                return self._internal[key], False
            if key in self._external:
                self._external.move_to_end(key)
                return self._external[key], False
            if internal:
                self._internal[key] = value
            else:
                self._external[key] = value
            return value, True

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the value stored under key, or None, marking it as recently used."""
        with self._lock:
            if key in self._internal:
                return self._internal[key]
            if key in self._external:
                self._external.move_to_end(key)
                return self._external[key]
            return None

    def get_least_recently_used(self) -> Optional[tuple[Hashable, Any]]:
        """Return (key, value) of the least recently used non-internal entry, or None."""
        with self._lock:
            if not self._external:
                return None
            key = next(iter(self._external))
            return key, self._external[key]

    def remove(self, key: Hashable) -> Optional[Any]:
        """Remove key and return its value, or None if it was absent."""
        with self._lock:
            if key in self._internal:
                return self._internal.pop(key)
            return self._external.pop(key, None)

    def get_all(self) -> list[Any]:
        """Return all stored values, internal ones first."""
        with self._lock:
            return [*self._internal.values(), *self._external.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._internal) + len(self._external)


class BoundedCounter:
    """A thread-safe counter that reports when it reaches its maximum."""

    def __init__(self, max_value: int) -> None:
        self._lock = threading.Lock()
        self._max_value = max_value
        self._value = 0

    def inc(self) -> bool:
        """Increment by one; return True if the counter is now full."""
        return self.add(1)

    def dec(self) -> None:
        """Decrement by one."""
        self.sub(1)

    def add(self, amount: int) -> bool:
        """Increase by amount; return True if the counter is now full."""
        with self._lock:
            self._value += amount
            return self._value >= self._max_value

    def sub(self, amount: int) -> None:
        """Decrease by amount."""
        with self._lock:
            self._value -= amount

    def is_full(self) -> bool:
        """Return True if the counter has reached its maximum."""
        with self._lock:
            return self._value >= self._max_value

    def value(self) -> int:
        """Return the current count."""
        with self._lock:
            return self._value