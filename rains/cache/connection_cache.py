"""Cache of open stream connections grouped by remote address."""

from __future__ import annotations

import contextlib
import socket
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from rains.cache.base import BoundedCounter, LruCache
from rains.connection import TcpAddress


def network_addr(addr: Any) -> str:
    """Return the cache key of a network address: its network and its text form."""
    return f"{addr.network()} {addr}"


def _remote_addr(conn: Any) -> Any:
    if isinstance(conn, socket.socket):
        peer = conn.getpeername()
        return TcpAddress(peer[0], peer[1])
    return conn.remote_addr


def _close(conn: Any) -> None:
    with contextlib.suppress(OSError):
        conn.close()


@dataclass(eq=False)
class _Entry:
    cache_key: str
    connections: list[Any] = field(default_factory=list)
    capabilities: list[str] = field(default_factory=list)
    deleted: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock)


class ConnectionCache:
    """Stores connections per remote address with least-recently-used eviction.

    Connections are sockets or objects with a remote_addr attribute and a
    close() method.
    """

    def __init__(self, max_size: int) -> None:
        self._cache = LruCache()
        self._counter = BoundedCounter(max_size)

    def add_connection(self, conn: Any) -> None:
        """Add conn; when full, close and drop all connections of the least recently used address."""
        key = network_addr(_remote_addr(conn))
        while True:
            entry, _ = self._cache.get_or_add(key, _Entry(key), False)
            with entry.lock:
                if entry.deleted:
                    continue
                entry.connections.append(conn)
            break
        if self._counter.inc():
            self._evict()

    def _evict(self) -> None:
        while self._counter.is_full():
            lru = self._cache.get_least_recently_used()
            if lru is None:
                return
            key, entry = lru
            with entry.lock:
                if entry.deleted:
                    continue
                entry.deleted = True
                for conn in entry.connections:
                    _close(conn)
                    self._counter.dec()
                self._cache.remove(key)
            return

    def _live_entry(self, addr: Any) -> Optional[_Entry]:
        return self._cache.get(network_addr(addr))

    def add_capability_list(self, dst_addr: Any, capabilities: Iterable[str]) -> bool:
        """Set the capability list of dst_addr; False if no connection to it is cached."""
        entry = self._live_entry(dst_addr)
        if entry is None:
            return False
        with entry.lock:
            if entry.deleted:
                return False
            entry.capabilities = list(capabilities)
            return True

    def get_connection(self, dst_addr: Any) -> Optional[list[Any]]:
        """Return all cached connections to dst_addr, or None."""
        entry = self._live_entry(dst_addr)
        if entry is None:
            return None
        with entry.lock:
            if entry.deleted:
                return None
            return list(entry.connections)

    def get_capability_list(self, dst_addr: Any) -> Optional[list[str]]:
        """Return the capability list of dst_addr, or None if it is not cached."""
        entry = self._live_entry(dst_addr)
        if entry is None:
            return None
        with entry.lock:
            if entry.deleted:
                return None
            return list(entry.capabilities)

    def close_and_remove_connection(self, conn: Any) -> None:
        """Close conn and remove it from the cache."""
        key = network_addr(_remote_addr(conn))
        _close(conn)
        entry = self._cache.get(key)
        if entry is None:
            return
        with entry.lock:
            if entry.deleted:
                return
            if len(entry.connections) > 1:
                remaining = [c for c in entry.connections if c is not conn]
                self._counter.sub(len(entry.connections) - len(remaining))
                entry.connections = remaining
            else:
                entry.deleted = True
                self._cache.remove(key)
                self._counter.dec()

    def close_and_remove_connections(self, addr: Any) -> None:
        """Close and remove all cached connections to addr."""
        entry = self._live_entry(addr)
        if entry is None:
            return
        with entry.lock:
            if entry.deleted:
                return
            for conn in entry.connections:
                _close(conn)
                self._counter.dec()
            entry.deleted = True
            self._cache.remove(entry.cache_key)

    def close_and_remove_all_connections(self) -> None:
        """Close and remove every cached connection."""
        for entry in self._cache.get_all():
            with entry.lock:
                if entry.deleted:
                    continue
                for conn in entry.connections:
                    _close(conn)
                    self._counter.dec()
                entry.deleted = True
                self._cache.remove(entry.cache_key)

    def __len__(self) -> int:
        return self._counter.value()