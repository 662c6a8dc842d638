"""Per-server serialization of repair cycles."""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator


class ServerLocks:
    """One lock per server name.

    ``hold`` takes the locks in sorted order so that two cycles touching
    overlapping sets of servers cannot deadlock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _get(self, name: str) -> threading.Lock:
        with self._lock:
            if name not in self._locks:
                self._locks[name] = threading.Lock()
            return self._locks[name]

    def is_locked(self, name: str) -> bool:
        return self._get(name).locked()

    @contextmanager
    def hold(self, names: Iterable[str]) -> Iterator[None]:
        with ExitStack() as stack:
            for name in sorted(set(names)):
                stack.enter_context(self._get(name))
            yield
