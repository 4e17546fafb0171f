# core/locks.py

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class IdeaLockRegistry:
    """
    One re-entrant lock per idea id.

    Writers on the same idea are serialized; different ideas never contend
    beyond the brief registry lookup. A lock is dropped from the registry as
    soon as nobody holds or waits for it.
    """

    def __init__(self):
        # idea id -> [lock, number of holders and waiters]
        self._locks: Dict[str, List] = {}
        self._registry_lock = threading.Lock()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)

    @contextmanager
    def hold(self, idea_id: str) -> Iterator[None]:
        with self._registry_lock:
            entry = self._locks.get(idea_id)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[idea_id] = entry
            entry[1] += 1

        try:
            with entry[0]:
                yield
        finally:
            with self._registry_lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[idea_id]
