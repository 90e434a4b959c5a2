from __future__ import annotations  # Per-session serialization of mutations

import threading
from typing import Dict


class SessionLocks:  # Hands out one re-entrant lock per session id
    def __init__(self) -> None:
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def lock_for(self, session_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[session_id] = lock
        return lock

    def discard(self, session_id: str) -> None:
        with self._guard:
            self._locks.pop(session_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


__all__ = ["SessionLocks"]
