"""Inactivity sweep closing sessions the candidate walked away from."""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from config.settings import settings
from interview_session.finalizer import Finalizer
from storage.sessions import SessionStore

logger = logging.getLogger(__name__)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def sweep_inactive(
    store: SessionStore,
    finalizer: Finalizer,
    idle_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[str]:
    """Finalize every ongoing session idle for longer than ``idle_minutes``.

    Returns the ids of the sessions this sweep actually completed.
    """

    minutes = settings.INACTIVITY_MINUTES if idle_minutes is None else idle_minutes
    current = _as_utc(now) if now else datetime.now(timezone.utc)
    closed: List[str] = []
    for session_id in store.inactive_ids(current - timedelta(minutes=minutes)):
        finalizer.finalize(session_id, "time_limit")
        session = store.find(session_id)
        if session is not None and session.end_reason == "time_limit":
            closed.append(session_id)
    if closed:
        logger.info("Inactivity sweep closed %d session(s)", len(closed))
    return closed


class InactivitySweeper:
    """Run :func:`sweep_inactive` on a fixed interval in a daemon thread."""

    def __init__(self, store: SessionStore, finalizer: Finalizer, *, interval_s: Optional[float] = None) -> None:
        self._store = store
        self._finalizer = finalizer
        self._interval_s = settings.SWEEP_INTERVAL_S if interval_s is None else interval_s
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="inactivity-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self) -> None:
        while not self._stop.wait(self._interval_s):
            try:
                sweep_inactive(self._store, self._finalizer)
            except Exception:  # noqa: BLE001
                logger.exception("Inactivity sweep failed")


__all__ = ["InactivitySweeper", "sweep_inactive"]
