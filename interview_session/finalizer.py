"""Single choke point that completes sessions and schedules their report."""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from observability import log_event
from session_reports.models import REPORT_JOB_NAME, Report, job_payload
from session_reports.store import ReportStore
from storage.jobs import JobQueue
from storage.sessions import SessionStore

from .errors import ConcurrentUpdateError, SessionStateError
from .locks import SessionLocks
from .models import Session

logger = logging.getLogger(__name__)

CLOSING_LINES = {
    "user_ended": "Thanks for your time today. We'll wrap up here and prepare your report.",
    "time_limit": "This interview was closed after a period of inactivity. Your report will be prepared from the answers you gave.",
    "technical_error": "The interview had to stop because of a technical problem. Your report will be prepared from the answers you gave.",
}


class Finalizer:
    """Complete a session once and enqueue exactly one report job for it.

    ``complete`` flips an in-hand session to ``completed``; ``request_report``
    creates the pending report and enqueues the job only when this caller's
    insert won the ``UNIQUE(session_id)`` race. Every termination path ends in
    ``request_report``.
    """

    def __init__(
        self,
        sessions: SessionStore,
        reports: ReportStore,
        queue: JobQueue,
        locks: Optional[SessionLocks] = None,
    ) -> None:
        self._sessions = sessions
        self._reports = reports
        self._queue = queue
        self._locks = locks if locks is not None else SessionLocks()

    def complete(self, session: Session, reason: str) -> bool:
        """Mark ``session`` completed in memory; False when it was not ongoing."""

        if session.status != "ongoing":
            return False
        session.status = "completed"
        session.end_reason = reason
        session.touch()
        return True

    def request_report(self, session: Session) -> Tuple[Report, bool]:
        """Return the session's report, creating and enqueueing it if missing."""

        if session.status != "completed":
            raise SessionStateError(f"Session '{session.id}' is {session.status}, not completed")
        report, created = self._reports.create_if_absent(session)
        if created:
            job_id = self._queue.enqueue(REPORT_JOB_NAME, job_payload(report))
            log_event("report_enqueued", session.id, report_id=report.id, job_id=job_id)
        return report, created

    def finalize(self, session_id: str, reason: str) -> Optional[str]:
        """Idempotently end ``session_id``; returns the report id this call created."""

        with self._locks.lock_for(session_id):
            session = self._sessions.find(session_id)
            if session is None or session.status != "ongoing":
                self._locks.discard(session_id)
                return None
            self.complete(session, reason)
            closing = CLOSING_LINES.get(reason)
            if closing:
                session.say(closing, "closing")
            try:
                self._sessions.save(session)
            except ConcurrentUpdateError:
                logger.info("Finalize lost a save race session=%s; skipping", session_id)
                return None
            log_event("session_completed", session_id, reason=reason)
        self._locks.discard(session_id)
        report, created = self.request_report(session)
        return report.id if created else None


__all__ = ["CLOSING_LINES", "Finalizer"]
