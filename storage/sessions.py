"""Session persistence with optimistic version checks."""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import List, Optional

from config.settings import settings
from interview_session.errors import ConcurrentUpdateError, SessionNotFoundError
from interview_session.models import Session

from .migrate import migrate
from .sqlite import get_conn

logger = logging.getLogger(__name__)


class SessionStore:
    """SQLite-backed store for :class:`Session` documents.

    The whole aggregate is written as one JSON document so a save is a single
    atomic statement. ``status``, ``version`` and ``last_activity_ts`` are
    mirrored into columns for the version check and the inactivity sweep.
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        self._path = db_path or settings.DB_PATH
        migrate(self._path)

    def create(self, session: Session) -> Session:
        self._prune(session)
        with get_conn(self._path) as conn:
            conn.execute(
                """
                INSERT INTO sessions (
                    id, status, role, interview_type, interview_mode,
                    version, created_at, last_activity_ts, document
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.status,
                    session.role,
                    session.interview_type,
                    session.interview_mode,
                    session.version,
                    session.created_at.isoformat(),
                    session.last_activity.timestamp(),
                    session.model_dump_json(),
                ),
            )
        return session

    def find(self, session_id: str) -> Optional[Session]:
        with get_conn(self._path) as conn:
            row = conn.execute(
                "SELECT version, document FROM sessions WHERE id = ?",
                (session_id,),
            ).fetchone()
        if row is None:
            return None
        session = Session.model_validate_json(row["document"])
        session.version = int(row["version"])
        return session

    def get(self, session_id: str) -> Session:
        session = self.find(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def save(self, session: Session) -> Session:
        """Persist ``session`` if nobody else saved it since it was loaded.

        Raises:
            SessionNotFoundError: when the row no longer exists.
            ConcurrentUpdateError: when the stored version moved on.
        """

        self._prune(session)
        expected = session.version
        session.version = expected + 1
        try:
            with get_conn(self._path) as conn:
                cur = conn.execute(
                    """
                    UPDATE sessions
                    SET status = ?, version = ?, last_activity_ts = ?, document = ?
                    WHERE id = ? AND version = ?
                    """,
                    (
                        session.status,
                        session.version,
                        session.last_activity.timestamp(),
                        session.model_dump_json(),
                        session.id,
                        expected,
                    ),
                )
                updated = cur.rowcount
                exists = updated or conn.execute(
                    "SELECT 1 FROM sessions WHERE id = ?", (session.id,)
                ).fetchone() is not None
        except sqlite3.Error:
            session.version = expected
            raise
        if not updated:
            session.version = expected
            if not exists:
                raise SessionNotFoundError(session.id)
            logger.warning("Session save conflict session=%s expected_version=%d", session.id, expected)
            raise ConcurrentUpdateError(session.id, expected)
        return session

    def inactive_ids(self, before: datetime) -> List[str]:
        """Return ids of ongoing sessions idle since before ``before``."""

        with get_conn(self._path) as conn:
            rows = conn.execute(
                """
                SELECT id FROM sessions
                WHERE status = 'ongoing' AND last_activity_ts < ?
                ORDER BY last_activity_ts ASC
                """,
                (before.timestamp(),),
            ).fetchall()
        return [row["id"] for row in rows]

    @staticmethod
    def _prune(session: Session) -> None:
        session.prune_messages(settings.MESSAGE_LOG_LIMIT, settings.MESSAGE_LOG_KEEP)
        session.conversation_memory.prune()


__all__ = ["SessionStore"]
