from __future__ import annotations  # Report persistence layer

import json
import sqlite3
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from config.settings import settings
from interview_session.models import Session
from storage.migrate import migrate
from storage.sqlite import get_conn

from .models import FeedbackItem, FinalScores, Report, ReportMetadata, ReportSummary


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ReportStore:  # SQLite-backed reports with forward-only status updates
    def __init__(self, db_path: Optional[str] = None) -> None:
        self._path = db_path or settings.DB_PATH
        migrate(self._path)

    def create_if_absent(self, session: Session) -> Tuple[Report, bool]:
        """Insert a pending report unless the session already has one.

        Returns the stored report and whether this call created it. The
        ``UNIQUE(session_id)`` constraint decides races between callers.
        """

        draft = Report(session_id=session.id, role=session.role, company=session.company)
        with get_conn(self._path) as conn:
            cur = conn.execute(
                """
                INSERT OR IGNORE INTO reports (
                    id, session_id, status, role, company, summary_json, final_scores_json,
                    overall_score, detailed_feedback_json, metadata_json, error, created_at, updated_at
                ) VALUES (?, ?, 'pending', ?, ?, NULL, ?, 0, '[]', ?, NULL, ?, ?)
                """,
                (
                    draft.id,
                    draft.session_id,
                    draft.role,
                    draft.company,
                    draft.final_scores.model_dump_json(),
                    draft.metadata.model_dump_json(),
                    draft.created_at.isoformat(),
                    draft.updated_at.isoformat(),
                ),
            )
            created = cur.rowcount == 1
            row = conn.execute("SELECT * FROM reports WHERE session_id = ?", (session.id,)).fetchone()
        return self._from_row(row), created

    def get(self, report_id: str) -> Optional[Report]:
        with get_conn(self._path) as conn:
            row = conn.execute("SELECT * FROM reports WHERE id = ?", (report_id,)).fetchone()
        return self._from_row(row) if row else None

    def get_by_session(self, session_id: str) -> Optional[Report]:
        with get_conn(self._path) as conn:
            row = conn.execute("SELECT * FROM reports WHERE session_id = ?", (session_id,)).fetchone()
        return self._from_row(row) if row else None

    def count_for_session(self, session_id: str) -> int:
        with get_conn(self._path) as conn:
            row = conn.execute("SELECT COUNT(*) FROM reports WHERE session_id = ?", (session_id,)).fetchone()
        return int(row[0])

    def mark_processing(self, report_id: str, *, reopen_failed: bool = False) -> bool:
        """Move a report to ``processing``; ``failed`` only re-opens on a retry."""

        allowed = ["pending", "processing"]
        if reopen_failed:
            allowed.append("failed")
        return self._transition(report_id, "processing", allowed)

    def complete(
        self,
        report_id: str,
        *,
        summary: ReportSummary,
        final_scores: FinalScores,
        overall_score: float,
        detailed_feedback: List[FeedbackItem],
        metadata: ReportMetadata,
    ) -> bool:
        with get_conn(self._path) as conn:
            cur = conn.execute(
                """
                UPDATE reports
                SET status = 'completed',
                    summary_json = ?,
                    final_scores_json = ?,
                    overall_score = ?,
                    detailed_feedback_json = ?,
                    metadata_json = ?,
                    error = NULL,
                    updated_at = ?
                WHERE id = ? AND status = 'processing'
                """,
                (
                    summary.model_dump_json(),
                    final_scores.model_dump_json(),
                    overall_score,
                    json.dumps([item.model_dump(mode="json") for item in detailed_feedback]),
                    metadata.model_dump_json(),
                    _now(),
                    report_id,
                ),
            )
            return cur.rowcount == 1

    def fail(self, report_id: str, error: str, processing_errors: Iterable[str] = ()) -> bool:
        """Mark a non-terminal report ``failed`` and record why."""

        with get_conn(self._path) as conn:
            row = conn.execute("SELECT metadata_json FROM reports WHERE id = ?", (report_id,)).fetchone()
            if row is None:
                return False
            metadata = ReportMetadata.model_validate_json(row["metadata_json"])
            metadata.processing_errors.extend(processing_errors)
            metadata.processing_errors.append(error)
            cur = conn.execute(
                """
                UPDATE reports
                SET status = 'failed', error = ?, metadata_json = ?, updated_at = ?
                WHERE id = ? AND status IN ('pending', 'processing')
                """,
                (error, metadata.model_dump_json(), _now(), report_id),
            )
            return cur.rowcount == 1

    def list_recent(self, limit: int = 20) -> List[Report]:
        with get_conn(self._path) as conn:
            rows = conn.execute("SELECT * FROM reports ORDER BY created_at DESC LIMIT ?", (limit,)).fetchall()
        return [self._from_row(row) for row in rows]

    def _transition(self, report_id: str, target: str, allowed: List[str]) -> bool:
        marks = ", ".join("?" for _ in allowed)
        with get_conn(self._path) as conn:
            cur = conn.execute(
                f"UPDATE reports SET status = ?, updated_at = ? WHERE id = ? AND status IN ({marks})",
                (target, _now(), report_id, *allowed),
            )
            return cur.rowcount == 1

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Report:
        summary = ReportSummary.model_validate_json(row["summary_json"]) if row["summary_json"] else None
        return Report(
            id=row["id"],
            session_id=row["session_id"],
            status=row["status"],
            role=row["role"],
            company=row["company"],
            summary=summary,
            final_scores=FinalScores.model_validate_json(row["final_scores_json"]),
            overall_score=row["overall_score"],
            detailed_feedback=[FeedbackItem.model_validate(item) for item in json.loads(row["detailed_feedback_json"])],
            metadata=ReportMetadata.model_validate_json(row["metadata_json"]),
            error=row["error"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


__all__ = ["ReportStore"]
