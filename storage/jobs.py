"""Durable at-least-once job queue on top of SQLite."""
from __future__ import annotations

import datetime as dt
import json
import logging
import time
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from config.settings import settings

from .migrate import migrate
from .sqlite import get_conn, immediate

logger = logging.getLogger(__name__)

JobStatus = Literal["queued", "running", "done", "dead"]


class Job(BaseModel):
    id: int
    name: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    status: JobStatus
    attempts: int = 0
    max_attempts: int
    last_error: Optional[str] = None


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _row_to_job(row) -> Job:
    return Job(
        id=row["id"],
        name=row["name"],
        payload=json.loads(row["payload"]),
        status=row["status"],
        attempts=row["attempts"],
        max_attempts=row["max_attempts"],
        last_error=row["last_error"],
    )


class JobQueue:
    """Named jobs with retry backoff and a dead-letter state.

    A claimed job stays ``running`` until it is acked or failed; claims older
    than the visibility timeout are handed out again by :meth:`requeue_stale`.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        *,
        max_attempts: Optional[int] = None,
        backoff_s: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = db_path or settings.DB_PATH
        self.max_attempts = max_attempts or settings.REPORT_JOB_MAX_ATTEMPTS
        self.backoff_s = settings.REPORT_JOB_BACKOFF_S if backoff_s is None else backoff_s
        self._clock = clock
        migrate(self._path)

    def enqueue(self, name: str, payload: Dict[str, Any]) -> int:
        body = json.dumps(payload)
        now = _now_iso()
        with get_conn(self._path) as conn:
            cur = conn.execute(
                """
                INSERT INTO report_jobs (
                    name, payload, status, attempts, max_attempts, available_at, created_at, updated_at
                ) VALUES (?, ?, 'queued', 0, ?, ?, ?, ?)
                """,
                (name, body, self.max_attempts, self._clock(), now, now),
            )
            job_id = int(cur.lastrowid)
        logger.info("Job enqueued id=%d name=%s", job_id, name)
        return job_id

    def claim(self) -> Optional[Job]:
        """Take the oldest due job and mark it running."""

        now = self._clock()
        with immediate(self._path) as conn:
            row = conn.execute(
                """
                SELECT * FROM report_jobs
                WHERE status = 'queued' AND available_at <= ?
                ORDER BY available_at ASC, id ASC
                LIMIT 1
                """,
                (now,),
            ).fetchone()
            if row is None:
                return None
            conn.execute(
                """
                UPDATE report_jobs
                SET status = 'running', attempts = attempts + 1, claimed_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (now, _now_iso(), row["id"]),
            )
            claimed = conn.execute("SELECT * FROM report_jobs WHERE id = ?", (row["id"],)).fetchone()
        return _row_to_job(claimed)

    def ack(self, job_id: int) -> None:
        with get_conn(self._path) as conn:
            conn.execute(
                "UPDATE report_jobs SET status = 'done', updated_at = ? WHERE id = ?",
                (_now_iso(), job_id),
            )

    def fail(self, job_id: int, error: str, *, retryable: bool = True) -> JobStatus:
        """Record a failed attempt; returns the job's new status."""

        with immediate(self._path) as conn:
            row = conn.execute(
                "SELECT attempts, max_attempts FROM report_jobs WHERE id = ?",
                (job_id,),
            ).fetchone()
            if row is None:
                raise KeyError(f"Job {job_id} not found")
            attempts = int(row["attempts"])
            if retryable and attempts < int(row["max_attempts"]):
                status: JobStatus = "queued"
                available_at = self._clock() + self.backoff_s * (2 ** max(attempts - 1, 0))
            else:
                status = "dead"
                available_at = self._clock()
            conn.execute(
                """
                UPDATE report_jobs
                SET status = ?, available_at = ?, claimed_at = NULL, last_error = ?, updated_at = ?
                WHERE id = ?
                """,
                (status, available_at, error[:1000], _now_iso(), job_id),
            )
        logger.warning("Job failed id=%d attempts=%d status=%s error=%s", job_id, attempts, status, error)
        return status

    def requeue_stale(self, older_than_s: Optional[float] = None) -> int:
        """Return running jobs whose claim expired to the queue."""

        timeout = settings.JOB_VISIBILITY_TIMEOUT_S if older_than_s is None else older_than_s
        now = self._clock()
        with get_conn(self._path) as conn:
            cur = conn.execute(
                """
                UPDATE report_jobs
                SET status = 'queued', available_at = ?, claimed_at = NULL, updated_at = ?
                WHERE status = 'running' AND claimed_at < ?
                """,
                (now, _now_iso(), now - timeout),
            )
            count = cur.rowcount
        if count:
            logger.warning("Requeued %d stale job(s)", count)
        return count

    def get(self, job_id: int) -> Optional[Job]:
        with get_conn(self._path) as conn:
            row = conn.execute("SELECT * FROM report_jobs WHERE id = ?", (job_id,)).fetchone()
        return _row_to_job(row) if row else None

    def list_jobs(self, limit: int = 20, name: Optional[str] = None) -> List[Job]:
        query = "SELECT * FROM report_jobs"
        params: List[Any] = []
        if name:
            query += " WHERE name = ?"
            params.append(name)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        with get_conn(self._path) as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_job(row) for row in rows]

    def counts(self) -> Dict[str, int]:
        with get_conn(self._path) as conn:
            rows = conn.execute("SELECT status, COUNT(*) AS n FROM report_jobs GROUP BY status").fetchall()
        result = {"queued": 0, "running": 0, "done": 0, "dead": 0}
        result.update({row["status"]: int(row["n"]) for row in rows})
        return result


__all__ = ["Job", "JobQueue", "JobStatus"]
