"""Lightweight CLI helpers for inspecting sessions, reports and report jobs."""
from __future__ import annotations

import argparse
import sqlite3
from typing import Optional

from config.settings import settings


def _connect(db_path: Optional[str] = None) -> sqlite3.Connection:
    return sqlite3.connect(db_path or settings.DB_PATH)


def tail_jobs(limit: int = 20, db_path: Optional[str] = None) -> None:
    conn = _connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT updated_at, id, name, status, attempts, max_attempts, payload, last_error
            FROM report_jobs
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, job_id, name, status, attempts, max_attempts, payload, error = row
            suffix = f" error={error}" if error else ""
            print(f"[{ts}] job={job_id} {name} -> {status} attempts={attempts}/{max_attempts} payload={payload}{suffix}")
    finally:
        conn.close()


def tail_reports(limit: int = 20, db_path: Optional[str] = None) -> None:
    conn = _connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT updated_at, id, session_id, status, role, overall_score, error
            FROM reports
            ORDER BY updated_at DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, report_id, session_id, status, role, overall, error = row
            suffix = f" error={error}" if error else ""
            print(f"[{ts}] report={report_id} session={session_id} {role} -> {status} overall={overall}{suffix}")
    finally:
        conn.close()


def tail_sessions(limit: int = 20, db_path: Optional[str] = None) -> None:
    conn = _connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT created_at, id, role, interview_type, interview_mode, status, version
            FROM sessions
            ORDER BY last_activity_ts DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, session_id, role, interview_type, mode, status, version = row
            print(f"[{ts}] {session_id} {role} ({interview_type}/{mode}) -> {status} v{version}")
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-jobs", type=int, help="Show the latest report jobs")
    parser.add_argument("--tail-reports", type=int, help="Show the most recently updated reports")
    parser.add_argument("--tail-sessions", type=int, help="Show the most recently active sessions")
    parser.add_argument("--db", help="SQLite path (defaults to settings.DB_PATH)")
    args = parser.parse_args()

    if args.tail_jobs:
        tail_jobs(args.tail_jobs, args.db)
    if args.tail_reports:
        tail_reports(args.tail_reports, args.db)
    if args.tail_sessions:
        tail_sessions(args.tail_sessions, args.db)


if __name__ == "__main__":
    main()
