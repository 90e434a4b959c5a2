"""Tests for the SQLite migration and the session store writes."""
from __future__ import annotations

import os
import sqlite3
from datetime import timedelta

import pytest

from interview_session.errors import ConcurrentUpdateError, SessionNotFoundError
from interview_session.models import Session, utcnow
from storage.migrate import migrate
from storage.sessions import SessionStore


def _session(**overrides) -> Session:
    data = {"role": "Data Engineer", "interview_type": "Technical Screen", "interview_mode": "specific"}
    data.update(overrides)
    return Session(**data)


def test_migrate_creates_tables(tmp_db: str):
    migrate(tmp_db)
    assert os.path.exists(tmp_db)
    with sqlite3.connect(tmp_db) as conn:
        names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    assert {"sessions", "reports", "report_jobs"} <= names


def test_create_and_reload_round_trips_document(tmp_db: str):
    store = SessionStore(tmp_db)
    session = _session(candidate_context="Spark and Airflow")
    session.say("Welcome", "greeting")
    store.create(session)

    loaded = store.get(session.id)
    assert loaded.role == "Data Engineer"
    assert loaded.candidate_context == "Spark and Airflow"
    assert loaded.messages[0].kind == "greeting"
    assert loaded.version == 0
    assert store.find("missing") is None
    with pytest.raises(SessionNotFoundError):
        store.get("missing")


def test_save_bumps_version_and_rejects_stale_copy(tmp_db: str):
    store = SessionStore(tmp_db)
    session = store.create(_session())
    first = store.get(session.id)
    stale = store.get(session.id)

    first.warnings = 1
    store.save(first)
    assert store.get(session.id).version == 1

    stale.warnings = 2
    with pytest.raises(ConcurrentUpdateError):
        store.save(stale)
    assert stale.version == 0
    assert store.get(session.id).warnings == 1


def test_save_unknown_session_raises_not_found(tmp_db: str):
    store = SessionStore(tmp_db)
    with pytest.raises(SessionNotFoundError):
        store.save(_session())


def test_message_log_is_pruned_but_keeps_greeting(tmp_db: str):
    store = SessionStore(tmp_db)
    session = _session()
    session.say("Welcome", "greeting")
    for i in range(60):
        session.say(f"line {i}", "question")
    store.create(session)

    loaded = store.get(session.id)
    assert len(loaded.messages) == 45
    assert loaded.messages[0].content == "Welcome"
    assert loaded.messages[-1].content == "line 59"


def test_inactive_ids_only_returns_idle_ongoing_sessions(tmp_db: str):
    store = SessionStore(tmp_db)
    now = utcnow()
    idle = _session(last_activity=now - timedelta(minutes=45))
    fresh = _session(last_activity=now)
    finished = _session(last_activity=now - timedelta(hours=2), status="completed")
    for session in (idle, fresh, finished):
        store.create(session)

    assert store.inactive_ids(now - timedelta(minutes=30)) == [idle.id]
