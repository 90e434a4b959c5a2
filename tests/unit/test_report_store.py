import pytest

from interview_session.models import Session
from session_reports.models import FeedbackItem, FinalScores, ReportMetadata, ReportSummary
from session_reports.store import ReportStore
from storage.sessions import SessionStore


@pytest.fixture
def stored_session(tmp_db):
    session = Session(
        role="QA Engineer",
        company="Initech",
        interview_type="Behavioral",
        interview_mode="specific",
        status="completed",
    )
    return SessionStore(tmp_db).create(session)


def _complete(store: ReportStore, report_id: str) -> bool:
    return store.complete(
        report_id,
        summary=ReportSummary(strengths="a", weaknesses="b", next_steps="c"),
        final_scores=FinalScores(behavioral=3.0),
        overall_score=3.0,
        detailed_feedback=[FeedbackItem(question="Q", category="behavioral", answer="A", score=3.0)],
        metadata=ReportMetadata(total_questions=1, answered_questions=1),
    )


def test_create_if_absent_is_unique_per_session(tmp_db, stored_session):
    store = ReportStore(tmp_db)
    first, created = store.create_if_absent(stored_session)
    second, created_again = store.create_if_absent(stored_session)
    assert created
    assert not created_again
    assert second.id == first.id
    assert first.status == "pending"
    assert first.company == "Initech"
    assert store.count_for_session(stored_session.id) == 1
    assert store.get_by_session(stored_session.id).id == first.id


def test_status_only_moves_forward(tmp_db, stored_session):
    store = ReportStore(tmp_db)
    report, _ = store.create_if_absent(stored_session)

    assert not _complete(store, report.id)
    assert store.mark_processing(report.id)
    assert _complete(store, report.id)

    done = store.get(report.id)
    assert done.status == "completed"
    assert done.detailed_feedback[0].score == 3.0
    assert done.summary.next_steps == "c"

    assert not store.mark_processing(report.id, reopen_failed=True)
    assert not store.fail(report.id, "late failure")
    assert store.get(report.id).status == "completed"


def test_failed_report_reopens_only_on_retry(tmp_db, stored_session):
    store = ReportStore(tmp_db)
    report, _ = store.create_if_absent(stored_session)
    assert store.fail(report.id, "evaluator outage", ["Question 1: timeout"])

    failed = store.get(report.id)
    assert failed.status == "failed"
    assert failed.error == "evaluator outage"
    assert failed.metadata.processing_errors == ["Question 1: timeout", "evaluator outage"]

    assert not store.mark_processing(report.id)
    assert store.mark_processing(report.id, reopen_failed=True)
    assert store.get(report.id).status == "processing"


def test_unknown_report(tmp_db):
    store = ReportStore(tmp_db)
    assert store.get("missing") is None
    assert not store.fail("missing", "nope")
