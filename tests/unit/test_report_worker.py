import pytest

import session_reports.worker as worker_module
from agents.types import CodeRun
from config.registry import CODE_RUNNER_KEY, EVAL_BEHAVIORAL_KEY, SUMMARY_KEY
from interview_session.models import Session
from session_reports.models import REPORT_JOB_NAME, job_payload

STAR_ANSWER = (
    "The situation was a failing deploy pipeline on our project. My task was to restore releases. "
    "I implemented a rollback script and we built alerts. As a result we reduced failed deploys by 40%."
)


def _finished_session(services, answers=2, **overrides):
    params = {"role": "Backend Engineer", "interview_type": "Full Simulation", "interview_mode": "full"}
    params.update(overrides)
    session = services.machine.start_session(**params)
    for _ in range(answers):
        services.machine.submit_answer(session.id, STAR_ANSWER)
    report_id = services.machine.end_session(session.id)
    return session.id, report_id


def test_worker_completes_report(services):
    session_id, report_id = _finished_session(services)
    assert services.worker.drain() == 1

    report = services.reports.get(report_id)
    assert report.status == "completed"
    assert len(report.detailed_feedback) == 2
    assert all(item.evaluation_method == "ai" for item in report.detailed_feedback)
    assert report.final_scores.behavioral == 4.0
    assert report.final_scores.theory == 0.0
    assert report.overall_score == 4.0
    assert report.summary.strengths == "Communicates clearly."
    assert report.summary.next_steps == "- Practise system design\n- Review complexity analysis"
    assert report.metadata.total_questions == 3
    assert report.metadata.answered_questions == 2
    assert report.metadata.processing_errors == []
    assert services.queue.counts()["done"] == 1


def test_evaluator_failure_falls_back_to_heuristic(services, fake_models):
    calls = {"n": 0}

    def flaky(**_):
        calls["n"] += 1
        if calls["n"] == 1:
            raise TimeoutError("evaluator timed out")
        return {"score": 4.0, "details": "ok", "tips": "none"}

    fake_models.bind(EVAL_BEHAVIORAL_KEY, flaky)
    _, report_id = _finished_session(services)
    services.worker.drain()

    report = services.reports.get(report_id)
    assert report.status == "completed"
    methods = [item.evaluation_method for item in report.detailed_feedback]
    assert methods == ["heuristic", "ai"]
    assert len(report.metadata.processing_errors) == 1
    assert report.metadata.processing_errors[0].startswith("Question 1 (behavioral)")


def test_summarizer_failure_uses_generic_summary(services, fake_models):
    def broken(**_):
        raise ConnectionError("summarizer down")

    fake_models.bind(SUMMARY_KEY, broken)
    _, report_id = _finished_session(services)
    services.worker.drain()

    report = services.reports.get(report_id)
    assert report.status == "completed"
    assert report.summary.strengths
    assert report.summary.next_steps
    assert report.metadata.processing_errors[0].startswith("Summary")


def test_session_without_answers_gets_fallback_summary(services):
    _, report_id = _finished_session(services, answers=0)
    services.worker.drain()

    report = services.reports.get(report_id)
    assert report.status == "completed"
    assert report.detailed_feedback == []
    assert report.overall_score == 0.0
    assert "No answers" in report.summary.weaknesses


def test_duplicate_delivery_is_acked_without_rework(services):
    session_id, report_id = _finished_session(services)
    services.worker.drain()
    first = services.reports.get(report_id)

    services.queue.enqueue(REPORT_JOB_NAME, {"reportId": report_id, "sessionId": session_id})
    assert services.worker.drain() == 1
    assert services.reports.get(report_id).updated_at == first.updated_at
    assert services.queue.counts() == {"queued": 0, "running": 0, "done": 2, "dead": 0}


def test_unusable_jobs_are_dead_lettered(services):
    services.queue.enqueue("unknown-job", {})
    services.queue.enqueue(REPORT_JOB_NAME, {"reportId": "r"})
    services.queue.enqueue(REPORT_JOB_NAME, {"reportId": "missing", "sessionId": "missing"})
    assert services.worker.drain() == 3
    assert services.queue.counts()["dead"] == 3


def test_report_for_unfinished_session_fails_without_retry(services):
    session = services.sessions.create(
        Session(role="Analyst", interview_type="Behavioral", interview_mode="specific")
    )
    report, _ = services.reports.create_if_absent(session)
    job_id = services.queue.enqueue(REPORT_JOB_NAME, job_payload(report))
    services.worker.drain()

    failed = services.reports.get(report.id)
    assert failed.status == "failed"
    assert "not completed" in failed.error
    assert services.queue.get(job_id).status == "dead"


def test_transient_failure_is_retried_and_reopens_report(services, monkeypatch):
    calls = {"n": 0}
    real = worker_module.category_means

    def flaky(feedback):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("disk hiccup")
        return real(feedback)

    monkeypatch.setattr(worker_module, "category_means", flaky)
    _, report_id = _finished_session(services)

    assert services.worker.drain() == 2
    report = services.reports.get(report_id)
    assert report.status == "completed"
    assert report.error is None
    assert services.queue.counts()["done"] == 1


def test_coding_answers_use_code_runner_signal(services, fake_models):
    runs = []

    def runner(*, source_code, language_id):
        runs.append((source_code, language_id))
        return CodeRun(stdout="True\n", status_description="Accepted")

    fake_models.bind(CODE_RUNNER_KEY, runner)
    session = services.machine.start_session(
        role="Backend Engineer", interview_type="Coding Challenge", interview_mode="specific"
    )
    answer = "```python\ndef is_palindrome(s):\n    return s == s[::-1]\n```"
    services.machine.submit_answer(session.id, answer)
    report_id = services.machine.end_session(session.id)
    services.worker.drain()

    report = services.reports.get(report_id)
    item = report.detailed_feedback[0]
    assert runs == [("def is_palindrome(s):\n    return s == s[::-1]", 71)]
    assert item.code_execution.status == "Accepted"
    assert item.score == pytest.approx(4.0)
    assert report.final_scores.coding == pytest.approx(4.0)
