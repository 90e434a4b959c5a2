"""Background worker turning ``generate-report`` jobs into completed reports."""
from __future__ import annotations

import logging
import threading
import time
from typing import List, Optional, Tuple

from agents.code_runner import extract_source
from agents.evaluators import evaluate_answer, fallback_summary, heuristic_evaluation, summarize
from config.registry import CODE_RUNNER_KEY, ModelRegistry
from config.settings import settings
from interview_session.models import HistoryItem, Session
from observability import log_event
from storage.jobs import Job, JobQueue
from storage.sessions import SessionStore

from .errors import ReportInputError
from .models import REPORT_JOB_NAME, CodeExecution, FeedbackItem, ReportMetadata, ReportSummary
from .scoring import apply_code_signal, category_means, overall_score
from .store import ReportStore

logger = logging.getLogger(__name__)


class ReportWorker:
    """Consume report jobs one at a time.

    Each job is scored in full or not at all: the report only becomes
    ``completed`` in a single guarded write, and any exception marks it
    ``failed`` before the job is handed back to the queue's retry policy.
    """

    def __init__(
        self,
        sessions: SessionStore,
        reports: ReportStore,
        queue: JobQueue,
        registry: ModelRegistry,
        *,
        poll_s: Optional[float] = None,
    ) -> None:
        self._sessions = sessions
        self._reports = reports
        self._queue = queue
        self._registry = registry
        self._poll_s = settings.WORKER_POLL_S if poll_s is None else poll_s
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> Optional[Job]:
        """Claim and process a single due job; returns it, or None when idle."""

        job = self._queue.claim()
        if job is None:
            return None
        if job.name != REPORT_JOB_NAME:
            self._queue.fail(job.id, f"Unknown job name '{job.name}'", retryable=False)
            return job
        self.process(job)
        return job

    def drain(self, limit: int = 100) -> int:
        """Process due jobs until the queue is idle; returns how many ran."""

        count = 0
        while count < limit and self.run_once() is not None:
            count += 1
        return count

    def process(self, job: Job) -> None:
        report_id = job.payload.get("reportId")
        session_id = job.payload.get("sessionId")
        if not report_id or not session_id:
            self._queue.fail(job.id, "Job payload is missing reportId or sessionId", retryable=False)
            return
        report = self._reports.get(report_id)
        if report is None:
            self._queue.fail(job.id, f"Report '{report_id}' not found", retryable=False)
            return
        if report.status == "completed":
            logger.info("Report already completed report=%s; acking duplicate delivery", report_id)
            self._queue.ack(job.id)
            return

        started = time.time()
        try:
            session = self._load_session(session_id)
            if not self._reports.mark_processing(report_id, reopen_failed=job.attempts > 1):
                raise ReportInputError(f"Report '{report_id}' cannot move to processing from {report.status}")
            feedback, errors = self._score(session)
            summary = self._summary(session.id, feedback, errors)
            scores = category_means(feedback)
            metadata = ReportMetadata(
                total_questions=len(session.history),
                answered_questions=len(feedback),
                processing_errors=errors,
                session_duration_minutes=session.duration_minutes(),
            )
            stored = self._reports.complete(
                report_id,
                summary=summary,
                final_scores=scores,
                overall_score=overall_score(scores),
                detailed_feedback=feedback,
                metadata=metadata,
            )
        except ReportInputError as exc:
            self._reports.fail(report_id, str(exc))
            self._queue.fail(job.id, str(exc), retryable=False)
            log_event("report_failed", session_id, report_id=report_id, job_id=job.id, reason=str(exc))
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("Report job failed job=%d report=%s", job.id, report_id)
            self._reports.fail(report_id, f"{type(exc).__name__}: {exc}")
            status = self._queue.fail(job.id, f"{type(exc).__name__}: {exc}")
            log_event("report_failed", session_id, report_id=report_id, job_id=job.id, status=status)
            return

        self._queue.ack(job.id)
        log_event(
            "report_completed" if stored else "report_skipped",
            session_id,
            report_id=report_id,
            job_id=job.id,
            ms=int((time.time() - started) * 1000),
        )

    def _load_session(self, session_id: str) -> Session:
        session = self._sessions.find(session_id)
        if session is None:
            raise ReportInputError(f"Session '{session_id}' not found")
        if session.status != "completed":
            raise ReportInputError(f"Session '{session_id}' is {session.status}, not completed")
        return session

    def _score(self, session: Session) -> Tuple[List[FeedbackItem], List[str]]:
        feedback: List[FeedbackItem] = []
        errors: List[str] = []
        for index, item in enumerate(session.history, start=1):
            question = session.question_for(item)
            if question is None or not item.user_answer.strip():
                continue
            feedback.append(self._score_item(session, index, item, errors))
        return feedback, errors

    def _score_item(self, session: Session, index: int, item: HistoryItem, errors: List[str]) -> FeedbackItem:
        question = session.question_for(item)
        method = "ai"
        try:
            result = evaluate_answer(
                self._registry,
                question.category,
                question.text,
                item.user_answer,
                question.ideal_answer,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Evaluator failed session=%s item=%d: %s", session.id, index, exc)
            errors.append(f"Question {index} ({question.category}): evaluator failed, heuristic score used: {exc}")
            result = heuristic_evaluation(question.category, question.text, item.user_answer, question.ideal_answer)
            method = "heuristic"

        score = result.score
        execution = None
        if question.category == "coding" and question.language_id and self._registry.has(CODE_RUNNER_KEY):
            execution = self._run_code(session.id, index, item.user_answer, question.language_id, errors)
            score = apply_code_signal(score, execution)

        answer = item.user_answer
        if len(answer) > settings.ANSWER_EXCERPT_CHARS:
            answer = answer[: settings.ANSWER_EXCERPT_CHARS].rstrip() + "..."
        return FeedbackItem(
            question=question.text,
            category=question.category,
            answer=answer,
            score=score,
            details=result.details,
            tips=result.tips,
            evaluation_method=method,
            code_execution=execution,
        )

    def _run_code(
        self,
        session_id: str,
        index: int,
        answer: str,
        language_id: int,
        errors: List[str],
    ) -> Optional[CodeExecution]:
        try:
            run = self._registry.get(CODE_RUNNER_KEY)(source_code=extract_source(answer), language_id=language_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Code runner failed session=%s item=%d: %s", session_id, index, exc)
            errors.append(f"Question {index} (coding): code execution unavailable: {exc}")
            return None
        return CodeExecution(status=run.status_description, stdout=run.stdout, stderr=run.stderr)

    def _summary(self, session_id: str, feedback: List[FeedbackItem], errors: List[str]) -> ReportSummary:
        if not feedback:
            return fallback_summary(feedback)
        try:
            return summarize(self._registry, feedback)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Summarizer failed session=%s: %s", session_id, exc)
            errors.append(f"Summary: generic fallback used: {exc}")
            return fallback_summary(feedback)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="report-worker", daemon=True)
        self._thread.start()
        logger.info("Report worker started poll=%.1fs", self._poll_s)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self._queue.requeue_stale()
                job = self.run_once()
            except Exception:  # noqa: BLE001
                logger.exception("Report worker iteration failed")
                job = None
            if job is None:
                self._stop.wait(self._poll_s)


__all__ = ["ReportWorker"]
