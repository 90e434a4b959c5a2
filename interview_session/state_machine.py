"""Session state machine applying one answer per call."""
from __future__ import annotations

import logging
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from agents.answer_analyzer import analyze
from agents.conversation_memory import remember
from agents.dialogue_orchestrator import DialogueOrchestrator
from agents.difficulty_policy import category_for, decide
from agents.types import ContinueAction, EndInterviewAction, PolicyDecision
from config.settings import settings
from observability import log_event, span
from storage.sessions import SessionStore

from .errors import EmptyAnswerError, NoOpenQuestionError, SessionNotFoundError, SessionStateError
from .finalizer import Finalizer
from .locks import SessionLocks
from .models import AnswerAnalysis, Question, Session, utcnow
from .question_bank import ideal_answer_for, pick_seed

logger = logging.getLogger(__name__)

GREETING = (
    "Hi, thanks for coming in today! I'll be conducting your {interview_type} interview "
    "for the {role} position at {company}. Let's get started."
)


class TurnOutcome(BaseModel):
    session_id: str
    action: Literal["CONTINUE", "END_INTERVIEW", "NOOP"]
    status: str
    message: Optional[str] = None
    question: Optional[Question] = None
    transition_text: Optional[str] = None
    is_warning: bool = False
    current_stage: int = 1
    current_difficulty: str = "medium"
    warnings: int = 0
    end_reason: Optional[str] = None
    report_id: Optional[str] = None
    analysis: Optional[AnswerAnalysis] = None
    events: List[Dict] = Field(default_factory=list)


class InterviewStateMachine:
    """Owns every mutation of a :class:`Session` after it is created.

    Each call runs under the session's lock and ends in a single versioned
    save, so at most one resolution is committed per open question.
    """

    def __init__(
        self,
        sessions: SessionStore,
        finalizer: Finalizer,
        orchestrator: DialogueOrchestrator,
        locks: Optional[SessionLocks] = None,
    ) -> None:
        self._sessions = sessions
        self._finalizer = finalizer
        self._orchestrator = orchestrator
        self._locks = locks if locks is not None else SessionLocks()

    def start_session(
        self,
        *,
        role: str,
        interview_type: str,
        interview_mode: str,
        company: Optional[str] = None,
        candidate_context: Optional[str] = None,
    ) -> Session:
        """Create a session with the greeting and the first seed question open."""

        session = Session(
            role=role,
            company=company or settings.DEFAULT_COMPANY,
            interview_type=interview_type,
            interview_mode=interview_mode,
            candidate_context=candidate_context,
        )
        session.say(
            GREETING.format(interview_type=interview_type, role=session.role, company=session.company),
            "greeting",
        )
        category = category_for(interview_mode, interview_type, session.current_stage)
        seed = pick_seed(category, session.current_difficulty)
        question = session.resolve_question(
            seed.text,
            category,
            session.current_difficulty,
            source="seed",
            ideal_answer=seed.ideal_answer,
            language_id=seed.language_id,
        )
        session.ask(question, stage=session.current_stage)
        session.say(question.text, "question")
        self._sessions.create(session)
        log_event("session_started", session.id, stage=session.current_stage, difficulty=session.current_difficulty)
        return session

    def submit_answer(self, session_id: str, answer: str) -> TurnOutcome:
        """Record ``answer`` against the open question and decide what comes next.

        Raises:
            SessionNotFoundError: unknown ``session_id``.
            NoOpenQuestionError: the session has no question awaiting an answer.
            EmptyAnswerError: ``answer`` is blank.
            ConcurrentUpdateError: another writer saved the session first.
        """

        with self._locks.lock_for(session_id):
            session = self._load(session_id)
            if session.is_terminal:
                self._locks.discard(session_id)
                return self._outcome(session, "NOOP")
            item = session.open_item()
            if item is None:
                raise NoOpenQuestionError(f"Session '{session_id}' has no open question")
            if not answer.strip():
                raise EmptyAnswerError(f"Session '{session_id}' received a blank answer")
            question = session.question_for(item)
            outcome = self._outcome(session, "NOOP")

            with span(outcome, "analyze"):
                item.user_answer = answer
                item.timestamp_end = utcnow()
                analysis = analyze(answer, question.category, ideal_answer=question.ideal_answer)
                item.analysis = analysis
                session.say(answer, "answer", role="user")
                if analysis.is_rude:
                    session.warnings += 1
                else:
                    remember(session.conversation_memory, answer)

            with span(outcome, "policy"):
                decision = self._apply_policy(session, analysis)

            with span(outcome, "dialogue"):
                action = self._orchestrator.next_action(session, analysis, decision, answer)

            if isinstance(action, ContinueAction):
                next_question = self._continue(session, action, decision, question)
                outcome.action = "CONTINUE"
                outcome.message = action.dialogue_text
                outcome.question = next_question
                outcome.is_warning = action.is_warning
                outcome.transition_text = None if action.is_warning else decision.transition_text
            elif isinstance(action, EndInterviewAction):
                session.say(action.dialogue_text, "closing")
                self._finalizer.complete(session, action.reason)
                outcome.action = "END_INTERVIEW"
                outcome.message = action.dialogue_text
            else:  # pragma: no cover - orchestrator never returns ParseFailure
                raise SessionStateError(f"Unexpected dialogue action {action!r}")

            session.touch()
            self._sessions.save(session)
            log_event(
                "turn",
                session.id,
                action=outcome.action,
                stage=session.current_stage,
                difficulty=session.current_difficulty,
                status=session.status,
            )

        if session.is_terminal:
            self._locks.discard(session_id)
        if session.status == "completed":
            report, _ = self._finalizer.request_report(session)
            outcome.report_id = report.id
        outcome.analysis = analysis
        outcome.status = session.status
        outcome.current_stage = session.current_stage
        outcome.current_difficulty = session.current_difficulty
        outcome.warnings = session.warnings
        outcome.end_reason = session.end_reason
        return outcome

    def end_session(self, session_id: str) -> Optional[str]:
        """Explicit end requested by the candidate."""

        self._sessions.get(session_id)
        return self._finalizer.finalize(session_id, "user_ended")

    def abandon(self, session_id: str) -> Session:
        """Leave the session without a report; idempotent for abandoned sessions."""

        with self._locks.lock_for(session_id):
            session = self._load(session_id)
            changed = session.status == "ongoing"
            if changed:
                session.status = "abandoned"
                session.touch()
                self._sessions.save(session)
        self._locks.discard(session_id)
        if session.status != "abandoned":
            raise SessionStateError(f"Session '{session_id}' is already {session.status}")
        if changed:
            log_event("session_abandoned", session_id, status="abandoned")
        return session

    def _load(self, session_id: str) -> Session:
        try:
            return self._sessions.get(session_id)
        except SessionNotFoundError:
            self._locks.discard(session_id)
            raise

    def _apply_policy(self, session: Session, analysis: AnswerAnalysis) -> PolicyDecision:
        if analysis.is_rude:
            return PolicyDecision(
                next_difficulty=session.current_difficulty,
                next_stage=session.current_stage,
                next_category=category_for(session.interview_mode, session.interview_type, session.current_stage),
            )
        decision = decide(
            session.history,
            session.current_difficulty,
            session.current_stage,
            session.interview_mode,
            interview_type=session.interview_type,
        )
        if decision.difficulty_changed:
            session.current_difficulty = decision.next_difficulty
            session.adaptation_count += 1
        if decision.next_stage > session.current_stage:
            session.current_stage = decision.next_stage
        return decision

    def _continue(
        self,
        session: Session,
        action: ContinueAction,
        decision: PolicyDecision,
        previous: Question,
    ) -> Question:
        if action.is_warning:
            session.say(action.dialogue_text, "warning")
            session.ask(previous, stage=session.current_stage, is_follow_up=True)
            return previous
        if decision.transition_text:
            session.say(decision.transition_text, "transition")
        text = action.dialogue_text
        seed_ideal = ideal_answer_for(text)
        question = session.resolve_question(
            text,
            action.category,
            action.difficulty,
            source="seed" if seed_ideal else "ai",
            ideal_answer=seed_ideal,
            language_id=_language_for(action.category, action.difficulty),
        )
        session.ask(question, stage=session.current_stage, is_follow_up=action.is_follow_up)
        session.say(text, "followup" if action.is_follow_up else "question")
        return question

    @staticmethod
    def _outcome(session: Session, action: str) -> TurnOutcome:
        return TurnOutcome(
            session_id=session.id,
            action=action,
            status=session.status,
            current_stage=session.current_stage,
            current_difficulty=session.current_difficulty,
            warnings=session.warnings,
            end_reason=session.end_reason,
        )


def _language_for(category: str, difficulty: str) -> Optional[int]:
    if category != "coding":
        return None
    return pick_seed("coding", difficulty).language_id


__all__ = ["InterviewStateMachine", "TurnOutcome"]
