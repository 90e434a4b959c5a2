from __future__ import annotations  # Dialogue orchestrator turning session state into the next interviewer action

import logging
import time
from textwrap import dedent
from typing import Any, Callable, Dict, List, Optional

from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from pydantic import BaseModel, ValidationError

from agents.answer_analyzer import detect_answer_type
from agents.conversation_memory import describe as describe_memory
from agents.prompting import bullet_list, clamp_text, transcript_messages
from agents.types import ContinueAction, DialogueReply, EndInterviewAction, ParsedAction, ParseFailure, PolicyDecision
from config.registry import DIALOGUE_KEY, ModelRegistry
from config.settings import settings
from interview_session.models import AnswerAnalysis, CATEGORIES, Session
from llm_gateway import coerce_messages, extract_json_object
from observability import log_event

logger = logging.getLogger(__name__)

APOLOGY_LINE = (
    "I'm sorry, we've run into a technical problem on our side, so we'll have to stop the interview here. "
    "Thank you for your time; your report will still be prepared from the answers you gave."
)
CLOSING_LINE = (
    "That brings us to the end of the interview. Thank you for your time and thoughtful answers; "
    "your report will be ready shortly."
)
CONDUCT_CLOSING_LINE = (
    "I have to end the interview here because of repeated inappropriate language. "
    "Thank you for your time."
)
WARNING_LINE = (
    "Let's keep our conversation professional, please. I'll repeat the question: {question}"
)

INTERVIEWER_GUIDANCE = dedent(  # Persona and output contract for the dialogue collaborator
    """
    You are a professional interviewer running a {interview_type} interview for the {role} position at {company}.
    Ask one question at a time, react briefly to the candidate's last answer, and stay on topic.
    Interview stage: {stage} of 3. Target question category: {category}. Target difficulty: {difficulty}.
    When the last answer was weak, you may ask a short follow-up instead of a new question.
    Reply with JSON only: {{"action": "CONTINUE" or "END_INTERVIEW", "dialogue": "...", "category": "...", "difficulty": "...", "is_follow_up": false}}
    """
).strip()


class DialogueOrchestrator:
    """Ask the dialogue collaborator for the next line and fail closed.

    Rudeness and policy completion are decided locally; the collaborator is
    consulted with bounded retries and any unusable reply becomes an
    ``EndInterviewAction`` with ``reason="technical_error"``.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        *,
        max_attempts: Optional[int] = None,
        backoff_s: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._registry = registry
        self._max_attempts = max(1, max_attempts or settings.DIALOGUE_MAX_ATTEMPTS)
        self._backoff_s = settings.DIALOGUE_BACKOFF_S if backoff_s is None else backoff_s
        self._sleep = sleep
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", INTERVIEWER_GUIDANCE),
                MessagesPlaceholder("transcript"),
                (
                    "human",
                    (
                        "Candidate background: {candidate_context}\n"
                        "Remembered from earlier answers: {memory}\n"
                        "Last question: {last_question}\n"
                        "Last answer type: {answer_type}\n"
                        "Heuristic notes on the last answer:\n{analysis_notes}\n"
                        "Stage transition to acknowledge: {transition}\n\n"
                        "{instruction}"
                    ),
                ),
            ]
        )

    def next_action(
        self,
        session: Session,
        analysis: AnswerAnalysis,
        decision: PolicyDecision,
        answer: str,
    ) -> ParsedAction:
        """Return a ``ContinueAction`` or ``EndInterviewAction`` for this turn."""

        last_question = self._last_question(session)
        if analysis.is_rude:
            return self._conduct_action(session, last_question)

        if decision.complete:
            parsed = self._consult(session, analysis, decision, answer, closing=True)
            if isinstance(parsed, EndInterviewAction):
                return parsed
            return EndInterviewAction(dialogue_text=CLOSING_LINE, reason="natural_conclusion")

        parsed = self._consult(session, analysis, decision, answer, closing=False)
        if isinstance(parsed, ParseFailure):
            log_event("dialogue_fallback", session.id, reason="technical_error", outcome=parsed.error)
            return EndInterviewAction(dialogue_text=APOLOGY_LINE, reason="technical_error")
        return parsed

    def _conduct_action(self, session: Session, last_question) -> ParsedAction:
        if session.warnings >= settings.MAX_WARNINGS:
            log_event("conduct_end", session.id, reason="inappropriate_behavior")
            return EndInterviewAction(dialogue_text=CONDUCT_CLOSING_LINE, reason="inappropriate_behavior")
        text = last_question.text if last_question else "Could you tell me a bit more about your experience?"
        category = last_question.category if last_question else "behavioral"
        log_event("conduct_warning", session.id, action="warn")
        return ContinueAction(
            dialogue_text=WARNING_LINE.format(question=text),
            category=category,
            difficulty=session.current_difficulty,
            is_warning=True,
        )

    def _consult(
        self,
        session: Session,
        analysis: AnswerAnalysis,
        decision: PolicyDecision,
        answer: str,
        *,
        closing: bool,
    ) -> ParsedAction:
        messages = self.build_messages(session, analysis, decision, answer, closing=closing)
        inputs = {
            "session_id": session.id,
            "stage": decision.next_stage,
            "category": decision.next_category,
            "difficulty": decision.next_difficulty,
            "closing": closing,
        }
        last: ParsedAction = ParseFailure(error="no attempt made")
        for attempt in range(self._max_attempts):
            if attempt:
                self._sleep(self._backoff_s * (2 ** (attempt - 1)))
            try:
                raw = self._registry.get(DIALOGUE_KEY)(messages=messages, inputs=inputs)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Dialogue collaborator failed session=%s attempt=%d/%d: %s",
                    session.id,
                    attempt + 1,
                    self._max_attempts,
                    exc,
                )
                last = ParseFailure(error=f"collaborator error: {exc}")
                continue
            last = parse_reply(raw, session, decision)
            if not isinstance(last, ParseFailure):
                return last
            logger.warning(
                "Dialogue reply unparseable session=%s attempt=%d/%d: %s",
                session.id,
                attempt + 1,
                self._max_attempts,
                last.error,
            )
        return last

    def build_messages(
        self,
        session: Session,
        analysis: AnswerAnalysis,
        decision: PolicyDecision,
        answer: str,
        *,
        closing: bool = False,
    ) -> List[Dict[str, str]]:
        last_question = self._last_question(session)
        if closing:
            instruction = "The interview is complete. Thank the candidate and reply with action END_INTERVIEW."
        elif decision.transition_text:
            instruction = "Acknowledge the stage change, then ask the first question of the new stage."
        else:
            instruction = "Ask the next question."
        prompt_value = self._prompt.format_messages(
            interview_type=session.interview_type,
            role=session.role,
            company=session.company,
            stage=decision.next_stage,
            category=decision.next_category,
            difficulty=decision.next_difficulty,
            transcript=transcript_messages(session.messages),
            candidate_context=clamp_text(session.candidate_context or "Not provided.", limit=600),
            memory=describe_memory(session.conversation_memory) or "Nothing yet.",
            last_question=last_question.text if last_question else "(none)",
            answer_type=detect_answer_type(answer),
            analysis_notes=bullet_list(
                [f"score {analysis.score}/5", f"sentiment {analysis.sentiment}", *analysis.reasons]
            ),
            transition=decision.transition_text or "none",
            instruction=instruction,
        )
        return list(coerce_messages(prompt_value))

    @staticmethod
    def _last_question(session: Session):
        if not session.history:
            return None
        return session.question_for(session.history[-1])


def parse_reply(raw: Any, session: Session, decision: PolicyDecision) -> ParsedAction:
    """Map a collaborator reply onto the tagged action type."""

    try:
        if isinstance(raw, BaseModel):
            data = raw.model_dump()
        elif isinstance(raw, dict):
            data = raw
        elif isinstance(raw, str):
            data = extract_json_object(raw)
        else:
            return ParseFailure(error=f"unsupported reply type {type(raw).__name__}")
        reply = DialogueReply.model_validate(data)
    except (ValueError, ValidationError) as exc:
        return ParseFailure(error=str(exc).splitlines()[0], raw=str(raw)[:500])

    text = reply.dialogue.strip()
    if not text:
        return ParseFailure(error="empty dialogue", raw=str(raw)[:500])
    if reply.action == "END_INTERVIEW":
        return EndInterviewAction(dialogue_text=text, reason="natural_conclusion")

    category = decision.next_category
    free_mix = session.interview_mode == "specific" and session.interview_type == "Full Simulation"
    if free_mix and reply.category in CATEGORIES:
        category = reply.category
    return ContinueAction(
        dialogue_text=text,
        category=category,
        difficulty=decision.next_difficulty,
        is_follow_up=reply.is_follow_up,
    )


__all__ = ["APOLOGY_LINE", "CLOSING_LINE", "DialogueOrchestrator", "parse_reply"]
