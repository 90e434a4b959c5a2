"""Category evaluators, summarizer and their deterministic fallbacks."""
from __future__ import annotations

from textwrap import dedent
from typing import Any, List, Optional, Sequence

from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel

from agents.answer_analyzer import score_answer, star_coverage, word_count
from agents.prompting import bullet_list, clamp_text
from agents.types import EvaluationResult, SummaryResult
from config.registry import EVAL_KEYS, SUMMARY_KEY, ModelRegistry
from llm_gateway import coerce_messages, extract_json_object
from session_reports.models import FeedbackItem, ReportSummary

EVALUATOR_GUIDANCE = dedent(  # Scoring contract shared by the category evaluators
    """
    You are an experienced interviewer grading one {category} answer on a 0 to 5 scale.
    Be specific about what was good and what was missing, then give one actionable tip.
    Reply with JSON only: {{"score": 0-5, "details": "...", "tips": "..."}}
    """
).strip()

SUMMARY_GUIDANCE = dedent(  # Output contract for the report summarizer
    """
    You are writing the closing summary of a mock interview report.
    Reply with JSON only: {{"strengths": "...", "weaknesses": "...", "nextSteps": ["...", "..."]}}
    """
).strip()

_EVAL_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", EVALUATOR_GUIDANCE),
        (
            "human",
            "Question: {question}\nReference answer: {ideal_answer}\nCandidate answer:\n{answer}",
        ),
    ]
)

_SUMMARY_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", SUMMARY_GUIDANCE),
        ("human", "Scored answers:\n{feedback}"),
    ]
)

_HEURISTIC_TIPS = {
    "behavioral": "Structure your answer with the STAR method: situation, task, action and a measurable result.",
    "theory": "Define the concept first, then add a concrete example and the trade-offs involved.",
    "coding": "Write a complete function, explain its complexity and walk through an edge case.",
}


def _round1(value: float) -> float:
    return float(f"{value:.1f}")


def _coerce_result(raw: Any, schema: type[BaseModel]) -> BaseModel:
    if isinstance(raw, schema):
        return raw
    if isinstance(raw, BaseModel):
        return schema.model_validate(raw.model_dump())
    if isinstance(raw, str):
        return schema.model_validate(extract_json_object(raw))
    return schema.model_validate(raw)


def evaluate_answer(
    registry: ModelRegistry,
    category: str,
    question: str,
    answer: str,
    ideal_answer: Optional[str] = None,
) -> EvaluationResult:
    """Ask the category evaluator for a verdict.

    Raises whatever the collaborator raises, or ``ValidationError`` when its
    reply does not match :class:`EvaluationResult`; callers decide the fallback.
    """

    messages = coerce_messages(
        _EVAL_PROMPT.format_messages(
            category=category,
            question=question,
            ideal_answer=ideal_answer or "Not provided.",
            answer=answer,
        )
    )
    raw = registry.get(EVAL_KEYS[category])(
        messages=list(messages),
        inputs={"question": question, "ideal_answer": ideal_answer, "answer": answer, "category": category},
    )
    result = _coerce_result(raw, EvaluationResult)
    return result.model_copy(update={"score": _round1(result.score)})


def heuristic_evaluation(
    category: str,
    question: str,
    answer: str,
    ideal_answer: Optional[str] = None,
) -> EvaluationResult:
    """Deterministic verdict used when the evaluator cannot be reached."""

    words = word_count(answer)
    score = score_answer(answer, category, ideal_answer)
    if category == "behavioral":
        details = f"Response length: {words} words; STAR coverage {star_coverage(answer)} of 4."
    elif category == "theory":
        details = f"Response length: {words} words" + ("; compared against the reference answer." if ideal_answer else ".")
    else:
        details = f"Response length: {words} words; scored on the code structure present."
    return EvaluationResult(score=score, details=details, tips=_HEURISTIC_TIPS.get(category, ""))


def summarize(registry: ModelRegistry, feedback: Sequence[FeedbackItem]) -> ReportSummary:
    """Ask the summarizer for strengths, weaknesses and next steps."""

    lines = [
        f"[{item.category}] score {item.score}/5 | Q: {clamp_text(item.question, 160)} | A: {clamp_text(item.answer, 200)}"
        for item in feedback
    ]
    messages = coerce_messages(_SUMMARY_PROMPT.format_messages(feedback=bullet_list(lines)))
    raw = registry.get(SUMMARY_KEY)(
        messages=list(messages),
        inputs={
            "feedback": [
                {"question": item.question, "category": item.category, "answer": item.answer, "score": item.score}
                for item in feedback
            ]
        },
    )
    result = _coerce_result(raw, SummaryResult)
    next_steps = result.next_steps
    if isinstance(next_steps, list):
        next_steps = "\n".join(f"- {step.strip()}" for step in next_steps if step and step.strip())
    if not (result.strengths.strip() and result.weaknesses.strip() and next_steps.strip()):
        raise ValueError("Summary is missing a section")
    return ReportSummary(strengths=result.strengths.strip(), weaknesses=result.weaknesses.strip(), next_steps=next_steps)


def fallback_summary(feedback: Sequence[FeedbackItem]) -> ReportSummary:
    """Generic summary keyed on the average score; never empty."""

    scores: List[float] = [item.score for item in feedback]
    average = sum(scores) / len(scores) if scores else 0.0
    strengths = "Shows engagement with the interview process."
    weaknesses = "Several answers would benefit from more depth and concrete examples."
    next_steps = "Keep practising interview questions and structure each answer before you start speaking."
    if not scores:
        weaknesses = "No answers were recorded, so there was nothing to evaluate."
        next_steps = "Complete a full practice interview to receive detailed feedback."
    elif average > 3.5:
        strengths = "Demonstrates solid understanding and clear communication."
        next_steps = "Focus on advanced topics and leadership examples."
    elif average < 2.5:
        weaknesses = "Needs foundational skill development."
        next_steps = "Review core concepts and practise structured responses."
    return ReportSummary(strengths=strengths, weaknesses=weaknesses, next_steps=next_steps)


__all__ = [
    "evaluate_answer",
    "fallback_summary",
    "heuristic_evaluation",
    "summarize",
]
