"""Deterministic keyword heuristics for a single interview answer."""
from __future__ import annotations

import re
from typing import List, Optional

from agents.types import AnswerType
from config.patterns import PatternEngine, pattern_engine
from interview_session.models import AnswerAnalysis

STAR_CLASSES = ("situation", "task", "action", "result")
STAR_MIN_CLASSES = 3

BEHAVIORAL_MIN_WORDS = 30
THEORY_MIN_WORDS = 15
CODING_MIN_WORDS = 20
LONG_ANSWER_WORDS = 200
SHORT_ANSWER_CHARS = 20
WEAK_SCORE_CAP = 2.4

_STOPWORDS = {
    "about", "also", "because", "between", "does", "each", "from", "have", "into", "more",
    "other", "such", "than", "that", "their", "them", "then", "there", "these", "they",
    "this", "through", "usually", "what", "when", "which", "while", "with", "without",
}


def _round1(value: float) -> float:
    return float(f"{value:.1f}")


def word_count(text: Optional[str]) -> int:
    return len((text or "").split())


def star_coverage(text: str, engine: Optional[PatternEngine] = None) -> int:
    """Number of STAR keyword classes present in ``text`` (0-4)."""

    engine = engine or pattern_engine()
    found = engine.matched_classes("star", text)
    return sum(1 for name in STAR_CLASSES if name in found)


def has_code_definition(text: str, engine: Optional[PatternEngine] = None) -> bool:
    engine = engine or pattern_engine()
    return engine.matches("code", "definition", text)


def _keywords(text: str) -> set[str]:
    return {token for token in re.findall(r"[a-z0-9]+", text.lower()) if len(token) > 3 and token not in _STOPWORDS}


def score_answer(
    answer: Optional[str],
    category: str,
    ideal_answer: Optional[str] = None,
    analysis: Optional[AnswerAnalysis] = None,
    engine: Optional[PatternEngine] = None,
) -> float:
    """Heuristic 0-5 score, also used when an evaluator is unavailable.

    Rude or empty answers score 0; answers flagged weak never exceed 2.4.
    """

    engine = engine or pattern_engine()
    text = (answer or "").strip()
    if not text:
        return 0.0
    if analysis is None:
        analysis = analyze(text, category, engine=engine, with_score=False)
    if analysis.is_rude:
        return 0.0

    words = word_count(text)
    score = 1.0
    if category == "behavioral":
        score += 0.75 * star_coverage(text, engine)
        if words >= BEHAVIORAL_MIN_WORDS:
            score += 0.5
        if words >= 60:
            score += 0.5
    elif category == "theory":
        if words >= THEORY_MIN_WORDS:
            score += 1.0
        if words >= 40:
            score += 1.0
        if words >= 80:
            score += 0.5
        if ideal_answer:
            expected = _keywords(ideal_answer)
            if expected:
                score += 1.5 * len(expected & _keywords(text)) / len(expected)
        elif words >= THEORY_MIN_WORDS:
            score += 0.75
    elif category == "coding":
        code = set(engine.matched_classes("code", text))
        if "definition" in code:
            score += 1.5
        if "return" in code:
            score += 1.0
        if "loop" in code:
            score += 0.5
        if "comment" in code:
            score += 0.5
        if words >= CODING_MIN_WORDS:
            score += 0.5
    if engine.matches("uncertainty", "dont_know", text):
        score -= 1.0
    if analysis.is_weak:
        score = min(score, WEAK_SCORE_CAP)
    return _round1(max(0.0, min(5.0, score)))


def analyze(
    answer_text: Optional[str],
    category: str,
    *,
    ideal_answer: Optional[str] = None,
    engine: Optional[PatternEngine] = None,
    with_score: bool = True,
) -> AnswerAnalysis:
    """Classify an answer as weak/rude and tag its sentiment and emotions."""

    engine = engine or pattern_engine()
    text = (answer_text or "").strip()
    if not text:
        return AnswerAnalysis(score=0.0, is_weak=True, reasons=["empty answer"])

    if engine.matched_classes("rudeness", text):
        return AnswerAnalysis(
            score=0.0,
            is_weak=True,
            is_rude=True,
            sentiment="negative",
            reasons=["inappropriate language"],
        )

    words = word_count(text)
    reasons: List[str] = []
    if category == "behavioral":
        if words < BEHAVIORAL_MIN_WORDS:
            reasons.append(f"only {words} words; behavioral answers need at least {BEHAVIORAL_MIN_WORDS}")
        covered = star_coverage(text, engine)
        if covered < STAR_MIN_CLASSES:
            reasons.append(f"STAR structure covers {covered} of 4 parts")
    elif category == "theory":
        if words < THEORY_MIN_WORDS:
            reasons.append(f"only {words} words; explanations need at least {THEORY_MIN_WORDS}")
    elif category == "coding":
        if words < CODING_MIN_WORDS and not has_code_definition(text, engine):
            reasons.append("no code or function definition in a short answer")

    analysis = AnswerAnalysis(
        is_weak=bool(reasons),
        sentiment=engine.first_class("sentiment", text) or "neutral",
        emotions=engine.matched_classes("emotions", text),
        reasons=reasons,
    )
    if with_score:
        analysis.score = score_answer(text, category, ideal_answer, analysis, engine)
    return analysis


def detect_answer_type(answer_text: Optional[str], engine: Optional[PatternEngine] = None) -> AnswerType:
    """Coarse answer shape used to steer the interviewer's tone."""

    engine = engine or pattern_engine()
    text = (answer_text or "").strip()
    if not text:
        return "empty"
    if engine.matches("uncertainty", "dont_know", text):
        return "dont_know"
    if len(text) < SHORT_ANSWER_CHARS:
        return "too_short"
    if word_count(text) > LONG_ANSWER_WORDS:
        return "too_long"
    if engine.matches("uncertainty", "filler", text):
        return "uncertain"
    return "normal"


__all__ = ["STAR_MIN_CLASSES", "analyze", "detect_answer_type", "score_answer", "star_coverage", "word_count"]
