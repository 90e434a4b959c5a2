"""Adaptive difficulty ladder and stage quotas for an interview."""
from __future__ import annotations

from typing import Dict, Optional, Sequence

from agents.types import PolicyDecision
from config.settings import settings
from interview_session.models import HistoryItem

LADDER = ("easy", "medium", "hard")
RAISE_AT = 4.0
LOWER_BELOW = 2.5
MIN_SCORED = 2

STAGE_QUOTAS: Dict[int, int] = {1: 3, 2: 4, 3: 2}
FINAL_STAGE = 3

STAGE_CATEGORIES: Dict[int, str] = {1: "behavioral", 2: "theory", 3: "coding"}
TYPE_CATEGORIES: Dict[str, str] = {
    "Behavioral": "behavioral",
    "Coding Challenge": "coding",
    "Technical Screen": "theory",
    "System Design": "theory",
    "Full Simulation": "behavioral",
}

TRANSITION_TEXT: Dict[int, str] = {
    2: "Thanks, that gives me a good picture of your experience. Let's move on to some technical concepts.",
    3: "Great. For the final part of the interview, let's work through a coding problem together.",
}


def _round1(value: float) -> float:
    return float(f"{value:.1f}")


def _counted(history: Sequence[HistoryItem]) -> list[HistoryItem]:
    # Rude answers are re-asked, so they never count toward scores or quotas
    return [
        item
        for item in history
        if not item.is_open and not (item.analysis is not None and item.analysis.is_rude)
    ]


def category_for(interview_mode: str, interview_type: str, stage: int) -> str:
    if interview_mode == "full":
        return STAGE_CATEGORIES[stage]
    return TYPE_CATEGORIES.get(interview_type, "behavioral")


def trailing_average(history: Sequence[HistoryItem], window: int) -> Optional[float]:
    """Mean score of the last ``window`` answered items, if enough are scored."""

    answered = _counted(history)
    scored = [item.analysis.score for item in answered[-window:] if item.analysis is not None]
    if len(scored) < MIN_SCORED:
        return None
    return _round1(sum(scored) / len(scored))


def next_difficulty(current: str, average: Optional[float]) -> str:
    """Move at most one rung along the ladder."""

    if average is None:
        return current
    index = LADDER.index(current)
    if average >= RAISE_AT:
        return LADDER[min(index + 1, len(LADDER) - 1)]
    if average < LOWER_BELOW:
        return LADDER[max(index - 1, 0)]
    if current == "easy":
        return "medium"
    if current == "hard":
        return "medium"
    return current


def decide(
    history: Sequence[HistoryItem],
    current_difficulty: str,
    current_stage: int,
    interview_mode: str,
    *,
    interview_type: str = "Full Simulation",
    max_questions: Optional[int] = None,
    window: Optional[int] = None,
) -> PolicyDecision:
    """Pure policy over the answered history; the caller applies the result."""

    average = trailing_average(history, window or settings.TRAILING_WINDOW)
    difficulty = next_difficulty(current_difficulty, average)
    answered = _counted(history)

    stage = current_stage
    transition_text = None
    complete = False
    if interview_mode == "full":
        in_stage = sum(1 for item in answered if item.stage == current_stage)
        if in_stage >= STAGE_QUOTAS[current_stage]:
            if current_stage >= FINAL_STAGE:
                complete = True
            else:
                stage = current_stage + 1
                transition_text = TRANSITION_TEXT[stage]
    else:
        limit = max_questions or settings.MAX_SPECIFIC_QUESTIONS
        complete = len(answered) >= limit

    return PolicyDecision(
        next_difficulty=difficulty,
        next_stage=stage,
        next_category=category_for(interview_mode, interview_type, stage),
        stage_changed=stage != current_stage,
        difficulty_changed=difficulty != current_difficulty,
        transition_text=transition_text,
        complete=complete,
        trailing_average=average,
    )


__all__ = ["LADDER", "STAGE_QUOTAS", "category_for", "decide", "next_difficulty", "trailing_average"]
