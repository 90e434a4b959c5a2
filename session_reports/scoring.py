"""Score aggregation for finished interview reports."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .models import CodeExecution, FeedbackItem, FinalScores

CODE_ACCEPTED_BONUS = 0.5
CODE_STDERR_PENALTY = 0.5


def _round1(value: float) -> float:
    """Round a float to one decimal place with stable formatting."""
    return float(f"{value:.1f}")


def clamp_score(value: float) -> float:
    return _round1(max(0.0, min(5.0, value)))


def apply_code_signal(score: float, run: Optional[CodeExecution]) -> float:
    """Merge a code-runner verdict into a coding score."""

    if run is None:
        return clamp_score(score)
    if run.status == "Accepted":
        score += CODE_ACCEPTED_BONUS
    if run.stderr.strip():
        score -= CODE_STDERR_PENALTY
    return clamp_score(score)


def category_means(feedback: Sequence[FeedbackItem]) -> FinalScores:
    """Arithmetic mean per category; 0 for categories without items."""

    buckets: Dict[str, List[float]] = {"behavioral": [], "theory": [], "coding": []}
    for item in feedback:
        if item.category in buckets:
            buckets[item.category].append(item.score)
    return FinalScores(
        **{name: _round1(sum(values) / len(values)) if values else 0.0 for name, values in buckets.items()}
    )


def overall_score(scores: FinalScores) -> float:
    """Mean of the non-zero category scores."""

    present = [value for value in scores.model_dump().values() if value > 0]
    return _round1(sum(present) / len(present)) if present else 0.0


__all__ = ["apply_code_signal", "category_means", "clamp_score", "overall_score"]
