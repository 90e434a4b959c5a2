from typing import List, Optional

from agents.difficulty_policy import STAGE_QUOTAS, category_for, decide, next_difficulty, trailing_average
from interview_session.models import AnswerAnalysis, HistoryItem, utcnow


def _item(score: Optional[float], stage: int = 1, *, rude: bool = False, open_: bool = False) -> HistoryItem:
    analysis = None
    if score is not None:
        analysis = AnswerAnalysis(score=score, is_rude=rude, is_weak=rude)
    return HistoryItem(
        question_id="q",
        user_answer="" if open_ else "answer",
        stage=stage,
        timestamp_end=None if open_ else utcnow(),
        analysis=None if open_ else analysis,
    )


def _history(scores: List[float], stage: int = 1) -> List[HistoryItem]:
    return [_item(score, stage) for score in scores]


def test_trailing_average_needs_two_scored_items():
    assert trailing_average(_history([5.0]), 3) is None
    assert trailing_average(_history([1.0, 4.0, 4.0, 5.0]), 3) == 4.3


def test_next_difficulty_moves_one_rung():
    assert next_difficulty("easy", 4.5) == "medium"
    assert next_difficulty("hard", 4.5) == "hard"
    assert next_difficulty("hard", 1.0) == "medium"
    assert next_difficulty("easy", 1.0) == "easy"
    assert next_difficulty("easy", 3.0) == "medium"
    assert next_difficulty("hard", 3.0) == "medium"
    assert next_difficulty("medium", 3.0) == "medium"
    assert next_difficulty("medium", None) == "medium"


def test_strong_answers_raise_difficulty_without_stage_change():
    decision = decide(_history([4.5, 4.5]), "medium", 1, "full")
    assert decision.next_difficulty == "hard"
    assert decision.difficulty_changed
    assert decision.next_stage == 1
    assert not decision.stage_changed
    assert decision.transition_text is None
    assert decision.next_category == "behavioral"


def test_stage_quota_advances_with_transition():
    assert STAGE_QUOTAS == {1: 3, 2: 4, 3: 2}
    decision = decide(_history([3.0, 3.0, 3.0]), "medium", 1, "full")
    assert decision.next_stage == 2
    assert decision.stage_changed
    assert decision.transition_text
    assert decision.next_category == "theory"
    assert not decision.complete


def test_final_stage_quota_completes():
    history = _history([3.0, 3.0, 3.0], 1) + _history([3.0] * 4, 2) + _history([3.0, 3.0], 3)
    decision = decide(history, "medium", 3, "full")
    assert decision.complete
    assert decision.next_stage == 3


def test_specific_mode_completes_after_max_questions_and_keeps_stage():
    decision = decide(_history([3.0] * 6), "medium", 1, "specific", interview_type="Coding Challenge")
    assert not decision.complete
    assert decision.next_stage == 1
    assert decision.next_category == "coding"
    decision = decide(_history([3.0] * 7), "medium", 1, "specific", interview_type="Coding Challenge")
    assert decision.complete


def test_rude_and_open_items_are_not_counted():
    history = [_item(0.0, rude=True), _item(4.5), _item(None, open_=True)]
    decision = decide(history, "medium", 1, "full")
    assert decision.trailing_average is None
    assert decision.next_difficulty == "medium"
    assert decision.next_stage == 1


def test_category_for_modes():
    assert category_for("full", "Behavioral", 3) == "coding"
    assert category_for("specific", "System Design", 1) == "theory"
    assert category_for("specific", "Technical Screen", 2) == "theory"
    assert category_for("specific", "Full Simulation", 1) == "behavioral"
