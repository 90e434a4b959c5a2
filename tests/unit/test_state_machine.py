import threading

import pytest

from config.registry import DIALOGUE_KEY
from interview_session.errors import (
    EmptyAnswerError,
    NoOpenQuestionError,
    SessionNotFoundError,
    SessionStateError,
)
from interview_session.models import Session

STAR_ANSWER = (
    "The situation was a failing deploy pipeline on our project. My task was to restore releases. "
    "I implemented a rollback script and we built alerts. As a result we reduced failed deploys by 40%."
)


def _start(services, **overrides):
    params = {"role": "Backend Engineer", "interview_type": "Full Simulation", "interview_mode": "full"}
    params.update(overrides)
    return services.machine.start_session(**params)


def test_start_session_opens_first_seed_question(services):
    session = _start(services, company="Globex")
    stored = services.sessions.get(session.id)
    assert stored.status == "ongoing"
    assert stored.current_stage == 1
    assert stored.current_difficulty == "medium"
    assert [msg.kind for msg in stored.messages] == ["greeting", "question"]
    assert "Globex" in stored.messages[0].content
    item = stored.open_item()
    question = stored.question_for(item)
    assert question.category == "behavioral"
    assert question.source == "seed"


def test_answer_continues_with_next_question(services):
    session = _start(services)
    outcome = services.machine.submit_answer(session.id, STAR_ANSWER)
    assert outcome.action == "CONTINUE"
    assert outcome.question is not None
    assert outcome.question.text.startswith("Question 1")
    assert outcome.analysis.score >= 4.0
    assert [event["span"] for event in outcome.events] == ["analyze", "policy", "dialogue"]

    stored = services.sessions.get(session.id)
    assert len(stored.history) == 2
    assert stored.history[0].user_answer == STAR_ANSWER
    assert stored.history[0].timestamp_end is not None
    assert stored.history[0].analysis is not None
    assert stored.open_item() is stored.history[1]
    assert stored.version == 1


def test_third_stage_one_answer_moves_to_theory(services):
    session = _start(services)
    outcomes = [services.machine.submit_answer(session.id, STAR_ANSWER) for _ in range(3)]
    assert outcomes[1].current_difficulty == "hard"
    last = outcomes[-1]
    assert last.current_stage == 2
    assert last.transition_text
    assert last.question.category == "theory"

    stored = services.sessions.get(session.id)
    assert stored.adaptation_count == 1
    assert "transition" in [msg.kind for msg in stored.messages]
    assert stored.history[-1].stage == 2


def test_rudeness_escalation(services):
    session = _start(services)
    first_question = services.sessions.get(session.id).messages[-1].content

    first = services.machine.submit_answer(session.id, "This is a stupid question.")
    assert first.action == "CONTINUE"
    assert first.is_warning
    assert first.warnings == 1
    assert first.status == "ongoing"
    assert first.question.text == first_question

    second = services.machine.submit_answer(session.id, "Shut up.")
    assert second.action == "END_INTERVIEW"
    assert second.status == "completed"
    assert second.end_reason == "inappropriate_behavior"
    assert second.report_id is not None
    assert services.queue.counts()["queued"] == 1


def test_terminal_session_is_a_noop(services):
    session = _start(services)
    services.machine.end_session(session.id)
    outcome = services.machine.submit_answer(session.id, "late answer")
    assert outcome.action == "NOOP"
    assert outcome.status == "completed"


def test_missing_session_and_missing_open_question(services):
    with pytest.raises(SessionNotFoundError):
        services.machine.submit_answer("nope", "hello")
    bare = services.sessions.create(
        Session(role="Analyst", interview_type="Behavioral", interview_mode="specific")
    )
    with pytest.raises(NoOpenQuestionError):
        services.machine.submit_answer(bare.id, "hello")


def test_collaborator_outage_completes_with_technical_error(services, fake_models):
    def broken(**_):
        raise TimeoutError("down")

    fake_models.bind(DIALOGUE_KEY, broken)
    session = _start(services)
    outcome = services.machine.submit_answer(session.id, STAR_ANSWER)
    assert outcome.action == "END_INTERVIEW"
    assert outcome.end_reason == "technical_error"
    assert outcome.report_id is not None
    stored = services.sessions.get(session.id)
    assert stored.status == "completed"
    assert stored.messages[-1].kind == "closing"


def test_specific_mode_ends_after_seven_answers(services):
    session = _start(services, interview_type="Technical Screen", interview_mode="specific")
    outcomes = [services.machine.submit_answer(session.id, STAR_ANSWER) for _ in range(7)]
    assert all(outcome.action == "CONTINUE" for outcome in outcomes[:6])
    assert all(outcome.current_stage == 1 for outcome in outcomes)
    assert outcomes[0].question.category == "theory"
    last = outcomes[-1]
    assert last.action == "END_INTERVIEW"
    assert last.end_reason == "natural_conclusion"
    assert last.message == "Thanks, that wraps up our interview."


def test_abandon_is_idempotent_and_creates_no_report(services):
    session = _start(services)
    assert services.machine.abandon(session.id).status == "abandoned"
    assert services.machine.abandon(session.id).status == "abandoned"
    assert services.reports.get_by_session(session.id) is None
    assert services.machine.submit_answer(session.id, "hi").action == "NOOP"


def test_abandon_completed_session_is_rejected(services):
    session = _start(services)
    services.machine.end_session(session.id)
    with pytest.raises(SessionStateError):
        services.machine.abandon(session.id)


def test_full_mode_runs_through_all_stages(services):
    session = _start(services)
    outcomes = [services.machine.submit_answer(session.id, STAR_ANSWER) for _ in range(9)]
    stages = [outcome.current_stage for outcome in outcomes]
    assert stages == sorted(stages)
    assert max(stages) == 3
    assert outcomes[2].current_stage == 2
    assert outcomes[6].current_stage == 3
    assert outcomes[6].question.category == "coding"
    assert all(outcome.action == "CONTINUE" for outcome in outcomes[:8])
    last = outcomes[-1]
    assert last.action == "END_INTERVIEW"
    assert last.end_reason == "natural_conclusion"
    assert last.report_id is not None
    stored = services.sessions.get(session.id)
    assert [msg.kind for msg in stored.messages].count("transition") == 2
    assert len([item for item in stored.history if item.user_answer]) == 9


def test_end_waits_for_in_flight_turn(services, fake_models):
    session = _start(services)
    entered = threading.Event()
    release = threading.Event()
    inner = fake_models.get(DIALOGUE_KEY)

    def slow_dialogue(**kwargs):
        entered.set()
        release.wait(timeout=5)
        return inner(**kwargs)

    fake_models.bind(DIALOGUE_KEY, slow_dialogue)
    results = {}

    def turn():
        try:
            results["turn"] = services.machine.submit_answer(session.id, STAR_ANSWER)
        except Exception as exc:  # noqa: BLE001
            results["turn"] = exc

    def end():
        results["end"] = services.machine.end_session(session.id)

    turn_thread = threading.Thread(target=turn)
    end_thread = threading.Thread(target=end)
    turn_thread.start()
    assert entered.wait(timeout=5)
    end_thread.start()
    end_thread.join(timeout=0.2)
    assert end_thread.is_alive()

    release.set()
    turn_thread.join(timeout=5)
    end_thread.join(timeout=5)

    assert results["turn"].action == "CONTINUE"
    assert results["end"] is not None
    stored = services.sessions.get(session.id)
    assert stored.status == "completed"
    assert stored.end_reason == "user_ended"
    assert stored.history[0].user_answer == STAR_ANSWER
    assert services.reports.count_for_session(session.id) == 1


@pytest.mark.parametrize("answer", ["", "   \n\t "])
def test_blank_answer_is_rejected(services, answer):
    session = _start(services)
    with pytest.raises(EmptyAnswerError):
        services.machine.submit_answer(session.id, answer)
    stored = services.sessions.get(session.id)
    assert len(stored.history) == 1
    assert stored.open_item() is stored.history[0]
    assert stored.version == 0


def test_terminal_sessions_release_their_locks(services):
    ended = _start(services)
    services.machine.submit_answer(ended.id, STAR_ANSWER)
    services.machine.end_session(ended.id)
    services.machine.submit_answer(ended.id, "late answer")

    left = _start(services)
    services.machine.abandon(left.id)
    services.machine.abandon(left.id)

    with pytest.raises(SessionNotFoundError):
        services.machine.submit_answer("nope", "hello")
    assert len(services.locks) == 0
