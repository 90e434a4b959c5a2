import pytest

from agents.answer_analyzer import analyze
from agents.dialogue_orchestrator import APOLOGY_LINE, CLOSING_LINE, DialogueOrchestrator, parse_reply
from agents.types import ContinueAction, EndInterviewAction, ParseFailure, PolicyDecision
from config.registry import DIALOGUE_KEY, ModelRegistry
from interview_session.models import Session, utcnow


def _session(answer: str, *, mode: str = "full", interview_type: str = "Behavioral") -> Session:
    session = Session(role="Backend Engineer", interview_type=interview_type, interview_mode=mode)
    session.say("Hello", "greeting")
    question = session.resolve_question("Tell me about a project you led.", "behavioral", "medium", source="seed")
    item = session.ask(question, stage=1)
    session.say(question.text, "question")
    item.user_answer = answer
    item.timestamp_end = utcnow()
    item.analysis = analyze(answer, "behavioral")
    session.say(answer, "answer", role="user")
    return session


def _decision(**overrides) -> PolicyDecision:
    data = {"next_difficulty": "medium", "next_stage": 1, "next_category": "behavioral"}
    data.update(overrides)
    return PolicyDecision(**data)


def _registry(fn) -> ModelRegistry:
    registry = ModelRegistry()
    registry.bind(DIALOGUE_KEY, fn)
    return registry


def _unreachable(**_):
    raise AssertionError("collaborator must not be called")


def test_first_rude_answer_warns_and_repeats_question():
    session = _session("shut up, this is a waste of time")
    session.warnings = 1
    orchestrator = DialogueOrchestrator(_registry(_unreachable))
    action = orchestrator.next_action(session, session.history[-1].analysis, _decision(), "shut up")
    assert isinstance(action, ContinueAction)
    assert action.is_warning
    assert "Tell me about a project you led." in action.dialogue_text
    assert action.category == "behavioral"


def test_second_rude_answer_ends_interview():
    session = _session("shut up")
    session.warnings = 2
    orchestrator = DialogueOrchestrator(_registry(_unreachable))
    action = orchestrator.next_action(session, session.history[-1].analysis, _decision(), "shut up")
    assert isinstance(action, EndInterviewAction)
    assert action.reason == "inappropriate_behavior"


def test_continue_uses_policy_category_and_difficulty():
    reply = {"action": "CONTINUE", "dialogue": "What is an index?", "category": "coding", "difficulty": "hard"}
    orchestrator = DialogueOrchestrator(_registry(lambda **_: reply))
    session = _session("I built it.")
    action = orchestrator.next_action(
        session, session.history[-1].analysis, _decision(next_category="theory", next_stage=2), "I built it."
    )
    assert isinstance(action, ContinueAction)
    assert action.dialogue_text == "What is an index?"
    assert action.category == "theory"
    assert action.difficulty == "medium"


def test_complete_policy_forces_end_even_if_collaborator_continues():
    reply = {"action": "CONTINUE", "dialogue": "One more question?"}
    orchestrator = DialogueOrchestrator(_registry(lambda **_: reply))
    session = _session("fine")
    action = orchestrator.next_action(session, session.history[-1].analysis, _decision(complete=True), "fine")
    assert isinstance(action, EndInterviewAction)
    assert action.reason == "natural_conclusion"
    assert action.dialogue_text == CLOSING_LINE


def test_complete_policy_keeps_collaborator_closing():
    reply = {"action": "END_INTERVIEW", "dialogue": "Thanks for your time!"}
    orchestrator = DialogueOrchestrator(_registry(lambda **_: reply))
    session = _session("fine")
    action = orchestrator.next_action(session, session.history[-1].analysis, _decision(complete=True), "fine")
    assert action.dialogue_text == "Thanks for your time!"


def test_retries_with_backoff_then_fails_closed():
    sleeps = []
    calls = []

    def broken(**kwargs):
        calls.append(kwargs)
        raise TimeoutError("upstream timed out")

    orchestrator = DialogueOrchestrator(_registry(broken), max_attempts=3, backoff_s=0.5, sleep=sleeps.append)
    session = _session("an answer")
    action = orchestrator.next_action(session, session.history[-1].analysis, _decision(), "an answer")
    assert isinstance(action, EndInterviewAction)
    assert action.reason == "technical_error"
    assert action.dialogue_text == APOLOGY_LINE
    assert len(calls) == 3
    assert sleeps == [0.5, 1.0]


def test_transient_failure_recovers():
    attempts = {"n": 0}

    def flaky(**_):
        attempts["n"] += 1
        if attempts["n"] == 1:
            raise ConnectionError("reset")
        return '```json\n{"action": "CONTINUE", "dialogue": "Next question?"}\n```'

    orchestrator = DialogueOrchestrator(_registry(flaky), sleep=lambda _: None)
    session = _session("an answer")
    action = orchestrator.next_action(session, session.history[-1].analysis, _decision(), "an answer")
    assert isinstance(action, ContinueAction)
    assert action.dialogue_text == "Next question?"


def test_unparseable_replies_end_with_technical_error():
    orchestrator = DialogueOrchestrator(_registry(lambda **_: "no json here"), sleep=lambda _: None)
    session = _session("an answer")
    action = orchestrator.next_action(session, session.history[-1].analysis, _decision(), "an answer")
    assert isinstance(action, EndInterviewAction)
    assert action.reason == "technical_error"


def test_unbound_collaborator_ends_with_technical_error():
    orchestrator = DialogueOrchestrator(ModelRegistry(), sleep=lambda _: None)
    session = _session("an answer")
    action = orchestrator.next_action(session, session.history[-1].analysis, _decision(), "an answer")
    assert isinstance(action, EndInterviewAction)
    assert action.reason == "technical_error"


@pytest.mark.parametrize(
    "raw",
    [
        'Sure! {"action": "CONTINUE", "dialogueText": "Why?"} hope that helps',
        {"action": "CONTINUE", "dialogue_text": "Why?"},
    ],
)
def test_parse_reply_accepts_embedded_json_and_aliases(raw):
    session = _session("x")
    parsed = parse_reply(raw, session, _decision())
    assert isinstance(parsed, ContinueAction)
    assert parsed.dialogue_text == "Why?"


def test_parse_reply_failures():
    session = _session("x")
    assert isinstance(parse_reply("nothing", session, _decision()), ParseFailure)
    assert isinstance(parse_reply({"action": "CONTINUE", "dialogue": "  "}, session, _decision()), ParseFailure)
    assert isinstance(parse_reply({"action": "MAYBE", "dialogue": "hi"}, session, _decision()), ParseFailure)
    assert isinstance(parse_reply(42, session, _decision()), ParseFailure)


def test_parse_reply_category_only_free_in_full_simulation_specific():
    reply = {"action": "CONTINUE", "dialogue": "Write a function.", "category": "coding"}
    free = _session("x", mode="specific", interview_type="Full Simulation")
    fixed = _session("x", mode="specific", interview_type="Behavioral")
    assert parse_reply(reply, free, _decision()).category == "coding"
    assert parse_reply(reply, fixed, _decision()).category == "behavioral"
    bogus = dict(reply, category="astrology")
    assert parse_reply(bogus, free, _decision()).category == "behavioral"


def test_build_messages_carries_context():
    session = _session("I led the migration at Acme.")
    session.candidate_context = "Five years of Go and Python."
    orchestrator = DialogueOrchestrator(ModelRegistry())
    messages = orchestrator.build_messages(
        session,
        session.history[-1].analysis,
        _decision(next_stage=2, next_category="theory", transition_text="Moving on."),
        "I led the migration at Acme.",
    )
    assert messages[0]["role"] == "system"
    assert "Backend Engineer" in messages[0]["content"]
    assert "theory" in messages[0]["content"]
    assert messages[-1]["role"] == "user"
    assert "Five years of Go and Python." in messages[-1]["content"]
    assert "Acknowledge the stage change" in messages[-1]["content"]
