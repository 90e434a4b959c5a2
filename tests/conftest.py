import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from config.settings import settings
from config.registry import (
    DIALOGUE_KEY,
    EVAL_BEHAVIORAL_KEY,
    EVAL_CODING_KEY,
    EVAL_THEORY_KEY,
    SUMMARY_KEY,
    ModelRegistry,
)


class FakeDialogue:
    """Deterministic interviewer: numbered questions, closes when asked to."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, *, messages, inputs=None):
        inputs = inputs or {}
        self.calls.append({"messages": messages, "inputs": inputs})
        if inputs.get("closing"):
            return {"action": "END_INTERVIEW", "dialogue": "Thanks, that wraps up our interview."}
        return {
            "action": "CONTINUE",
            "dialogue": f"Question {len(self.calls)}: tell me more about your {inputs.get('category')} experience.",
            "category": inputs.get("category"),
            "difficulty": inputs.get("difficulty"),
            "is_follow_up": False,
        }


class FakeEvaluator:
    def __init__(self, score: float = 4.0) -> None:
        self.score = score
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, *, messages, inputs=None):
        self.calls.append(inputs or {})
        return {"score": self.score, "details": "Clear and specific.", "tips": "Quantify the impact."}


def fake_summary(*, messages, inputs=None):
    return {
        "strengths": "Communicates clearly.",
        "weaknesses": "Could go deeper on trade-offs.",
        "nextSteps": ["Practise system design", "Review complexity analysis"],
    }


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    monkeypatch.setattr(settings, "DIALOGUE_BACKOFF_S", 0.0, raising=False)
    monkeypatch.setattr(settings, "REPORT_JOB_BACKOFF_S", 0.0, raising=False)
    monkeypatch.setattr(settings, "CODE_RUNNER_URL", "", raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


@pytest.fixture
def fake_models():
    registry = ModelRegistry()
    registry.bind(DIALOGUE_KEY, FakeDialogue())
    registry.bind(EVAL_BEHAVIORAL_KEY, FakeEvaluator(4.0))
    registry.bind(EVAL_THEORY_KEY, FakeEvaluator(3.0))
    registry.bind(EVAL_CODING_KEY, FakeEvaluator(3.5))
    registry.bind(SUMMARY_KEY, fake_summary)
    return registry


@pytest.fixture
def services(tmp_db, fake_models):
    from services.container import build_services

    return build_services(tmp_db, registry=fake_models)


@pytest.fixture
def client(services):
    from fastapi.testclient import TestClient

    from api_server import create_app

    return TestClient(create_app(services, background=False))
