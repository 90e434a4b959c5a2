"""Collaborator registry handed to the orchestration and report components."""
from typing import Any, Callable, Dict

DIALOGUE_KEY = "models.dialogue"
EVAL_BEHAVIORAL_KEY = "models.eval_behavioral"
EVAL_THEORY_KEY = "models.eval_theory"
EVAL_CODING_KEY = "models.eval_coding"
SUMMARY_KEY = "models.summary"
CODE_RUNNER_KEY = "tools.code_runner"

EVAL_KEYS: Dict[str, str] = {
    "behavioral": EVAL_BEHAVIORAL_KEY,
    "theory": EVAL_THEORY_KEY,
    "coding": EVAL_CODING_KEY,
}


class ModelRegistry:
    """Map registry keys to callable collaborator implementations.

    One instance is built at process start and passed to every component that
    talks to an external collaborator; tests build their own with fakes.
    """

    def __init__(self) -> None:
        self._bindings: Dict[str, Callable[..., Any]] = {}

    def bind(self, key: str, fn: Callable[..., Any]) -> None:
        """Bind a callable implementation to a registry key."""
        self._bindings[key] = fn

    def has(self, key: str) -> bool:
        return key in self._bindings

    def get(self, key: str) -> Callable[..., Any]:
        """Retrieve a callable from the registry.

        Raises:
            KeyError: If no callable has been bound for ``key``.
        """

        if key not in self._bindings:
            raise KeyError(f"Model not bound in registry: {key}")
        return self._bindings[key]

    def keys(self) -> list[str]:
        return sorted(self._bindings)


__all__ = [
    "CODE_RUNNER_KEY",
    "DIALOGUE_KEY",
    "EVAL_BEHAVIORAL_KEY",
    "EVAL_CODING_KEY",
    "EVAL_KEYS",
    "EVAL_THEORY_KEY",
    "ModelRegistry",
    "SUMMARY_KEY",
]
