"""Errors raised by the interview session layer."""
from __future__ import annotations


class SessionNotFoundError(KeyError):
    """Raised when a session identifier is unknown."""


class SessionStateError(RuntimeError):
    """Raised when a session is not in the state an operation requires."""


class NoOpenQuestionError(SessionStateError):
    """Raised when an answer arrives while no question is awaiting one."""


class EmptyAnswerError(SessionStateError):
    """Raised when a submitted answer is blank."""


class ConcurrentUpdateError(RuntimeError):
    """Raised when a save loses an optimistic version check."""

    def __init__(self, session_id: str, expected_version: int) -> None:
        super().__init__(f"Session '{session_id}' changed since version {expected_version}")
        self.session_id = session_id
        self.expected_version = expected_version


__all__ = [
    "ConcurrentUpdateError",
    "EmptyAnswerError",
    "NoOpenQuestionError",
    "SessionNotFoundError",
    "SessionStateError",
]
