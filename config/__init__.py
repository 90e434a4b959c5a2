"""Configuration package for the interview services."""
from .llm_config import AppConfig, LlmRoute, load_config, resolve_routes
from .registry import (
    CODE_RUNNER_KEY,
    DIALOGUE_KEY,
    EVAL_KEYS,
    SUMMARY_KEY,
    ModelRegistry,
)
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "LlmRoute",
    "load_config",
    "resolve_routes",
    "CODE_RUNNER_KEY",
    "DIALOGUE_KEY",
    "EVAL_KEYS",
    "SUMMARY_KEY",
    "ModelRegistry",
    "Settings",
    "settings",
]
