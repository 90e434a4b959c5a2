from __future__ import annotations  # Production wiring of collaborators to configured LLM routes

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Type

from pydantic import BaseModel

from agents.code_runner import Judge0Runner
from agents.types import DialogueReply, EvaluationResult, SummaryResult
from config import AppConfig, LlmRoute, load_config, resolve_routes
from config.registry import (
    CODE_RUNNER_KEY,
    DIALOGUE_KEY,
    EVAL_BEHAVIORAL_KEY,
    EVAL_CODING_KEY,
    EVAL_THEORY_KEY,
    SUMMARY_KEY,
    ModelRegistry,
)
from config.settings import settings
from llm_gateway import HttpClient, chat

logger = logging.getLogger(__name__)

SCHEMAS: Dict[str, Type[BaseModel]] = {
    DIALOGUE_KEY: DialogueReply,
    EVAL_BEHAVIORAL_KEY: EvaluationResult,
    EVAL_THEORY_KEY: EvaluationResult,
    EVAL_CODING_KEY: EvaluationResult,
    SUMMARY_KEY: SummaryResult,
}


def llm_collaborator(route: LlmRoute, schema: Type[BaseModel], client: Optional[HttpClient] = None) -> Callable[..., Any]:
    """Adapt ``llm_gateway.chat`` to the ``fn(messages=..., inputs=...)`` convention."""

    def _invoke(*, messages, inputs: Optional[Dict[str, Any]] = None) -> BaseModel:
        return chat(messages, schema, cfg=route, client=client)

    return _invoke


def bind_llm_models(registry: ModelRegistry, cfg: AppConfig, *, client: Optional[HttpClient] = None) -> ModelRegistry:
    targets = [key for key in SCHEMAS if key in cfg.registry]
    for key in SCHEMAS:
        if key in cfg.registry:
            continue
        if key == DIALOGUE_KEY:
            logger.warning("No LLM route configured for %s; every turn will end the interview with technical_error", key)
        else:
            logger.warning("No LLM route configured for %s; heuristic fallbacks will be used", key)
    for key, route in resolve_routes(cfg, targets).items():
        registry.bind(key, llm_collaborator(route, SCHEMAS[key], client))
    if settings.CODE_RUNNER_URL:
        registry.bind(
            CODE_RUNNER_KEY,
            Judge0Runner(settings.CODE_RUNNER_URL, api_key_env=settings.CODE_RUNNER_API_KEY_ENV),
        )
    return registry


def build_registry(config_path: Optional[Path] = None) -> ModelRegistry:
    """Registry for the running service, built once at process start."""

    registry = ModelRegistry()
    path = Path(config_path or settings.APP_CONFIG_PATH)
    if not path.exists():
        logger.warning("LLM config not found at %s; collaborators are unbound", path)
        return registry
    return bind_llm_models(registry, load_config(path))


__all__ = ["SCHEMAS", "bind_llm_models", "build_registry", "llm_collaborator"]
