from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import (
    HttpClient,
    HttpResponse,
    LlmGatewayError,
    chat,
    coerce_messages,
    extract_json_object,
)

__all__ = [
    "HttpClient",
    "HttpResponse",
    "LlmGatewayError",
    "chat",
    "coerce_messages",
    "extract_json_object",
]
