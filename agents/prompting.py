from __future__ import annotations  # Shared LangChain helpers for interview prompts

from typing import Iterable, List, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from interview_session.models import ChatMessage


def transcript_messages(history: Sequence[ChatMessage], limit: int = 8) -> List[BaseMessage]:  # Map the chat log to LangChain messages
    messages: List[BaseMessage] = []
    for entry in list(history)[-limit:]:
        content = entry.content.strip()
        if not content:
            continue
        if entry.role == "user":
            messages.append(HumanMessage(content=content))
        else:
            messages.append(AIMessage(content=content))
    return messages


def clamp_text(text: str, limit: int = 600) -> str:  # Compact whitespace and clip length
    compact = " ".join((text or "").split())
    if len(compact) <= limit:
        return compact
    return compact[: limit - 1].rstrip() + "…"


def bullet_list(entries: Iterable[str]) -> str:  # Render entries as markdown bullets
    lines = [item.strip() for item in entries if item and item.strip()]
    if not lines:
        return "None provided."
    return "\n".join(f"- {line}" for line in lines)


__all__ = ["bullet_list", "clamp_text", "transcript_messages"]
