"""Extract personal context from answers to personalise later questions."""
from __future__ import annotations

from typing import List, Optional

from config.patterns import PatternEngine, pattern_engine
from interview_session.models import ConversationMemory, MentionedExperience

EXPERIENCE_CLASSES = ("company", "project", "achievement")


def remember(memory: ConversationMemory, answer: str, engine: Optional[PatternEngine] = None) -> ConversationMemory:
    """Fold mentions found in ``answer`` into ``memory`` and prune it."""

    engine = engine or pattern_engine()
    text = (answer or "").strip()
    if not text:
        return memory

    for name in EXPERIENCE_CLASSES:
        values = _dedupe(engine.captures("memory_experiences", name, text))
        if values:
            memory.mentioned_experiences.append(
                MentionedExperience(type=name, value=values, context=text[:100])
            )
    for topic in engine.matched_classes("memory_topics", text):
        if topic not in memory.technical_topics:
            memory.technical_topics.append(topic)
    for trait in engine.matched_classes("memory_traits", text):
        if trait not in memory.personal_traits:
            memory.personal_traits.append(trait)

    memory.prune()
    return memory


def describe(memory: ConversationMemory) -> str:
    """Short prose used inside prompts; empty when nothing was captured."""

    parts: List[str] = []
    companies = [value for item in memory.mentioned_experiences if item.type == "company" for value in item.value]
    projects = [value for item in memory.mentioned_experiences if item.type == "project" for value in item.value]
    if companies:
        parts.append("Worked at: " + ", ".join(_dedupe(companies)[-3:]))
    if projects:
        parts.append("Projects: " + ", ".join(_dedupe(projects)[-3:]))
    if memory.technical_topics:
        parts.append("Technologies: " + ", ".join(memory.technical_topics[-5:]))
    if memory.personal_traits:
        parts.append("Traits: " + ", ".join(memory.personal_traits[-3:]))
    return "; ".join(parts)


def _dedupe(values: List[str]) -> List[str]:
    seen: set[str] = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


__all__ = ["describe", "remember"]
