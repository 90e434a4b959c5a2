from __future__ import annotations  # Interview session domain models

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

Category = Literal["behavioral", "theory", "coding"]
Difficulty = Literal["easy", "medium", "hard"]
Sentiment = Literal["positive", "negative", "neutral", "uncertain"]
InterviewType = Literal["Behavioral", "System Design", "Coding Challenge", "Technical Screen", "Full Simulation"]
InterviewMode = Literal["full", "specific"]
SessionStatus = Literal["ongoing", "completed", "abandoned", "error"]
EndReason = Literal["natural_conclusion", "user_ended", "time_limit", "technical_error", "inappropriate_behavior"]
MessageKind = Literal["greeting", "question", "followup", "warning", "transition", "closing", "answer"]

TERMINAL_STATUSES = frozenset({"completed", "abandoned", "error"})
CATEGORIES: tuple[str, ...] = ("behavioral", "theory", "coding")
DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class Question(BaseModel):  # Question stored in the session arena
    id: str = Field(default_factory=new_id)
    text: str
    category: Category
    difficulty: Difficulty = "medium"
    ideal_answer: Optional[str] = None
    source: Literal["seed", "ai", "manual"] = "ai"
    language_id: Optional[int] = None


class AnswerAnalysis(BaseModel):  # Heuristic verdict on a single answer
    score: float = Field(default=0.0, ge=0.0, le=5.0)
    is_weak: bool = False
    is_rude: bool = False
    sentiment: Sentiment = "neutral"
    emotions: List[str] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)
    evaluation_method: Literal["ai", "heuristic", "manual"] = "heuristic"


class HistoryItem(BaseModel):  # Asked question with its answer and analysis
    question_id: str
    user_answer: str = ""
    timestamp_start: datetime = Field(default_factory=utcnow)
    timestamp_end: Optional[datetime] = None
    stage: int = Field(default=1, ge=1, le=3)
    is_follow_up: bool = False
    analysis: Optional[AnswerAnalysis] = None

    @property
    def is_open(self) -> bool:
        return self.timestamp_end is None

    @property
    def response_seconds(self) -> Optional[int]:
        if self.timestamp_end is None:
            return None
        return max(0, round((self.timestamp_end - self.timestamp_start).total_seconds()))


class ChatMessage(BaseModel):  # Raw transcript line, separate from scored history
    role: Literal["user", "assistant"]
    content: str
    kind: MessageKind = "question"


class MentionedExperience(BaseModel):
    type: Literal["company", "project", "skill", "achievement", "challenge"]
    value: List[str]
    context: str = ""
    mentioned_at: datetime = Field(default_factory=utcnow)


class ConversationMemory(BaseModel):  # Prompt personalisation only, never scored
    mentioned_experiences: List[MentionedExperience] = Field(default_factory=list)
    technical_topics: List[str] = Field(default_factory=list)
    personal_traits: List[str] = Field(default_factory=list)

    def prune(self, experiences: int = 15, topics: int = 20, traits: int = 10) -> None:
        self.mentioned_experiences = self.mentioned_experiences[-experiences:]
        self.technical_topics = _unique_tail(self.technical_topics, topics)
        self.personal_traits = _unique_tail(self.personal_traits, traits)


class Session(BaseModel):  # Aggregate root for one interview attempt
    id: str = Field(default_factory=new_id)
    role: str = Field(min_length=1, max_length=100)
    company: str = Field(default="Tech Company", max_length=100)
    interview_type: InterviewType
    interview_mode: InterviewMode
    candidate_context: Optional[str] = Field(default=None, max_length=2000)

    status: SessionStatus = "ongoing"
    current_difficulty: Difficulty = "medium"
    current_stage: int = Field(default=1, ge=1, le=3)
    warnings: int = Field(default=0, ge=0)
    end_reason: Optional[EndReason] = None
    adaptation_count: int = 0

    questions: List[Question] = Field(default_factory=list)
    history: List[HistoryItem] = Field(default_factory=list)
    messages: List[ChatMessage] = Field(default_factory=list)
    conversation_memory: ConversationMemory = Field(default_factory=ConversationMemory)

    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    last_activity: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def question_for(self, item: HistoryItem) -> Optional[Question]:
        """Resolve the arena question a history item points at."""
        for question in self.questions:
            if question.id == item.question_id:
                return question
        return None

    def resolve_question(
        self,
        text: str,
        category: str,
        difficulty: str,
        *,
        source: str = "ai",
        ideal_answer: Optional[str] = None,
        language_id: Optional[int] = None,
    ) -> Question:
        """Return the arena question with this exact text, adding it when new."""
        for question in self.questions:
            if question.text == text:
                return question
        question = Question(
            text=text,
            category=category,
            difficulty=difficulty,
            source=source,
            ideal_answer=ideal_answer,
            language_id=language_id,
        )
        self.questions.append(question)
        return question

    def open_items(self) -> List[HistoryItem]:
        return [item for item in self.history if item.is_open]

    def open_item(self) -> Optional[HistoryItem]:
        items = self.open_items()
        return items[-1] if items else None

    def answered_items(self) -> List[HistoryItem]:
        return [item for item in self.history if not item.is_open]

    def ask(self, question: Question, *, stage: int, is_follow_up: bool = False) -> HistoryItem:
        """Push a new open history item; refuses while another one is open."""
        if self.open_item() is not None:
            raise ValueError("Session already has an open question")
        item = HistoryItem(question_id=question.id, stage=stage, is_follow_up=is_follow_up)
        self.history.append(item)
        return item

    def say(self, content: str, kind: MessageKind, role: str = "assistant") -> ChatMessage:
        message = ChatMessage(role=role, content=content, kind=kind)
        self.messages.append(message)
        return message

    def touch(self) -> None:
        self.last_activity = utcnow()

    def prune_messages(self, limit: int = 50, keep: int = 44) -> None:
        """Bound the chat transcript, always keeping the greeting."""
        if len(self.messages) > limit:
            self.messages = [self.messages[0], *self.messages[-keep:]]

    def performance_metrics(self) -> Dict[str, object]:
        scored = [item for item in self.history if item.analysis is not None and not item.is_open]
        metrics: Dict[str, object] = {
            "total_questions": len(self.history),
            "average_score": None,
            "average_sentiment": "neutral",
            "engagement_level": "medium",
            "average_response_seconds": None,
            "adaptation_count": self.adaptation_count,
            "category_scores": {},
        }
        if not scored:
            return metrics
        metrics["average_score"] = round(sum(item.analysis.score for item in scored) / len(scored), 1)
        by_category: Dict[str, List[float]] = {}
        for item in scored:
            question = self.question_for(item)
            if question is not None:
                by_category.setdefault(question.category, []).append(item.analysis.score)
        metrics["category_scores"] = {
            category: round(sum(scores) / len(scores), 1) for category, scores in by_category.items()
        }
        weights = {"positive": 1.0, "neutral": 0.0, "uncertain": -0.5, "negative": -1.0}
        mood = sum(weights[item.analysis.sentiment] for item in scored) / len(scored)
        if mood > 0.3:
            metrics["average_sentiment"] = "positive"
        elif mood < -0.3:
            metrics["average_sentiment"] = "negative"
        timings = [item.response_seconds for item in scored if item.response_seconds is not None]
        if timings:
            metrics["average_response_seconds"] = round(sum(timings) / len(timings))
        recent = self.history[-5:]
        engaged = [item for item in recent if len(item.user_answer) > 20]
        ratio = len(engaged) / max(len(recent), 1)
        if ratio > 0.7:
            metrics["engagement_level"] = "high"
        elif ratio <= 0.4:
            metrics["engagement_level"] = "low"
        return metrics

    def timeline(self) -> List[Dict[str, object]]:
        """One entry per answered question, in the order they were asked."""
        entries: List[Dict[str, object]] = []
        for index, item in enumerate(self.answered_items(), start=1):
            question = self.question_for(item)
            entries.append(
                {
                    "index": index,
                    "question": question.text if question else None,
                    "category": question.category if question else None,
                    "difficulty": question.difficulty if question else None,
                    "stage": item.stage,
                    "is_follow_up": item.is_follow_up,
                    "response_seconds": item.response_seconds,
                    "score": item.analysis.score if item.analysis else None,
                    "sentiment": item.analysis.sentiment if item.analysis else None,
                }
            )
        return entries

    def duration_minutes(self) -> Optional[int]:
        if self.status != "completed":
            return None
        return round((self.last_activity - self.created_at).total_seconds() / 60)

    def conversation_summary(self) -> Dict[str, object]:
        metrics = self.performance_metrics()
        return {
            "duration": self.duration_minutes(),
            "questions_answered": len([item for item in self.history if item.user_answer.strip()]),
            "average_score": metrics["average_score"],
            "sentiment": metrics["average_sentiment"],
            "engagement": metrics["engagement_level"],
            "technical_topics": list(self.conversation_memory.technical_topics),
            "personal_traits": list(self.conversation_memory.personal_traits),
            "background_utilized": bool(self.conversation_memory.mentioned_experiences),
            "adaptations": self.adaptation_count,
        }


def _unique_tail(values: List[str], limit: int) -> List[str]:
    seen: set[str] = set()
    unique: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique[-limit:]


__all__ = [
    "AnswerAnalysis",
    "CATEGORIES",
    "ChatMessage",
    "ConversationMemory",
    "DIFFICULTIES",
    "HistoryItem",
    "MentionedExperience",
    "Question",
    "Session",
    "TERMINAL_STATUSES",
    "utcnow",
]
