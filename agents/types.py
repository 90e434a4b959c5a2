"""Shared type definitions for agents."""
from typing import List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field

from llm_gateway import extract_json_object

Category = Literal["behavioral", "theory", "coding"]
Difficulty = Literal["easy", "medium", "hard"]
AnswerType = Literal["empty", "dont_know", "too_short", "too_long", "uncertain", "normal"]


class PolicyDecision(BaseModel):
    next_difficulty: Difficulty
    next_stage: int = Field(ge=1, le=3)
    next_category: Category
    stage_changed: bool = False
    difficulty_changed: bool = False
    transition_text: Optional[str] = None
    complete: bool = False
    trailing_average: Optional[float] = None


class DialogueReply(BaseModel):
    """Structured reply expected from the dialogue collaborator."""

    action: Literal["CONTINUE", "END_INTERVIEW"]
    dialogue: str = Field(validation_alias=AliasChoices("dialogue", "dialogue_text", "dialogueText"))
    category: Optional[str] = None
    difficulty: Optional[str] = None
    is_follow_up: bool = False

    @classmethod
    def from_raw_content(cls, content: str) -> "DialogueReply":
        return cls.model_validate(extract_json_object(content))


class ContinueAction(BaseModel):
    kind: Literal["continue"] = "continue"
    dialogue_text: str
    category: Category
    difficulty: Difficulty
    is_follow_up: bool = False
    is_warning: bool = False


class EndInterviewAction(BaseModel):
    kind: Literal["end"] = "end"
    dialogue_text: str
    reason: Literal["natural_conclusion", "technical_error", "inappropriate_behavior"] = "natural_conclusion"


class ParseFailure(BaseModel):
    kind: Literal["parse_failure"] = "parse_failure"
    error: str
    raw: str = ""


ParsedAction = Union[ContinueAction, EndInterviewAction, ParseFailure]


class EvaluationResult(BaseModel):
    score: float = Field(ge=0.0, le=5.0)
    details: str = ""
    tips: str = ""


class SummaryResult(BaseModel):
    strengths: str
    weaknesses: str
    next_steps: Union[str, List[str]] = Field(validation_alias=AliasChoices("next_steps", "nextSteps"))

    @classmethod
    def from_raw_content(cls, content: str) -> "SummaryResult":
        return cls.model_validate(extract_json_object(content))


class CodeRun(BaseModel):
    stdout: str = ""
    stderr: str = ""
    status_description: str = ""


__all__ = [
    "AnswerType",
    "Category",
    "CodeRun",
    "ContinueAction",
    "DialogueReply",
    "Difficulty",
    "EndInterviewAction",
    "EvaluationResult",
    "ParseFailure",
    "ParsedAction",
    "PolicyDecision",
    "SummaryResult",
]
