"""Pydantic schemas for the interview and report API."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from interview_session.models import InterviewMode, InterviewType


class StartReq(BaseModel):
    role: str = Field(min_length=1, max_length=100)
    interview_type: InterviewType
    interview_mode: InterviewMode = "full"
    company: Optional[str] = Field(default=None, max_length=100)
    candidate_context: Optional[str] = Field(default=None, max_length=2000)


class TurnReq(BaseModel):
    session_id: str
    answer: str = Field(min_length=1, max_length=10000)


class SessionReq(BaseModel):
    session_id: str


class UIMessage(BaseModel):
    role: Literal["assistant", "user"] = "assistant"
    kind: str = "question"
    text: str


class QuestionPayload(BaseModel):
    id: str
    text: str
    category: str
    difficulty: str


class StartResp(BaseModel):
    session_id: str
    first_message: str
    question: QuestionPayload
    ui_messages: List[UIMessage] = Field(default_factory=list)


class TurnResp(BaseModel):
    session_id: str
    action: Literal["CONTINUE", "END_INTERVIEW", "NOOP"]
    status: str
    message: Optional[str] = None
    question: Optional[QuestionPayload] = None
    transition_text: Optional[str] = None
    is_warning: bool = False
    current_stage: int
    current_difficulty: str
    warnings: int = 0
    end_reason: Optional[str] = None
    report_id: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None
    event_log: List[Dict] = Field(default_factory=list)


class EndResp(BaseModel):
    session_id: str
    status: str
    end_reason: Optional[str] = None
    report_id: Optional[str] = None


class SessionResp(BaseModel):
    session: Dict[str, Any]
    metrics: Dict[str, Any]
    summary: Dict[str, Any]
    timeline: List[Dict[str, Any]] = Field(default_factory=list)


class ReportPending(BaseModel):
    report_id: str
    status: str


class ReportStatusResp(BaseModel):
    report_id: str
    status: str
    error: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
