from __future__ import annotations  # Session report domain models

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from interview_session.models import new_id, utcnow

ReportStatus = Literal["pending", "processing", "completed", "failed"]

REPORT_JOB_NAME = "generate-report"


class ReportSummary(BaseModel):  # Narrative block produced by the summarizer
    strengths: str = ""
    weaknesses: str = ""
    next_steps: str = ""


class FinalScores(BaseModel):  # Per-category means on the 0-5 scale
    behavioral: float = Field(default=0.0, ge=0.0, le=5.0)
    theory: float = Field(default=0.0, ge=0.0, le=5.0)
    coding: float = Field(default=0.0, ge=0.0, le=5.0)


class CodeExecution(BaseModel):  # Side signal from the code runner
    status: str
    stdout: str = ""
    stderr: str = ""


class FeedbackItem(BaseModel):  # Scored answer in chronological order
    question: str
    category: str
    answer: str
    score: float = Field(ge=0.0, le=5.0)
    details: str = ""
    tips: str = ""
    evaluation_method: Literal["ai", "heuristic"] = "ai"
    code_execution: Optional[CodeExecution] = None


class ReportMetadata(BaseModel):
    total_questions: int = 0
    answered_questions: int = 0
    processing_errors: List[str] = Field(default_factory=list)
    session_duration_minutes: Optional[int] = None


class Report(BaseModel):  # Durable scored summary of one completed session
    id: str = Field(default_factory=new_id)
    session_id: str
    status: ReportStatus = "pending"
    role: str
    company: str
    summary: Optional[ReportSummary] = None
    final_scores: FinalScores = Field(default_factory=FinalScores)
    overall_score: float = Field(default=0.0, ge=0.0, le=5.0)
    detailed_feedback: List[FeedbackItem] = Field(default_factory=list)
    metadata: ReportMetadata = Field(default_factory=ReportMetadata)
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


def job_payload(report: Report) -> Dict[str, Any]:
    """Wire payload of a ``generate-report`` job."""

    return {"reportId": report.id, "sessionId": report.session_id}


__all__ = [
    "CodeExecution",
    "FeedbackItem",
    "FinalScores",
    "REPORT_JOB_NAME",
    "Report",
    "ReportMetadata",
    "ReportStatus",
    "ReportSummary",
    "job_payload",
]
