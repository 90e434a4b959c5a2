"""FastAPI routes for interview session control."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException, Request

from api.schemas import (
    EndResp,
    QuestionPayload,
    SessionReq,
    SessionResp,
    StartReq,
    StartResp,
    TurnReq,
    TurnResp,
    UIMessage,
)
from interview_session.errors import (
    ConcurrentUpdateError,
    NoOpenQuestionError,
    SessionNotFoundError,
    SessionStateError,
)
from interview_session.models import Question, Session
from interview_session.state_machine import TurnOutcome
from services.container import Services


router = APIRouter(prefix="/api/interview")


def services(request: Request) -> Services:
    return request.app.state.services


def _question(question: Question) -> QuestionPayload:
    return QuestionPayload(
        id=question.id,
        text=question.text,
        category=question.category,
        difficulty=question.difficulty,
    )


def _ui_messages(session: Session) -> List[UIMessage]:
    return [UIMessage(role=msg.role, kind=msg.kind, text=msg.content) for msg in session.messages]


def _turn_resp(outcome: TurnOutcome) -> TurnResp:
    return TurnResp(
        session_id=outcome.session_id,
        action=outcome.action,
        status=outcome.status,
        message=outcome.message,
        question=_question(outcome.question) if outcome.question else None,
        transition_text=outcome.transition_text,
        is_warning=outcome.is_warning,
        current_stage=outcome.current_stage,
        current_difficulty=outcome.current_difficulty,
        warnings=outcome.warnings,
        end_reason=outcome.end_reason,
        report_id=outcome.report_id,
        analysis=outcome.analysis.model_dump() if outcome.analysis else None,
        event_log=list(outcome.events),
    )


@router.post("/start", response_model=StartResp, status_code=201)
def start(req: StartReq, request: Request) -> StartResp:
    session = services(request).machine.start_session(
        role=req.role,
        interview_type=req.interview_type,
        interview_mode=req.interview_mode,
        company=req.company,
        candidate_context=req.candidate_context,
    )
    item = session.open_item()
    question = session.question_for(item)
    return StartResp(
        session_id=session.id,
        first_message=session.messages[0].content,
        question=_question(question),
        ui_messages=_ui_messages(session),
    )


@router.post("/next-step", response_model=TurnResp)
def next_step(req: TurnReq, request: Request) -> TurnResp:
    try:
        outcome = services(request).machine.submit_answer(req.session_id, req.answer)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session not found")
    except NoOpenQuestionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ConcurrentUpdateError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except SessionStateError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _turn_resp(outcome)


@router.post("/end", response_model=EndResp)
def end(req: SessionReq, request: Request) -> EndResp:
    svc = services(request)
    try:
        svc.machine.end_session(req.session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session not found")
    session = svc.sessions.get(req.session_id)
    report = svc.reports.get_by_session(session.id)
    return EndResp(
        session_id=session.id,
        status=session.status,
        end_reason=session.end_reason,
        report_id=report.id if report else None,
    )


@router.post("/abandon", response_model=EndResp)
def abandon(req: SessionReq, request: Request) -> EndResp:
    try:
        session = services(request).machine.abandon(req.session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session not found")
    except SessionStateError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return EndResp(session_id=session.id, status=session.status, end_reason=session.end_reason)


@router.get("/session/{session_id}", response_model=SessionResp)
def get_session(session_id: str, request: Request) -> SessionResp:
    session = services(request).sessions.find(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="session not found")
    return SessionResp(
        session=session.model_dump(mode="json"),
        metrics=session.performance_metrics(),
        summary=session.conversation_summary(),
        timeline=session.timeline(),
    )
