"""FastAPI routes for report polling and download."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from api.routes import services
from api.schemas import ReportPending, ReportStatusResp
from session_reports.pdf import generate_report_pdf


router = APIRouter(prefix="/api/report")


@router.get("/session/{session_id}")
def report_for_session(session_id: str, request: Request):
    """Completed report (200), or the id of the one being generated (202)."""

    svc = services(request)
    report = svc.reports.get_by_session(session_id)
    if report is None:
        session = svc.sessions.find(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="session not found")
        if session.status != "completed":
            raise HTTPException(status_code=400, detail=f"session is {session.status}, not completed")
        report, _ = svc.finalizer.request_report(session)
    if report.status == "completed":
        return report.model_dump(mode="json")
    pending = ReportPending(report_id=report.id, status=report.status)
    return JSONResponse(status_code=202, content=pending.model_dump())


@router.get("/status/{report_id}", response_model=ReportStatusResp, response_model_exclude_none=True)
def report_status(report_id: str, request: Request) -> ReportStatusResp:
    report = services(request).reports.get(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="report not found")
    return ReportStatusResp(
        report_id=report.id,
        status=report.status,
        error=report.error,
        data=report.model_dump(mode="json") if report.status == "completed" else None,
    )


@router.get("/{report_id}/pdf")
def report_pdf(report_id: str, request: Request) -> Response:
    report = services(request).reports.get(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="report not found")
    if report.status != "completed":
        raise HTTPException(status_code=409, detail=f"report is {report.status}")
    pdf_bytes = generate_report_pdf(report)
    filename = f"interview-report-{report.id}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
