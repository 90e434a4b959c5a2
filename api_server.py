from __future__ import annotations  # FastAPI server exposing the mock interview service

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.report_routes import router as report_router
from api.routes import router as interview_router
from services.container import Services, build_services


logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None, *, background: bool = True) -> FastAPI:
    """Build the app; ``services`` is built from settings at startup when omitted."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services()
        if background:
            app.state.services.start_background()
            logger.info("Background report worker and inactivity sweep started")
        try:
            yield
        finally:
            if background:
                app.state.services.stop_background()

    app = FastAPI(title="Mock Interview API", lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"]
    )
    app.include_router(interview_router)
    app.include_router(report_router)

    @app.get("/api/health")
    def health() -> dict:
        svc: Optional[Services] = app.state.services
        return {"status": "ok", "jobs": svc.queue.counts() if svc else {}}

    return app


app = create_app()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("api_server:app", host="0.0.0.0", port=8000)
