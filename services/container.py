"""Wiring of stores, collaborators and background loops for one process."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from agents.bindings import build_registry
from agents.dialogue_orchestrator import DialogueOrchestrator
from config.registry import ModelRegistry
from config.settings import settings
from interview_session.finalizer import Finalizer
from interview_session.locks import SessionLocks
from interview_session.state_machine import InterviewStateMachine
from services.inactivity import InactivitySweeper
from session_reports.store import ReportStore
from session_reports.worker import ReportWorker
from storage.jobs import JobQueue
from storage.sessions import SessionStore


@dataclass
class Services:
    sessions: SessionStore
    reports: ReportStore
    queue: JobQueue
    registry: ModelRegistry
    locks: SessionLocks
    finalizer: Finalizer
    machine: InterviewStateMachine
    worker: ReportWorker
    sweeper: InactivitySweeper

    def start_background(self) -> None:
        if settings.WORKER_ENABLED:
            self.worker.start()
        self.sweeper.start()

    def stop_background(self) -> None:
        self.worker.stop()
        self.sweeper.stop()


def build_services(db_path: Optional[str] = None, registry: Optional[ModelRegistry] = None) -> Services:
    """Build the object graph; ``registry`` defaults to the configured LLM routes."""

    path = db_path or settings.DB_PATH
    registry = registry if registry is not None else build_registry()
    sessions = SessionStore(path)
    reports = ReportStore(path)
    queue = JobQueue(path)
    locks = SessionLocks()
    finalizer = Finalizer(sessions, reports, queue, locks)
    orchestrator = DialogueOrchestrator(registry)
    return Services(
        sessions=sessions,
        reports=reports,
        queue=queue,
        registry=registry,
        locks=locks,
        finalizer=finalizer,
        machine=InterviewStateMachine(sessions, finalizer, orchestrator, locks),
        worker=ReportWorker(sessions, reports, queue, registry),
        sweeper=InactivitySweeper(sessions, finalizer),
    )


__all__ = ["Services", "build_services"]
