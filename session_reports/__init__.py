from __future__ import annotations  # Session report package exports

from .errors import ReportInputError
from .models import FeedbackItem, FinalScores, Report, ReportMetadata, ReportSummary
from .pdf import generate_report_pdf
from .store import ReportStore

__all__ = [
    "FeedbackItem",
    "FinalScores",
    "Report",
    "ReportInputError",
    "ReportMetadata",
    "ReportStore",
    "ReportSummary",
    "generate_report_pdf",
]
