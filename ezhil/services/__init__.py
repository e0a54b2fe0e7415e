"""Services for report handling, scoring and AI classification."""

from ezhil.services.classification import ClassificationService
from ezhil.services.gemini_client import GeminiClient
from ezhil.services.report_store import ReportStore

__all__ = ["ClassificationService", "GeminiClient", "ReportStore"]
