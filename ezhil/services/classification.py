"""Classification flow: runs the vision model on a report and records the outcome."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ezhil.database import session_scope
from ezhil.schemas.report import Classification
from ezhil.services.feed import publish_feed_update
from ezhil.services.gemini_client import GeminiClient, GeminiClientError, GeminiRateLimitError
from ezhil.services.report_store import InvalidTransitionError, ReportStore

logger = logging.getLogger(__name__)


class ClassificationService:
    """
    Classifies a submitted report and writes the verdict back.

    Failures stop here: they are stored on the report as ``ai_failed`` with
    the error message and never raised to the caller. There is no automatic
    retry out of ``ai_failed``.
    """

    def __init__(self, db: AsyncSession, client: GeminiClient | None = None):
        self.db = db
        self.client = client or GeminiClient()
        self.store = ReportStore(db)

    def _log_retry(self, report_id: int):
        def observer(wait_seconds: float, attempt: int) -> None:
            logger.info(
                f"Report {report_id}: rate limited, retrying in {wait_seconds:g}s "
                f"(attempt {attempt}/{self.client.max_retries})"
            )

        return observer

    async def classify_report(
        self,
        report_id: int,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
    ) -> Classification | None:
        """
        Classify one report.

        Returns:
            The classification, or None if the model call failed or the
            report was resolved before the outcome could be stored
        """
        try:
            classification = await self.client.classify_image(
                image_bytes,
                mime_type=mime_type,
                on_retry=self._log_retry(report_id),
            )
        except GeminiRateLimitError as e:
            logger.error(f"Report {report_id}: classification rate limited: {e}")
            await self._record(report_id, self.store.record_failure, f"Rate limited: {e}")
            return None
        except GeminiClientError as e:
            logger.error(f"Report {report_id}: classification failed: {e}", exc_info=True)
            await self._record(report_id, self.store.record_failure, str(e))
            return None

        if not await self._record(report_id, self.store.record_classification, classification):
            return None
        return classification

    async def _record(self, report_id: int, write, outcome) -> bool:
        """
        Apply an outcome and notify the feed.

        The report may have been resolved while the model was running; the
        outcome is then dropped and the resolved report left as it is.
        """
        try:
            await write(report_id, outcome)
        except InvalidTransitionError as e:
            logger.warning(f"Report {report_id}: discarding classification outcome: {e}")
            return False

        await publish_feed_update(self.db)
        return True


async def run_classification(report_id: int, image_bytes: bytes, mime_type: str) -> None:
    """Background entry point: classify a report in its own session."""
    try:
        async with session_scope() as db:
            await ClassificationService(db).classify_report(report_id, image_bytes, mime_type)
    except Exception as e:
        logger.error(f"Classification job for report {report_id} crashed: {e}", exc_info=True)
