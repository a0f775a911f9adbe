"""
Lab report pipeline: acquisition -> extraction -> normalization/persistence -> summary.

One sequential run per request. The SDK calls are blocking, so each one runs in a
worker thread. Everything after request validation and service configuration
degrades into placeholder rows and diagnostics instead of raising. A fault outside
that flow surfaces as PipelineError with the raw model output attached.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from labwise.config import Settings
from labwise.exceptions import (
    AcquisitionFailure,
    ExtractionAmbiguity,
    LabwiseError,
    PipelineError,
    StorageError,
    SummaryFailure,
)
from labwise.services.acquisition import acquire_text
from labwise.services.extraction import extract_lab_results
from labwise.services.factory import PipelineServices
from labwise.services.normalization import normalize_candidates
from labwise.services.storage import NO_AI_TEXT_EXPLANATION, DocumentStore, ResultStore
from labwise.services.summary import NO_SUMMARY_MESSAGE, generate_summary

logger = logging.getLogger(__name__)

ACQUISITION_FAILED_SUMMARY = "We could not read any text from this report, so no results or summary are available."
NO_RESULTS_DEBUG = "No results extracted; check aiContent for what AI returned."
NO_ROWS_STORED_DEBUG = "No extracted record could be stored; see insert_errors."


@dataclass
class PipelineOutcome:
    extracted: int = 0
    ai_content: str = ""
    summary: Optional[str] = None
    insert_errors: List[str] = field(default_factory=list)
    degraded: bool = False
    parse_debug: Optional[str] = None
    parse_error: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "extracted": self.extracted,
            "aiContent": self.ai_content,
            "summary": self.summary,
            "insert_errors": list(self.insert_errors),
        }
        if self.degraded:
            body["parse_debug"] = self.parse_debug
            body["parseError"] = self.parse_error
        return body


class LabReportPipeline:
    def __init__(
        self,
        settings: Settings,
        services: PipelineServices,
        documents: DocumentStore,
        results: ResultStore,
    ):
        self.settings = settings
        self.services = services
        self.documents = documents
        self.results = results

    async def run(self, file_url: str, file_id: str, ocr_text: Optional[str] = None) -> PipelineOutcome:
        logger.info("Processing document %s", file_id)
        outcome = PipelineOutcome()

        # 1. Acquisition
        try:
            text = await asyncio.to_thread(acquire_text, file_url, ocr_text, self.services.acquisition)
        except AcquisitionFailure as e:
            logger.warning("Acquisition failed for document %s: %s", file_id, e)
            outcome.degraded = True
            outcome.parse_debug = f"Text acquisition failed: {e.reason.value}"
            await self._clear_previous(file_id, outcome)
            await self._insert_placeholder(
                file_id,
                f"Text acquisition failed ({e.reason.value}): {e.message}",
                outcome,
            )
            outcome.summary = await self._store_summary(file_id, ACQUISITION_FAILED_SUMMARY)
            return outcome

        # 2. Extraction
        extraction = await asyncio.to_thread(
            extract_lab_results,
            text,
            file_url,
            self.services.extraction,
            use_vision=self.settings.extraction_use_vision,
        )
        outcome.ai_content = extraction.ai_content

        # 3. Normalization and persistence
        await self._clear_previous(file_id, outcome)
        try:
            records = extraction.require_records()
        except ExtractionAmbiguity as e:
            logger.info("Document %s: %s", file_id, e)
            outcome.parse_error = e.parse_error
            await self._degrade_to_placeholder(file_id, e.ai_content, NO_RESULTS_DEBUG, outcome)
            return outcome

        try:
            rows = normalize_candidates(records)
            outcome.extracted = len(rows)
            stored_rows = []
            for row in rows:
                try:
                    await self.results.insert(file_id, row)
                except StorageError as e:
                    outcome.insert_errors.append(str(e))
                else:
                    stored_rows.append(row)
            if outcome.insert_errors:
                logger.warning(
                    "Document %s: %d of %d row(s) failed to insert",
                    file_id, len(rows) - len(stored_rows), len(rows),
                )
            if not stored_rows:
                await self._degrade_to_placeholder(file_id, extraction.ai_content, NO_ROWS_STORED_DEBUG, outcome)
                return outcome

            # 4. Summary
            try:
                summary = await asyncio.to_thread(generate_summary, stored_rows, self.services.summary)
            except SummaryFailure as e:
                logger.warning("Summary skipped for document %s: %s", file_id, e)
                if self.settings.replace_existing_results:
                    # previous summary describes rows that were just replaced
                    await self._store_summary(file_id, None)
            else:
                outcome.summary = await self._store_summary(file_id, summary)
        except LabwiseError:
            raise
        except Exception as e:
            logger.exception("Unexpected failure after extraction for document %s", file_id)
            raise PipelineError(
                f"Processing failed after extraction: {e}",
                ai_content=extraction.ai_content,
                parse_error=extraction.parse_error,
            ) from e

        logger.info("Document %s completed; extracted=%d", file_id, outcome.extracted)
        return outcome

    async def _degrade_to_placeholder(
        self, file_id: str, ai_content: str, debug: str, outcome: PipelineOutcome
    ) -> None:
        outcome.degraded = True
        outcome.parse_debug = debug
        explanation = ai_content if ai_content.strip() else NO_AI_TEXT_EXPLANATION
        await self._insert_placeholder(file_id, explanation, outcome)
        outcome.summary = await self._store_summary(file_id, NO_SUMMARY_MESSAGE)

    async def _clear_previous(self, file_id: str, outcome: PipelineOutcome) -> None:
        if not self.settings.replace_existing_results:
            return
        try:
            await self.results.delete_for_document(file_id)
        except StorageError as e:
            outcome.insert_errors.append(str(e))

    async def _insert_placeholder(self, file_id: str, explanation: str, outcome: PipelineOutcome) -> None:
        try:
            await self.results.insert_placeholder(file_id, explanation)
        except StorageError as e:
            outcome.insert_errors.append(str(e))

    async def _store_summary(self, file_id: str, summary: Optional[str]) -> Optional[str]:
        try:
            stored = await self.documents.update_summary(file_id, summary)
        except StorageError as e:
            logger.error("%s", e)
            return None
        return summary if stored else None
