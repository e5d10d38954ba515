"""Spreadsheet processor for background job processing.

This module provides the ingestion orchestration that:
1. Validates the job payload and resolves its buffer encoding
2. Decodes the workbook into header-keyed sheets
3. Applies smart cleanup when requested
4. Compresses the result and builds the column manifest
5. Activates or refreshes the stored spreadsheet record

This is the entry point for processing spreadsheet jobs in Docket workers.
Errors are logged and re-raised so the queue records the job as failed.
"""

from contextlib import suppress
from typing import Any

from docket import Progress

from spreadsheet_ingest.config import settings as app_settings
from spreadsheet_ingest.models import parse_job_payload
from spreadsheet_ingest.services.cleanup import apply_smart_cleanup
from spreadsheet_ingest.services.codec import compress_document
from spreadsheet_ingest.services.persistence import get_persistence_coordinator
from spreadsheet_ingest.services.workbook_decoder import WorkbookDecoder
from spreadsheet_ingest.utils.exceptions import (
    PayloadTooLargeError,
    SpreadsheetIngestError,
)
from spreadsheet_ingest.utils.logging import (
    LogContext,
    PerformanceMetrics,
    get_logger,
    timed_operation,
)
from spreadsheet_ingest.workbook_document import WorkbookDocument

logger = get_logger(__name__)
_DEFAULT_PROGRESS = Progress()


async def _set_progress(progress: Progress | None, message: str) -> None:
    """Update Docket progress messages when available."""
    if progress is None:
        return
    # Progress dependency is only valid inside a Docket worker context.
    with suppress(AssertionError):
        await progress.set_message(message)


def build_workbook_document(data: bytes, smart_cleanup: bool) -> WorkbookDocument:
    """Decode workbook bytes and apply the optional cleanup pass."""
    with timed_operation(logger, "decode") as metrics:
        document = WorkbookDecoder().decode(data)
        metrics.bytes_processed = len(data)
        metrics.sheets_processed = len(document.sheets)
        metrics.rows_processed = document.row_count

    return apply_smart_cleanup(document, smart_cleanup)


async def process_spreadsheet_job(
    payload: dict[str, Any],
    progress: Progress | None = _DEFAULT_PROGRESS,
) -> None:
    """Process a spreadsheet ingestion job.

    Args:
        payload: Job data with spreadsheetId, userId, fileName, sizeInBytes,
            optional smartCleanup and the workbook buffer.
        progress: Optional Docket progress reporter.

    Raises:
        SpreadsheetIngestError: Any validation, decode, codec or store failure.
    """
    metrics = PerformanceMetrics(operation="spreadsheet_job")
    job_id = payload.get("spreadsheetId") if isinstance(payload, dict) else None

    try:
        job = parse_job_payload(payload)
        job_id = job.spreadsheet_id

        with LogContext(job_id=job.spreadsheet_id, file_name=job.file_name):
            logger.info(
                "Starting spreadsheet ingestion",
                user_id=job.user_id,
                size_in_bytes=job.size_in_bytes,
                buffer_encoding=job.buffer.encoding.value,
                smart_cleanup=job.smart_cleanup,
            )

            if job.buffer.size > app_settings.max_file_size_bytes:
                raise PayloadTooLargeError(
                    file_size=job.buffer.size,
                    max_size=app_settings.max_file_size_bytes,
                )

            await _set_progress(progress, "Decoding workbook")
            document = build_workbook_document(job.buffer.data, job.smart_cleanup)

            await _set_progress(progress, "Compressing workbook")
            with timed_operation(logger, "compress") as compress_metrics:
                compressed = compress_document(document)
                compress_metrics.bytes_processed = len(compressed)
            manifest = document.column_manifest()

            await _set_progress(progress, "Saving spreadsheet")
            outcome = await get_persistence_coordinator().persist(
                job.spreadsheet_id, compressed, manifest
            )

            metrics.finish()
            logger.log_job_result(
                job_id=job.spreadsheet_id,
                success=True,
                duration_seconds=metrics.duration_seconds,
                outcome=outcome.value,
            )
            await _set_progress(progress, f"Spreadsheet {outcome.value}")

    except Exception as e:
        metrics.finish()
        logger.log_job_result(
            job_id=str(job_id),
            success=False,
            duration_seconds=metrics.duration_seconds,
            error_message=f"{type(e).__name__}: {e}",
        )
        if not isinstance(e, SpreadsheetIngestError):
            logger.exception("Unexpected error while processing spreadsheet")
        await _set_progress(progress, "Job failed")
        raise
