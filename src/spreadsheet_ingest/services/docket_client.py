"""Docket client factory and job submission helpers."""

from __future__ import annotations

import uuid
from typing import Any

from docket import Docket
from docket.execution import Execution

from spreadsheet_ingest.config import settings
from spreadsheet_ingest.services.spreadsheet_processor import process_spreadsheet_job


def build_docket() -> Docket:
    """Build a configured Docket instance."""
    return Docket(
        name=settings.docket_name,
        url=settings.docket_url,
        execution_ttl=settings.docket_execution_ttl,
    )


async def enqueue_spreadsheet_job(
    docket: Docket,
    payload: dict[str, Any],
    key: str | None = None,
) -> Execution:
    """Schedule a spreadsheet job.

    Every upload gets its own execution key so a second upload for the same
    record is never dropped while an earlier one is still queued.

    Args:
        docket: Connected Docket instance.
        payload: Job data as accepted by ``process_spreadsheet_job``.
        key: Execution key; defaults to ``<spreadsheetId>:<uuid4>``.

    Returns:
        The scheduled execution.
    """
    execution_key = key or f"{payload.get('spreadsheetId')}:{uuid.uuid4()}"
    return await docket.add(process_spreadsheet_job, key=execution_key)(payload)
