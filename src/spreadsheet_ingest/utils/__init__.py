"""Utilities package for the spreadsheet ingestion worker.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from spreadsheet_ingest.utils.exceptions import (
    CodecError,
    ConcurrentUpdateError,
    DecodeError,
    ErrorCode,
    NotFoundError,
    PayloadTooLargeError,
    SpreadsheetIngestError,
    StoreError,
    ValidationError,
)
from spreadsheet_ingest.utils.logging import (
    LogContext,
    StructuredLogger,
    get_job_id,
    get_logger,
    set_job_id,
)

__all__ = [
    # Exceptions
    "CodecError",
    "ConcurrentUpdateError",
    "DecodeError",
    "ErrorCode",
    "NotFoundError",
    "PayloadTooLargeError",
    "SpreadsheetIngestError",
    "StoreError",
    "ValidationError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_job_id",
    "get_logger",
    "set_job_id",
]
