"""Centralized exception classes for the spreadsheet ingestion worker.

This module provides a hierarchy of custom exceptions with error codes and
structured error details so every pipeline failure reaches the job queue
with a consistent, descriptive message.

Exception Hierarchy:
    SpreadsheetIngestError (base)
    ├── ValidationError
    │   └── PayloadTooLargeError
    ├── DecodeError
    ├── CodecError
    ├── NotFoundError
    └── StoreError
        └── ConcurrentUpdateError

Error Codes:
    All errors have a unique error code (e.g., "E1001") that can be used
    for programmatic error handling and documentation.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Enumeration of all error codes used in the application.

    Error codes are grouped by category:
    - E1xxx: Job payload validation errors
    - E2xxx: Workbook decoding errors
    - E3xxx: Serialization/compression errors
    - E4xxx: Missing record errors
    - E5xxx: Persistence errors
    - E9xxx: Internal/unexpected errors
    """

    # Validation errors (E1xxx)
    INVALID_PAYLOAD = "E1001"
    INVALID_BUFFER = "E1002"
    PAYLOAD_TOO_LARGE = "E1003"

    # Decode errors (E2xxx)
    UNREADABLE_WORKBOOK = "E2001"
    INVALID_SHEET_RANGE = "E2002"

    # Codec errors (E3xxx)
    SERIALIZATION_FAILED = "E3001"
    COMPRESSION_FAILED = "E3002"
    DECOMPRESSION_FAILED = "E3003"
    DESERIALIZATION_FAILED = "E3004"

    # Not-found errors (E4xxx)
    SPREADSHEET_NOT_FOUND = "E4001"

    # Store errors (E5xxx)
    STORE_OPERATION_FAILED = "E5001"
    CONCURRENT_UPDATE = "E5002"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"
    CONFIGURATION_ERROR = "E9002"


class SpreadsheetIngestError(Exception):
    """Base exception for all spreadsheet ingestion errors.

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for logs and job results.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# Validation Errors (E1xxx)
# =============================================================================


class ValidationError(SpreadsheetIngestError):
    """Raised when an inbound job payload fails shape or type checks."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[str] | None = None,
        error_code: ErrorCode = ErrorCode.INVALID_PAYLOAD,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with validation details.

        Args:
            message: Main error message.
            field: Field that failed validation.
            errors: List of validation errors.
            error_code: Error code.
            details: Additional details.
        """
        details = details or {}
        if field:
            details["field"] = field
        if errors:
            details["validation_errors"] = errors
        super().__init__(message, error_code, details)
        self.field = field
        self.errors = errors or []


class PayloadTooLargeError(ValidationError):
    """Raised when the uploaded file exceeds the maximum allowed size."""

    def __init__(
        self,
        file_size: int,
        max_size: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with size information.

        Args:
            file_size: Actual buffer size in bytes.
            max_size: Maximum allowed size in bytes.
            details: Additional details.
        """
        details = details or {}
        details["file_size_bytes"] = file_size
        details["max_size_bytes"] = max_size
        super().__init__(
            message=(
                f"File size ({file_size} bytes) exceeds maximum "
                f"allowed size ({max_size} bytes)"
            ),
            field="buffer",
            error_code=ErrorCode.PAYLOAD_TOO_LARGE,
            details=details,
        )
        self.file_size = file_size
        self.max_size = max_size


# =============================================================================
# Decode Errors (E2xxx)
# =============================================================================


class DecodeError(SpreadsheetIngestError):
    """Raised when workbook bytes or a sheet's range cannot be interpreted."""

    def __init__(
        self,
        message: str,
        sheet_name: str | None = None,
        error_code: ErrorCode = ErrorCode.UNREADABLE_WORKBOOK,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with sheet information.

        Args:
            message: Error message.
            sheet_name: Sheet being decoded when the failure occurred.
            error_code: Error code.
            details: Additional details.
        """
        details = details or {}
        if sheet_name:
            details["sheet_name"] = sheet_name
        super().__init__(message, error_code, details)
        self.sheet_name = sheet_name


# =============================================================================
# Codec Errors (E3xxx)
# =============================================================================


class CodecError(SpreadsheetIngestError):
    """Raised when serialization, compression or their inverses fail."""

    def __init__(
        self,
        message: str,
        stage: str,
        error_code: ErrorCode = ErrorCode.SERIALIZATION_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the failing codec stage.

        Args:
            message: Error message.
            stage: Codec stage (serialize, compress, decompress, deserialize).
            error_code: Error code.
            details: Additional details.
        """
        details = details or {}
        details["codec_stage"] = stage
        super().__init__(message, error_code, details)
        self.stage = stage


# =============================================================================
# Not-Found Errors (E4xxx)
# =============================================================================


class NotFoundError(SpreadsheetIngestError):
    """Raised when the target spreadsheet record does not exist."""

    def __init__(
        self,
        spreadsheet_id: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the record id.

        Args:
            spreadsheet_id: The spreadsheet id that was not found.
            message: Optional custom message.
            details: Additional details.
        """
        details = details or {}
        details["spreadsheet_id"] = spreadsheet_id
        super().__init__(
            message or f"Spreadsheet not found: {spreadsheet_id}",
            ErrorCode.SPREADSHEET_NOT_FOUND,
            details,
        )
        self.spreadsheet_id = spreadsheet_id


# =============================================================================
# Store Errors (E5xxx)
# =============================================================================


class StoreError(SpreadsheetIngestError):
    """Raised when an underlying persistence operation fails."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        error_code: ErrorCode = ErrorCode.STORE_OPERATION_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the failing store operation.

        Args:
            message: Error message.
            operation: Name of the store operation.
            error_code: Error code.
            details: Additional details.
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, error_code, details)
        self.operation = operation


class ConcurrentUpdateError(StoreError):
    """Raised when a record changed between the state read and the write."""

    def __init__(
        self,
        spreadsheet_id: str,
        expected_state: str | None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the record id and the state observed at read time.

        Args:
            spreadsheet_id: The spreadsheet id being written.
            expected_state: State observed before the write.
            details: Additional details.
        """
        details = details or {}
        details["spreadsheet_id"] = spreadsheet_id
        details["expected_state"] = expected_state
        super().__init__(
            message=(
                f"Spreadsheet {spreadsheet_id} changed while it was being written "
                f"(expected state: {expected_state})"
            ),
            operation="write",
            error_code=ErrorCode.CONCURRENT_UPDATE,
            details=details,
        )
        self.spreadsheet_id = spreadsheet_id
        self.expected_state = expected_state
