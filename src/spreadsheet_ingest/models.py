"""Pydantic models for job payloads, record state and the health endpoint."""

from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from spreadsheet_ingest.services.buffer_resolver import ResolvedBuffer, resolve_buffer
from spreadsheet_ingest.utils.exceptions import ValidationError


class SpreadsheetState(str, Enum):
    """States of a stored spreadsheet record that this worker reads or writes."""

    PROCESSING = "processing"
    ACTIVE = "active"


class PersistOutcome(str, Enum):
    """Which write path a successful job took."""

    ACTIVATED = "activated"
    REFRESHED = "refreshed"


class SpreadsheetJob(BaseModel):
    """Inbound job payload, using the producer's camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
        frozen=True,
    )

    spreadsheet_id: StrictStr = Field(..., description="Id of the stored record")
    user_id: StrictStr = Field(..., description="Owner of the spreadsheet")
    file_name: StrictStr = Field(..., description="Original upload filename")
    size_in_bytes: StrictInt | StrictFloat = Field(
        ..., description="Upload size reported by the producer"
    )
    smart_cleanup: StrictBool = Field(
        default=True, description="Drop rows that are too sparse"
    )
    buffer: ResolvedBuffer = Field(..., description="Workbook file contents")

    @field_validator("buffer", mode="before")
    @classmethod
    def normalize_buffer(cls, v: Any) -> ResolvedBuffer:
        """Resolve the buffer encoding once, at the job boundary."""
        return resolve_buffer(v)


def parse_job_payload(data: Any) -> SpreadsheetJob:
    """Validate a raw job payload.

    Raises:
        ValidationError: If the payload does not match the job shape.
    """
    try:
        return SpreadsheetJob.model_validate(data)
    except PydanticValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or 'payload'}: {err['msg']}"
            for err in e.errors()
        ]
        raise ValidationError(
            "Invalid spreadsheet job payload",
            errors=errors,
        ) from e


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: str
    version: str
    worker_running: bool
