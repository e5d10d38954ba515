"""Tests for job payload validation."""

import base64

import pytest
from pydantic import ValidationError as PydanticValidationError

from spreadsheet_ingest.models import SpreadsheetJob, parse_job_payload
from spreadsheet_ingest.services.buffer_resolver import BufferEncoding
from spreadsheet_ingest.utils.exceptions import ErrorCode, ValidationError

DATA = b"workbook"


def _payload(**overrides):
    payload = {
        "spreadsheetId": "sheet-1",
        "userId": "user-1",
        "fileName": "budget.xlsx",
        "sizeInBytes": len(DATA),
        "buffer": DATA,
    }
    payload.update(overrides)
    return payload


class TestParseJobPayload:
    def test_camel_case_fields(self) -> None:
        job = parse_job_payload(_payload())

        assert isinstance(job, SpreadsheetJob)
        assert job.spreadsheet_id == "sheet-1"
        assert job.user_id == "user-1"
        assert job.file_name == "budget.xlsx"
        assert job.size_in_bytes == len(DATA)

    def test_smart_cleanup_defaults_to_true(self) -> None:
        assert parse_job_payload(_payload()).smart_cleanup is True
        assert parse_job_payload(_payload(smartCleanup=False)).smart_cleanup is False

    def test_fractional_size_is_accepted(self) -> None:
        assert parse_job_payload(_payload(sizeInBytes=10.5)).size_in_bytes == 10.5

    def test_buffer_encodings_are_equivalent(self) -> None:
        encoded = base64.b64encode(DATA).decode()
        jobs = [
            parse_job_payload(_payload(buffer=DATA)),
            parse_job_payload(_payload(buffer=encoded)),
            parse_job_payload(_payload(buffer={"type": "Buffer", "data": list(DATA)})),
            parse_job_payload(_payload(buffer={"type": "Buffer", "data": [encoded]})),
        ]

        assert {job.buffer.data for job in jobs} == {DATA}
        assert [job.buffer.encoding for job in jobs] == [
            BufferEncoding.RAW,
            BufferEncoding.BASE64,
            BufferEncoding.BUFFER_BYTES,
            BufferEncoding.BUFFER_BASE64,
        ]

    def test_job_is_immutable(self) -> None:
        job = parse_job_payload(_payload())
        with pytest.raises(PydanticValidationError):
            job.file_name = "other.xlsx"  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("overrides", "field"),
        [
            ({"spreadsheetId": None}, "spreadsheetId"),
            ({"userId": 7}, "userId"),
            ({"sizeInBytes": "12"}, "sizeInBytes"),
            ({"smartCleanup": "yes"}, "smartCleanup"),
            ({"buffer": {"type": "Buffer", "data": [1, "A"]}}, "buffer"),
        ],
    )
    def test_invalid_fields(self, overrides, field: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_job_payload(_payload(**overrides))

        error = exc_info.value
        assert error.error_code is ErrorCode.INVALID_PAYLOAD
        assert any(message.startswith(field) for message in error.errors)

    def test_missing_fields(self) -> None:
        payload = _payload()
        del payload["fileName"]
        del payload["buffer"]

        with pytest.raises(ValidationError) as exc_info:
            parse_job_payload(payload)

        messages = exc_info.value.errors
        assert any(message.startswith("fileName") for message in messages)
        assert any(message.startswith("buffer") for message in messages)

    def test_non_mapping_payload(self) -> None:
        with pytest.raises(ValidationError):
            parse_job_payload(["not", "a", "payload"])
