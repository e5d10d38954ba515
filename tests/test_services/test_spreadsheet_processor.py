"""Tests for the spreadsheet job consumer.

These run the whole pipeline against real xlsx bytes and a SQLite store,
both called directly and through an in-memory Docket worker.
"""

import base64
import json
import logging
from unittest.mock import patch

import pytest
from docket import Docket, Worker

from spreadsheet_ingest.docket_tasks import tasks
from spreadsheet_ingest.services.codec import decompress_document
from spreadsheet_ingest.services.docket_client import enqueue_spreadsheet_job
from spreadsheet_ingest.services.spreadsheet_processor import process_spreadsheet_job
from spreadsheet_ingest.utils.exceptions import (
    DecodeError,
    NotFoundError,
    PayloadTooLargeError,
    ValidationError,
)
from spreadsheet_ingest.workbook_document import CellRecord, ValueKind

pytestmark = pytest.mark.asyncio


def _payload(buffer, spreadsheet_id: str = "sheet-1", **overrides):
    payload = {
        "spreadsheetId": spreadsheet_id,
        "userId": "user-1",
        "fileName": "people.xlsx",
        "sizeInBytes": 1024,
        "buffer": buffer,
    }
    payload.update(overrides)
    return payload


class TestProcessSpreadsheetJob:
    async def test_activates_processing_record(
        self, create_record, load_record, name_age_workbook
    ) -> None:
        await create_record("sheet-1", state="processing")

        result = await process_spreadsheet_job(
            _payload(name_age_workbook), progress=None
        )

        assert result is None
        record = await load_record("sheet-1")
        assert record.state == "active"
        assert json.loads(record.all_columns) == {"Sheet1": ["Name", "Age"]}
        assert json.loads(record.allowed_columns) == {"Sheet1": ["Name", "Age"]}

        rows = decompress_document(record.data).sheets[0].rows
        assert rows == [
            {
                "Name": CellRecord("Ann", ValueKind.TEXT, display_text="Ann"),
                "Age": CellRecord(30, ValueKind.NUMBER, display_text="30"),
            },
            {"Name": CellRecord("Bo", ValueKind.TEXT, display_text="Bo")},
        ]

    async def test_refreshes_active_record(
        self, create_record, load_record, make_workbook
    ) -> None:
        await create_record(
            "sheet-1",
            state="active",
            allowed_columns=json.dumps({"Sheet1": ["Name"]}),
        )
        data = make_workbook({"Sheet1": [["Name", "City"], ["Ann", "Oslo"]]})

        await process_spreadsheet_job(_payload(data), progress=None)

        record = await load_record("sheet-1")
        assert record.state == "active"
        assert json.loads(record.all_columns) == {"Sheet1": ["Name", "City"]}
        assert json.loads(record.allowed_columns) == {"Sheet1": ["Name"]}

    async def test_smart_cleanup_flag(
        self, create_record, load_record, make_workbook
    ) -> None:
        data = make_workbook(
            {"S": [["A", "B", "C", "D"], [1, 2, 3, 4], [1, None, None, None]]}
        )
        await create_record("cleaned")
        await create_record("untouched")

        await process_spreadsheet_job(_payload(data, "cleaned"), progress=None)
        await process_spreadsheet_job(
            _payload(data, "untouched", smartCleanup=False), progress=None
        )

        cleaned = await load_record("cleaned")
        untouched = await load_record("untouched")
        assert len(decompress_document(cleaned.data).sheets[0].rows) == 1
        assert len(decompress_document(untouched.data).sheets[0].rows) == 2

    async def test_buffer_encodings_produce_identical_data(
        self, create_record, load_record, name_age_workbook
    ) -> None:
        encoded = base64.b64encode(name_age_workbook).decode()
        buffers = {
            "raw": name_age_workbook,
            "base64": encoded,
            "bytes": {"type": "Buffer", "data": list(name_age_workbook)},
            "fragments": {"type": "Buffer", "data": [encoded[:100], encoded[100:]]},
        }
        for spreadsheet_id, buffer in buffers.items():
            await create_record(spreadsheet_id)
            await process_spreadsheet_job(
                _payload(buffer, spreadsheet_id), progress=None
            )

        documents = [
            decompress_document((await load_record(key)).data) for key in buffers
        ]
        assert all(document == documents[0] for document in documents)

    async def test_invalid_payload_leaves_record_untouched(
        self, create_record, load_record, name_age_workbook
    ) -> None:
        await create_record("sheet-1")

        with pytest.raises(ValidationError):
            await process_spreadsheet_job(
                _payload(name_age_workbook, sizeInBytes="1024"), progress=None
            )

        record = await load_record("sheet-1")
        assert record.state == "processing"
        assert record.data is None

    async def test_oversized_buffer_is_rejected(self, create_record) -> None:
        await create_record("sheet-1")
        oversized = b"x" * (1024 * 1024 + 1)

        with (
            patch(
                "spreadsheet_ingest.services.spreadsheet_processor"
                ".app_settings.max_file_size_mb",
                1,
            ),
            pytest.raises(PayloadTooLargeError),
        ):
            await process_spreadsheet_job(_payload(oversized), progress=None)

    async def test_unreadable_workbook(self, create_record) -> None:
        await create_record("sheet-1")

        with pytest.raises(DecodeError):
            await process_spreadsheet_job(_payload(b"not a workbook"), progress=None)

    async def test_missing_record(self, session_factory, name_age_workbook) -> None:
        with pytest.raises(NotFoundError):
            await process_spreadsheet_job(
                _payload(name_age_workbook, "ghost"), progress=None
            )

    async def test_logs_job_result(
        self, create_record, name_age_workbook, caplog: pytest.LogCaptureFixture
    ) -> None:
        await create_record("sheet-1")

        with caplog.at_level(logging.INFO):
            await process_spreadsheet_job(_payload(name_age_workbook), progress=None)

        assert "Job completed" in caplog.text
        assert "outcome=activated" in caplog.text

    async def test_logs_failure(
        self, session_factory, name_age_workbook, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO), pytest.raises(NotFoundError):
            await process_spreadsheet_job(
                _payload(name_age_workbook, "ghost"), progress=None
            )

        assert "Job failed" in caplog.text
        assert "job_id=ghost" in caplog.text


class TestDocketExecution:
    async def test_worker_completes_job(
        self, create_record, load_record, name_age_workbook
    ) -> None:
        await create_record("sheet-1")
        docket = Docket(name="processor-test", url="memory://")
        await docket.__aenter__()
        try:
            for task in tasks:
                docket.register(task)

            scheduled = await enqueue_spreadsheet_job(
                docket, _payload(name_age_workbook)
            )
            assert scheduled.key.startswith("sheet-1:")

            async with Worker(docket) as worker:
                await worker.run_until_finished()

            execution = await docket.get_execution(scheduled.key)
            assert execution is not None
            assert execution.state.value == "completed"
        finally:
            await docket.__aexit__(None, None, None)

        record = await load_record("sheet-1")
        assert record.state == "active"

    async def test_queued_uploads_for_same_record_all_run(
        self, create_record, load_record, make_workbook
    ) -> None:
        await create_record("sheet-1", state="processing")
        first = make_workbook({"Sheet1": [["Name"], ["Ann"]]})
        second = make_workbook({"Sheet1": [["Name", "City"], ["Ann", "Oslo"]]})

        docket = Docket(name="processor-requeue-test", url="memory://")
        await docket.__aenter__()
        try:
            for task in tasks:
                docket.register(task)

            scheduled = [
                await enqueue_spreadsheet_job(docket, _payload(first)),
                await enqueue_spreadsheet_job(docket, _payload(second)),
            ]
            assert scheduled[0].key != scheduled[1].key

            async with Worker(docket, concurrency=1) as worker:
                await worker.run_until_finished()

            for job in scheduled:
                execution = await docket.get_execution(job.key)
                assert execution is not None
                assert execution.state.value == "completed"
        finally:
            await docket.__aexit__(None, None, None)

        record = await load_record("sheet-1")
        assert record.state == "active"
        assert json.loads(record.all_columns) == {"Sheet1": ["Name", "City"]}

    async def test_worker_records_failure(self, session_factory) -> None:
        docket = Docket(name="processor-failure-test", url="memory://")
        await docket.__aenter__()
        try:
            for task in tasks:
                docket.register(task)

            await enqueue_spreadsheet_job(
                docket, {"spreadsheetId": "sheet-9"}, key="bad-payload"
            )

            async with Worker(docket) as worker:
                await worker.run_until_finished()

            execution = await docket.get_execution("bad-payload")
            assert execution is not None
            await execution.sync()
            assert execution.state.value == "failed"
            assert "Invalid spreadsheet job payload" in (execution.error or "")
        finally:
            await docket.__aexit__(None, None, None)
