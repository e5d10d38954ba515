from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from io import BytesIO
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from spreadsheet_ingest.db.models import Base, Spreadsheet
from spreadsheet_ingest.db.session import set_sessionmaker
from spreadsheet_ingest.services.persistence import reset_persistence_coordinator

WorkbookFactory = Callable[[dict[str, list[list[Any]]]], bytes]
RecordFactory = Callable[..., Awaitable[Spreadsheet]]


def build_workbook_bytes(sheets: dict[str, list[list[Any]]]) -> bytes:
    """Write ``{sheet: [row values, ...]}`` to an in-memory xlsx.

    ``None`` leaves a cell empty.
    """
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(name)
        for row_index, values in enumerate(rows, start=1):
            for col_index, value in enumerate(values, start=1):
                if value is not None:
                    ws.cell(row=row_index, column=col_index, value=value)
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_workbook() -> WorkbookFactory:
    """Factory building xlsx bytes from plain row values."""
    return build_workbook_bytes


@pytest.fixture
def name_age_workbook() -> bytes:
    return build_workbook_bytes(
        {"Sheet1": [["Name", "Age"], ["Ann", 30], ["Bo"]]},
    )


@pytest.fixture
async def session_factory(
    tmp_path: Path,
) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """SQLite-backed store installed as the global session factory."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    set_sessionmaker(factory)
    reset_persistence_coordinator()
    try:
        yield factory
    finally:
        set_sessionmaker(None)
        reset_persistence_coordinator()
        await engine.dispose()


@pytest.fixture
def create_record(
    session_factory: async_sessionmaker[AsyncSession],
) -> RecordFactory:
    """Insert a spreadsheet row the way the upload service would."""

    async def _create(
        spreadsheet_id: str = "sheet-1",
        state: str | None = "processing",
        **fields: Any,
    ) -> Spreadsheet:
        record = Spreadsheet(
            id=spreadsheet_id,
            user_id=fields.pop("user_id", "user-1"),
            file_name=fields.pop("file_name", "budget.xlsx"),
            state=state,
            **fields,
        )
        async with session_factory() as session:
            session.add(record)
            await session.commit()
        return record

    return _create


@pytest.fixture
def load_record(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[str], Awaitable[Spreadsheet | None]]:
    """Read a spreadsheet row back in a fresh session."""

    async def _load(spreadsheet_id: str) -> Spreadsheet | None:
        async with session_factory() as session:
            return await session.get(Spreadsheet, spreadsheet_id)

    return _load
