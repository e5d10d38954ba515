"""Query helpers for ``Spreadsheet`` records."""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import ColumnElement

from .models import Spreadsheet


def _state_matches(expected_state: str | None) -> ColumnElement[bool]:
    if expected_state is None:
        return Spreadsheet.state.is_(None)
    return Spreadsheet.state == expected_state


class SpreadsheetRepository:
    """Reads and state-guarded writes against the ``spreadsheets`` table.

    Both writes match on the id and on the state observed when the record was
    read, so a record changed by a concurrent writer in between is left alone
    and the caller sees a rowcount of 0.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, spreadsheet_id: str) -> Spreadsheet | None:
        stmt = select(Spreadsheet).where(Spreadsheet.id == spreadsheet_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def refresh_data(
        self,
        spreadsheet_id: str,
        *,
        expected_state: str | None,
        data: str,
        all_columns: str,
    ) -> int:
        """Overwrite data and the column manifest only."""
        stmt = (
            update(Spreadsheet)
            .where(Spreadsheet.id == spreadsheet_id, _state_matches(expected_state))
            .values(data=data, all_columns=all_columns)
        )
        result = await self._session.execute(stmt)
        return int(result.rowcount or 0)

    async def activate(
        self,
        spreadsheet_id: str,
        *,
        expected_state: str | None,
        state: str,
        data: str,
        all_columns: str,
        allowed_columns: str,
    ) -> int:
        """Overwrite data and both manifests and set the new state."""
        stmt = (
            update(Spreadsheet)
            .where(Spreadsheet.id == spreadsheet_id, _state_matches(expected_state))
            .values(
                data=data,
                state=state,
                all_columns=all_columns,
                allowed_columns=allowed_columns,
            )
        )
        result = await self._session.execute(stmt)
        return int(result.rowcount or 0)
