"""Persist a compressed workbook against its spreadsheet record.

A successful job performs exactly one of two writes:

- Activate: the record is still ``processing``. ``data``, ``all_columns``
  and ``allowed_columns`` are written and ``state`` becomes ``active``;
  every discovered column starts out visible.
- Refresh: the record is in any other state, including no state at all.
  Only ``data`` and ``all_columns`` are written; ``state`` and
  ``allowed_columns`` stay as the record's owner left them.

Jobs for the same record id are serialized within the process, and each
write is guarded by the state read just before it, so a concurrent writer
in another process surfaces as a ConcurrentUpdateError instead of a lost
update.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spreadsheet_ingest.db.repository import SpreadsheetRepository
from spreadsheet_ingest.db.session import session_scope
from spreadsheet_ingest.models import PersistOutcome, SpreadsheetState
from spreadsheet_ingest.utils.exceptions import ConcurrentUpdateError, NotFoundError
from spreadsheet_ingest.utils.logging import get_logger
from spreadsheet_ingest.workbook_document import ColumnManifest

logger = get_logger(__name__)


@dataclass
class _LockEntry:
    lock: asyncio.Lock
    holders: int = 0


class KeyedLock:
    """Per-key asyncio locks that are discarded once nobody holds them."""

    def __init__(self) -> None:
        self._entries: dict[str, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        entry = self._entries.setdefault(key, _LockEntry(asyncio.Lock()))
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


def decide_outcome(current_state: str | None) -> PersistOutcome:
    """Choose the write path from the record's current state."""
    if current_state != SpreadsheetState.PROCESSING:
        return PersistOutcome.REFRESHED
    return PersistOutcome.ACTIVATED


def encode_manifest(manifest: ColumnManifest) -> str:
    return json.dumps(manifest, ensure_ascii=False)


class PersistenceCoordinator:
    """Decide between activation and refresh and perform the single write."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._locks = KeyedLock()

    async def persist(
        self,
        spreadsheet_id: str,
        compressed_data: str,
        manifest: ColumnManifest,
    ) -> PersistOutcome:
        """Write the compressed workbook and manifest to the record.

        Args:
            spreadsheet_id: Id of the existing record.
            compressed_data: Output of the codec's compress step.
            manifest: Columns per sheet discovered in the workbook.

        Returns:
            The write path that was taken.

        Raises:
            NotFoundError: If no record has this id.
            ConcurrentUpdateError: If the record changed between read and write.
            StoreError: If the store operation fails.
        """
        columns = encode_manifest(manifest)

        async with (
            self._locks.hold(spreadsheet_id),
            session_scope(self._session_factory) as session,
        ):
            repository = SpreadsheetRepository(session)
            record = await repository.get_by_id(spreadsheet_id)
            if record is None:
                raise NotFoundError(spreadsheet_id)

            current_state = record.state
            outcome = decide_outcome(current_state)

            if outcome is PersistOutcome.REFRESHED:
                updated = await repository.refresh_data(
                    spreadsheet_id,
                    expected_state=current_state,
                    data=compressed_data,
                    all_columns=columns,
                )
            else:
                updated = await repository.activate(
                    spreadsheet_id,
                    expected_state=current_state,
                    state=SpreadsheetState.ACTIVE.value,
                    data=compressed_data,
                    all_columns=columns,
                    allowed_columns=columns,
                )

            if updated == 0:
                raise ConcurrentUpdateError(spreadsheet_id, current_state)

        logger.info(
            "Spreadsheet persisted",
            spreadsheet_id=spreadsheet_id,
            outcome=outcome.value,
            previous_state=current_state,
            sheets=len(manifest),
        )
        return outcome


_coordinator: PersistenceCoordinator | None = None


def get_persistence_coordinator() -> PersistenceCoordinator:
    """Get the process-wide coordinator so per-id locks are shared by all jobs."""
    global _coordinator
    if _coordinator is None:
        _coordinator = PersistenceCoordinator()
    return _coordinator


def reset_persistence_coordinator() -> None:
    """Reset the global coordinator. Used primarily for testing."""
    global _coordinator
    _coordinator = None
