"""Spreadsheet store: ORM model, session management and repository."""

from spreadsheet_ingest.db.models import Base, Spreadsheet
from spreadsheet_ingest.db.repository import SpreadsheetRepository
from spreadsheet_ingest.db.session import (
    dispose_engine,
    get_sessionmaker,
    session_scope,
    set_sessionmaker,
)

__all__ = [
    "Base",
    "Spreadsheet",
    "SpreadsheetRepository",
    "dispose_engine",
    "get_sessionmaker",
    "session_scope",
    "set_sessionmaker",
]
