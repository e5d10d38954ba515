"""ORM mapping of the ``spreadsheets`` table.

Rows are created by the upload service before a job is enqueued; this worker
only reads ``state`` and writes ``data``, ``all_columns``,
``allowed_columns`` and ``state``.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

LongText = Text().with_variant(mysql.LONGTEXT(), "mysql")


class Base(DeclarativeBase):
    """Declarative base for spreadsheet store models."""


class Spreadsheet(Base):
    __tablename__ = "spreadsheets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String(255))
    file_name: Mapped[str | None] = mapped_column(String(255))
    friendly_name: Mapped[str | None] = mapped_column(String(255))
    size_in_bytes: Mapped[int | None] = mapped_column(Integer)
    state: Mapped[str | None] = mapped_column(String(255))
    allow_download: Mapped[bool | None] = mapped_column(Boolean)
    all_columns: Mapped[str | None] = mapped_column(Text)
    allowed_columns: Mapped[str | None] = mapped_column(Text)
    info_panel_title: Mapped[str | None] = mapped_column(Text)
    info_panel_description: Mapped[str | None] = mapped_column(Text)
    data: Mapped[str | None] = mapped_column(LongText)
    created_at: Mapped[datetime | None] = mapped_column(DateTime)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime)
