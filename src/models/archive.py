"""ArchiveRecord model: de-identified residue of an erased user.

Append-only: one row per erasure, never updated or deleted. Holds no names,
contact details, postal address or credentials, only coarse dates and
event facts kept for participation statistics.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, JsonType, TimestampMixin


class ArchiveRecord(TimestampMixin, Base):
    """Statistical trace left behind by an erased user."""

    __tablename__ = "deleted_users_archive"

    registered_on: Mapped[date | None] = mapped_column(Date, comment="Day only")
    deleted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    attended_any: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    events_attended: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # [{"event_id": "...", "date": "..."}]
    events_participated: Mapped[list[dict[str, Any]] | None] = mapped_column(JsonType)

    preferred_language: Mapped[str | None] = mapped_column(String(2))
    deletion_mode: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<ArchiveRecord id={self.id} mode={self.deletion_mode}>"
