"""Event model: a career-orientation workshop."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin
from src.models.enums import EventStatus


class Event(TimestampMixin, Base):
    """A scheduled workshop users can register for."""

    __tablename__ = "events"

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(20), default=EventStatus.DRAFT.value, nullable=False)

    # Admin who created the event, nulled when that admin is erased
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), index=True)

    def __repr__(self) -> str:
        return f"<Event id={self.id} date={self.date}>"
