"""PendingDeletion model: a scheduled, not yet executed erasure.

At most one row per user (unique user_id). Rows are never updated in place:
they are created by the deletion scheduler and removed by the executor.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class PendingDeletion(TimestampMixin, Base):
    """Erasure scheduled for the first moment it becomes legal."""

    __tablename__ = "pending_deletions"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), unique=True, nullable=False)
    deletion_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<PendingDeletion user={self.user_id} date={self.deletion_date}>"
