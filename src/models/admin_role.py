"""AdminRole model: grants administrator rights to a user."""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class AdminRole(TimestampMixin, Base):
    """Marks a user as administrator."""

    __tablename__ = "admins"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), unique=True, nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), comment="Admin who granted the rights"
    )

    def __repr__(self) -> str:
        return f"<AdminRole user={self.user_id}>"
