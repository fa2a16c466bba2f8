"""User model: a person registered on the workshop platform.

Holds all personal data. Removed in place by the erasure executor; while a
deletion is pending the account is suspended via `is_suspended`.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, Date, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin
from src.models.enums import Language


class User(TimestampMixin, Base):
    """A workshop participant (or administrator)."""

    __tablename__ = "users"

    # Credentials
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    birth_date: Mapped[date | None] = mapped_column(Date)

    # Address
    address_street: Mapped[str | None] = mapped_column(String(200))
    address_number: Mapped[str | None] = mapped_column(String(20))
    address_zip: Mapped[str | None] = mapped_column(String(20))
    address_city: Mapped[str | None] = mapped_column(String(100))

    # Contact
    phone: Mapped[str | None] = mapped_column(String(30))
    whatsapp: Mapped[str | None] = mapped_column(String(30))
    telegram: Mapped[str | None] = mapped_column(String(100))

    # Preferences and status
    preferred_language: Mapped[str] = mapped_column(String(2), default=Language.DE.value, nullable=False)
    is_suspended: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, comment="Set while a deletion is pending"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} suspended={self.is_suspended}>"
