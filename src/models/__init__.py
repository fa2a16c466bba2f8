"""SQLAlchemy ORM models for the workshop platform.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from src.models.admin_role import AdminRole
from src.models.archive import ArchiveRecord
from src.models.audit import AuditEntry
from src.models.base import Base
from src.models.enums import (
    AuditAction,
    CleanupAction,
    DeletionMode,
    EventStatus,
    ReviewStatus,
)
from src.models.event import Event
from src.models.pending_deletion import PendingDeletion
from src.models.registration import Registration
from src.models.review import Review
from src.models.user import User

__all__ = [
    # Base
    "Base",
    # Models
    "User",
    "Event",
    "Registration",
    "AdminRole",
    "Review",
    "PendingDeletion",
    "ArchiveRecord",
    "AuditEntry",
    # Enums
    "EventStatus",
    "ReviewStatus",
    "AuditAction",
    "DeletionMode",
    "CleanupAction",
]
