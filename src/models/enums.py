"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization.
"""

from __future__ import annotations

from enum import Enum


class Language(str, Enum):
    """Interface languages a user can pick at registration."""

    DE = "de"
    EN = "en"
    RU = "ru"
    UK = "uk"


class EventStatus(str, Enum):
    """Workshop publication status."""

    DRAFT = "draft"
    ACTIVE = "active"
    CANCELLED = "cancelled"


class ReviewStatus(str, Enum):
    """Moderation state of an event review."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AuditAction(str, Enum):
    """Actions recorded in the audit ledger by the deletion lifecycle."""

    SCHEDULED = "deletion.scheduled"
    IMMEDIATE = "deletion.immediate"
    BATCH_ITEM = "deletion.batch_item"
    FAILED = "deletion.failed"
    MANUAL_TRIGGER = "deletion.manual_trigger"
    PERIODIC_RUN = "deletion.periodic_run"


class DeletionMode(str, Enum):
    """How an erasure was reached: stored on the archive record."""

    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"


class CleanupAction(str, Enum):
    """What happens to a dependent row when its owning user is erased."""

    CASCADE = "cascade"
    SET_NULL = "set_null"
