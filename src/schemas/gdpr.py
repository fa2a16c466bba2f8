"""Pydantic response schemas for the deletion lifecycle endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SelfDeletionResponse(BaseModel):
    """Response of POST /api/profile/delete.

    `deletionDate` is only present when the erasure was scheduled.
    """

    model_config = ConfigDict(populate_by_name=True)

    deleted: bool = True
    immediate: bool
    deletion_date: datetime | None = Field(default=None, alias="deletionDate")

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"deleted": self.deleted, "immediate": self.immediate}
        if self.deletion_date is not None:
            payload["deletionDate"] = self.deletion_date.strftime("%Y-%m-%dT%H:%M:%SZ")
        return payload


class TriggerResponse(BaseModel):
    """Response of the manual and cron batch triggers."""

    deleted: int


class ScheduledDeletion(BaseModel):
    """Row of the admin scheduled-deletions listing."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    deletion_date: datetime
    created_at: datetime
    user_email: str | None = None
    user_first_name: str | None = None
    user_last_name: str | None = None
    last_event_date: datetime | None = None


class AuditEntryOut(BaseModel):
    """Audit ledger entry as exposed to administrators."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    actor_id: uuid.UUID | None
    action: str
    details: dict[str, Any] | None
    ip_address: str | None
    created_at: datetime


class AuditPage(BaseModel):
    """Paginated audit ledger slice."""

    entries: list[AuditEntryOut]
    total: int
    limit: int
    offset: int


class UserDeletedResponse(BaseModel):
    """Response of DELETE /api/admin/users/{user_id}."""

    success: bool = True
