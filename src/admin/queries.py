"""Read-only queries behind the admin deletion endpoints."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.event import Event
from src.models.pending_deletion import PendingDeletion
from src.models.registration import Registration
from src.models.user import User

logger = logging.getLogger(__name__)


async def get_scheduled_deletions(db: AsyncSession) -> list[dict[str, Any]]:
    """All pending deletions with the user's name and last event date, soonest first."""
    last_event = (
        select(func.max(Event.date))
        .join(Registration, Registration.event_id == Event.id)
        .where(
            Registration.user_id == PendingDeletion.user_id,
            Registration.cancelled_at.is_(None),
        )
        .correlate(PendingDeletion)
        .scalar_subquery()
    )
    result = await db.execute(
        select(
            PendingDeletion.id,
            PendingDeletion.user_id,
            PendingDeletion.deletion_date,
            PendingDeletion.created_at,
            User.email.label("user_email"),
            User.first_name.label("user_first_name"),
            User.last_name.label("user_last_name"),
            last_event.label("last_event_date"),
        )
        .join(User, User.id == PendingDeletion.user_id)
        .order_by(PendingDeletion.deletion_date.asc())
    )
    return [dict(row._mapping) for row in result.all()]

