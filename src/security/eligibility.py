"""Eligibility evaluator: may a user's data be erased right now?

A user who attended a workshop must be retained for a fixed window after the
end of their last attended event. A registration counts as attended once the
event's end (or start, when no end date is set) lies in the past; cancelled
registrations never count. Upcoming registrations do not block erasure on
their own; callers suspend the account so no new attendance accrues.

Pure read: no side effects, safe to call repeatedly.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.models.event import Event
from src.models.registration import Registration
from src.security.clock import Clock, as_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EligibilityDecision:
    """Outcome of an eligibility check. `eligible=False` is a normal branch, not an error."""

    eligible: bool
    reason: str
    retained_until: datetime | None = None
    attended_events: int = 0


def decide(attendance_ends: Iterable[datetime], now: datetime, window: timedelta) -> EligibilityDecision:
    """Apply the retention rule to the end times of a user's registrations.

    Ends in the future are ignored; the rest are attended events.
    """
    now = as_utc(now)
    attended = [end for end in (as_utc(e) for e in attendance_ends) if end <= now]
    if not attended:
        return EligibilityDecision(eligible=True, reason="no attended events")

    retained_until = max(attended) + window
    if now >= retained_until:
        return EligibilityDecision(
            eligible=True,
            reason="retention window elapsed",
            retained_until=retained_until,
            attended_events=len(attended),
        )

    days_since = (now - max(attended)).days
    return EligibilityDecision(
        eligible=False,
        reason=f"only {days_since} days since last attended event (required: {window.days})",
        retained_until=retained_until,
        attended_events=len(attended),
    )


class EligibilityEvaluator:
    """Reads attendance history and applies `decide`."""

    def __init__(self, clock: Clock = utc_now, retention_days: int | None = None) -> None:
        self._clock = clock
        days = settings.gdpr.retention_days if retention_days is None else retention_days
        self.window = timedelta(days=days)

    async def attendance_ends(self, db: AsyncSession, user_id: uuid.UUID) -> list[datetime]:
        """End instants of every non-cancelled registration of the user."""
        result = await db.execute(
            select(Event.date, Event.end_date)
            .join(Registration, Registration.event_id == Event.id)
            .where(
                Registration.user_id == user_id,
                Registration.cancelled_at.is_(None),
            )
        )
        return [end_date or start for start, end_date in result.all()]

    async def evaluate(self, db: AsyncSession, user_id: uuid.UUID) -> EligibilityDecision:
        ends = await self.attendance_ends(db, user_id)
        decision = decide(ends, self._clock(), self.window)
        logger.debug(
            "Eligibility user=%s eligible=%s retained_until=%s",
            user_id,
            decision.eligible,
            decision.retained_until,
        )
        return decision
