"""Deletion scheduler: defer erasure until the retention window has elapsed.

Scheduling inserts the PendingDeletion row and suspends the account in the
caller's transaction, so either both happen or neither does. Suspension is
immediate regardless of how far away the deletion date is.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.pending_deletion import PendingDeletion
from src.models.user import User
from src.security.clock import as_utc
from src.security.eligibility import EligibilityEvaluator

logger = logging.getLogger(__name__)


class AlreadyScheduled(Exception):
    """The user already has a pending deletion. Recoverable: read the existing row."""

    def __init__(self, user_id: uuid.UUID, deletion_date: datetime | None = None) -> None:
        self.user_id = user_id
        self.deletion_date = deletion_date
        super().__init__(f"Deletion already scheduled for user {user_id}")


class ImmediateDeletionAllowed(Exception):
    """Nothing to schedule: the user may be erased right away."""


class UserNotFound(Exception):
    """The user to schedule does not exist."""


async def get_pending(db: AsyncSession, user_id: uuid.UUID) -> PendingDeletion | None:
    """Return the user's pending deletion, if any."""
    result = await db.execute(
        select(PendingDeletion).where(PendingDeletion.user_id == user_id)
    )
    return result.scalar_one_or_none()


class DeletionScheduler:
    """Creates PendingDeletion rows and suspends the affected accounts."""

    def __init__(self, evaluator: EligibilityEvaluator | None = None) -> None:
        self._evaluator = evaluator or EligibilityEvaluator()

    async def schedule(self, db: AsyncSession, user_id: uuid.UUID) -> datetime:
        """Schedule erasure at the end of the user's retention window.

        Raises:
            AlreadyScheduled: a pending deletion exists for the user.
            ImmediateDeletionAllowed: the user is already eligible.
        """
        existing = await get_pending(db, user_id)
        if existing is not None:
            raise AlreadyScheduled(user_id, as_utc(existing.deletion_date))

        decision = await self._evaluator.evaluate(db, user_id)
        if decision.eligible or decision.retained_until is None:
            raise ImmediateDeletionAllowed(f"User {user_id} can be deleted immediately")

        return await self.schedule_at(db, user_id, decision.retained_until)

    async def schedule_at(self, db: AsyncSession, user_id: uuid.UUID, deletion_date: datetime) -> datetime:
        """Insert the pending deletion for an explicit date and suspend the user."""
        existing = await get_pending(db, user_id)
        if existing is not None:
            raise AlreadyScheduled(user_id, as_utc(existing.deletion_date))

        upd_result = await db.execute(
            update(User).where(User.id == user_id).values(is_suspended=True)
        )
        if upd_result.rowcount == 0:  # type: ignore[attr-defined]
            raise UserNotFound(f"User {user_id} not found")

        deletion_date = as_utc(deletion_date)
        db.add(PendingDeletion(user_id=user_id, deletion_date=deletion_date))

        try:
            await db.flush()
        except IntegrityError as exc:
            # Lost the unique(user_id) race against a concurrent request
            raise AlreadyScheduled(user_id) from exc

        logger.info("Deletion scheduled: user=%s date=%s (account suspended)", user_id, deletion_date)
        return deletion_date


# Module-level singleton
deletion_scheduler = DeletionScheduler()
