"""Erasure executor: GDPR Art. 17 removal of a user.

Archives a de-identified residue, then removes or de-identifies every row
that references the user following USER_OWNERSHIP_GRAPH, then deletes the
user. Runs inside the caller's transaction: any exception propagates and
the whole erasure rolls back, so a partial erasure is never observable.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from src.models.admin_role import AdminRole
from src.models.archive import ArchiveRecord
from src.models.audit import AuditEntry
from src.models.enums import CleanupAction, DeletionMode
from src.models.event import Event
from src.models.pending_deletion import PendingDeletion
from src.models.registration import Registration
from src.models.review import Review
from src.models.user import User
from src.security.clock import Clock, as_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanupRule:
    """How one foreign-key column pointing at users is handled on erasure."""

    column: InstrumentedAttribute[Any]
    action: CleanupAction

    @property
    def name(self) -> str:
        return f"{self.column.class_.__tablename__}.{self.column.key}"


# Order matters only for readability; every rule runs before the user row goes.
USER_OWNERSHIP_GRAPH: tuple[CleanupRule, ...] = (
    CleanupRule(Registration.user_id, CleanupAction.CASCADE),
    CleanupRule(Review.user_id, CleanupAction.CASCADE),
    CleanupRule(Review.moderated_by, CleanupAction.SET_NULL),
    CleanupRule(AdminRole.user_id, CleanupAction.CASCADE),
    CleanupRule(AdminRole.created_by, CleanupAction.SET_NULL),
    CleanupRule(Event.created_by, CleanupAction.SET_NULL),
    CleanupRule(AuditEntry.actor_id, CleanupAction.SET_NULL),
    CleanupRule(PendingDeletion.user_id, CleanupAction.CASCADE),
)


@dataclass
class ErasureResult:
    """Summary of a completed erasure."""

    user_id: uuid.UUID
    already_erased: bool = False
    archive_id: uuid.UUID | None = None
    attended_events: int = 0
    rows: dict[str, int] = field(default_factory=dict)


class ErasureConflict(Exception):
    """The user row vanished mid-erasure: a concurrent run already erased it.

    Raised so the caller's transaction rolls back the duplicate archive.
    """

    def __init__(self, user_id: uuid.UUID) -> None:
        self.user_id = user_id
        super().__init__(f"User {user_id} was erased concurrently")


class ErasureExecutor:
    """Performs the irreversible erasure of a single user."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock

    async def execute(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        mode: DeletionMode = DeletionMode.SCHEDULED,
    ) -> ErasureResult:
        """Erase the user. A user that no longer exists is a no-op success.

        Raises:
            ErasureConflict: another transaction erased the user after it was read.
        """
        result = ErasureResult(user_id=user_id)

        # Row lock serializes overlapping runs on PostgreSQL
        user = await db.get(User, user_id, with_for_update=True)
        if user is None:
            # Drop a stray schedule so the batch does not pick it up forever
            await db.execute(delete(PendingDeletion).where(PendingDeletion.user_id == user_id))
            result.already_erased = True
            logger.info("Erasure skipped: user=%s already erased", user_id)
            return result

        now = self._clock()

        # 1. Minimal archive fields: attendance only, no personal data
        attended = await self._attended_events(db, user_id, now)
        archive = ArchiveRecord(
            registered_on=as_utc(user.created_at).date() if user.created_at else None,
            deleted_at=now,
            attended_any=bool(attended),
            events_attended=len(attended),
            events_participated=attended or None,
            preferred_language=user.preferred_language,
            deletion_mode=mode.value,
        )

        # 2. Archive
        db.add(archive)
        await db.flush()
        result.archive_id = archive.id
        result.attended_events = len(attended)

        # 3. Dependents, then the user row itself
        for rule in USER_OWNERSHIP_GRAPH:
            result.rows[rule.name] = await self._apply(db, rule, user_id)

        db.expunge(user)
        del_result = await db.execute(delete(User).where(User.id == user_id))
        result.rows["users"] = del_result.rowcount  # type: ignore[attr-defined]
        if result.rows["users"] == 0:
            raise ErasureConflict(user_id)
        await db.flush()

        logger.info(
            "Erasure completed: user=%s mode=%s archive=%s attended=%d",
            user_id,
            mode.value,
            archive.id,
            len(attended),
        )
        return result

    async def _attended_events(
        self, db: AsyncSession, user_id: uuid.UUID, now: datetime
    ) -> list[dict[str, Any]]:
        """Events the user actually attended, newest first."""
        rows = await db.execute(
            select(Event.id, Event.date, Event.end_date)
            .join(Registration, Registration.event_id == Event.id)
            .where(
                Registration.user_id == user_id,
                Registration.cancelled_at.is_(None),
            )
            .order_by(Event.date.desc())
        )
        return [
            {"event_id": str(event_id), "date": as_utc(start).isoformat()}
            for event_id, start, end_date in rows.all()
            if as_utc(end_date or start) <= now
        ]

    @staticmethod
    async def _apply(db: AsyncSession, rule: CleanupRule, user_id: uuid.UUID) -> int:
        model = rule.column.class_
        if rule.action is CleanupAction.CASCADE:
            stmt = delete(model).where(rule.column == user_id)
        else:
            stmt = update(model).where(rule.column == user_id).values({rule.column.key: None})
        res = await db.execute(stmt.execution_options(synchronize_session=False))
        return res.rowcount  # type: ignore[attr-defined]


# Module-level singleton
erasure_executor = ErasureExecutor()
