"""Entry points of the deletion lifecycle.

Four ways in:
- periodic: daily, unattended, no caller context (APScheduler job, external
  cron via ``python -m src.security.triggers``, or the cron HTTP endpoint)
- manual: an administrator runs the batch on demand
- self-service: a user asks for their own account to be deleted
- ad-hoc: an administrator erases one user right away

All of them take the clock as an argument so tests can freeze time.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.admin.alerts import deletion_alerts
from src.config import settings
from src.models.enums import AuditAction, DeletionMode
from src.security.audit import AuditLedger, audit_ledger
from src.security.clock import Clock, as_utc, utc_now
from src.security.deletion_schedule import AlreadyScheduled, DeletionScheduler, UserNotFound, get_pending
from src.security.eligibility import EligibilityEvaluator
from src.security.erasure import ErasureConflict, ErasureExecutor, ErasureResult
from src.security.retention import BatchResult, DatastoreUnavailable, DeletionBatchProcessor

logger = logging.getLogger(__name__)

CRON_SCHEDULE = f"{settings.gdpr.cron_minute} {settings.gdpr.cron_hour} * * *"


@dataclass(frozen=True)
class SelfDeletionOutcome:
    """What happened to a self-service deletion request."""

    immediate: bool
    deletion_date: datetime | None = None


def _factory(session_factory: async_sessionmaker[AsyncSession] | None) -> async_sessionmaker[AsyncSession]:
    if session_factory is not None:
        return session_factory
    from src.db.engine import async_session_factory

    return async_session_factory


# ── Periodic ─────────────────────────────────────────────────────────


async def run_periodic_deletions(
    clock: Clock = utc_now,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    ledger: AuditLedger | None = None,
) -> BatchResult | None:
    """Daily job. Never raises: total failure is logged and alerted, and the
    next run retries because due rows stay selectable.
    """
    ledger = ledger or audit_ledger
    started = clock()
    logger.info("[CRON] Starting scheduled user deletions")

    processor = DeletionBatchProcessor(session_factory=_factory(session_factory), ledger=ledger, clock=clock)
    try:
        batch = await processor.run_due_deletions()
    except DatastoreUnavailable as exc:
        logger.exception("[CRON] Scheduled deletion run failed")
        await deletion_alerts.total_failure("periodic", str(exc))
        return None

    logger.info("[CRON] Completed. Deleted %d user(s)", batch.processed)
    await ledger.record(
        None,
        AuditAction.PERIODIC_RUN,
        {
            "deleted_count": batch.processed,
            "failed_count": batch.failed,
            "triggered_by": "cron",
            "cron_schedule": CRON_SCHEDULE,
            "scheduled_time": as_utc(started).isoformat(),
        },
    )
    return batch


# ── Manual (admin) ───────────────────────────────────────────────────


async def run_manual_deletions(
    admin_id: uuid.UUID,
    origin: str | None = None,
    clock: Clock = utc_now,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    ledger: AuditLedger | None = None,
) -> BatchResult:
    """Admin-initiated batch run. Authorization happens before this is called.

    Raises DatastoreUnavailable when due rows cannot be read.
    """
    ledger = ledger or audit_ledger
    logger.info("[MANUAL_CRON] Starting manual deletion trigger by admin %s", admin_id)

    processor = DeletionBatchProcessor(session_factory=_factory(session_factory), ledger=ledger, clock=clock)
    batch = await processor.run_due_deletions()

    logger.info("[MANUAL_CRON] Completed. Deleted %d user(s)", batch.processed)
    await ledger.record(
        admin_id,
        AuditAction.MANUAL_TRIGGER,
        {
            "deleted_count": batch.processed,
            "failed_count": batch.failed,
            "triggered_by": "manual_admin",
            "admin_id": str(admin_id),
        },
        origin,
    )
    return batch


async def erase_user_by_admin(
    admin_id: uuid.UUID,
    user_id: uuid.UUID,
    origin: str | None = None,
    clock: Clock = utc_now,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    ledger: AuditLedger | None = None,
) -> ErasureResult:
    """Erase one user right away on an administrator's request.

    Retention does not apply. Authorization and the self/admin-target guards
    happen before this is called.

    Raises:
        UserNotFound: the user does not exist or was erased concurrently.
    """
    ledger = ledger or audit_ledger
    executor = ErasureExecutor(clock=clock)

    try:
        async with _factory(session_factory)() as db, db.begin():
            result = await executor.execute(db, user_id, mode=DeletionMode.IMMEDIATE)
    except ErasureConflict as exc:
        raise UserNotFound(f"User {user_id} not found") from exc
    if result.already_erased:
        raise UserNotFound(f"User {user_id} not found")

    logger.info("[ADMIN] User %s erased by admin %s", user_id, admin_id)
    await ledger.record(
        admin_id,
        AuditAction.IMMEDIATE,
        {
            "deleted_user_id": str(user_id),
            "triggered_by": "admin",
            "attended_any": result.attended_events > 0,
            "archive_id": str(result.archive_id) if result.archive_id else None,
        },
        origin,
    )
    return result


# ── Self-service ─────────────────────────────────────────────────────


async def request_self_deletion(
    user_id: uuid.UUID,
    origin: str | None = None,
    clock: Clock = utc_now,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    ledger: AuditLedger | None = None,
) -> SelfDeletionOutcome:
    """Evaluate, then erase now or schedule + suspend.

    If immediate erasure fails the user is scheduled for `now` instead, so
    the account is suspended and the next batch run retries the erasure.
    Terminating the caller's session is the HTTP layer's job and happens
    whatever this returns or raises.
    """
    factory = _factory(session_factory)
    ledger = ledger or audit_ledger
    evaluator = EligibilityEvaluator(clock=clock)
    scheduler = DeletionScheduler(evaluator=evaluator)
    executor = ErasureExecutor(clock=clock)

    async with factory() as db:
        decision = await evaluator.evaluate(db, user_id)

    if decision.eligible:
        try:
            async with factory() as db, db.begin():
                result = await executor.execute(db, user_id, mode=DeletionMode.IMMEDIATE)
        except ErasureConflict:
            logger.info("User %s already erased by a concurrent run", user_id)
            return SelfDeletionOutcome(immediate=True)
        except Exception as exc:
            logger.exception("Immediate deletion failed for user %s, falling back to schedule", user_id)
            await ledger.record(
                user_id,
                AuditAction.FAILED,
                {"reason": "immediate_deletion_error", "error": str(exc)},
                origin,
            )
            deletion_date = await _schedule(factory, scheduler, user_id, at=clock())
            return SelfDeletionOutcome(immediate=False, deletion_date=deletion_date)

        logger.info("User %s deleted immediately", user_id)
        await ledger.record(
            None,
            AuditAction.IMMEDIATE,
            {
                "deleted_user_id": str(user_id),
                "attended_any": result.attended_events > 0,
                "archive_id": str(result.archive_id) if result.archive_id else None,
            },
            origin,
        )
        return SelfDeletionOutcome(immediate=True)

    deletion_date = await _schedule(factory, scheduler, user_id)
    logger.info("User %s scheduled for deletion on %s", user_id, deletion_date.isoformat())
    await ledger.record(
        user_id,
        AuditAction.SCHEDULED,
        {"deletion_date": deletion_date.isoformat(), "reason": decision.reason},
        origin,
    )
    return SelfDeletionOutcome(immediate=False, deletion_date=deletion_date)


async def _schedule(
    factory: async_sessionmaker[AsyncSession],
    scheduler: DeletionScheduler,
    user_id: uuid.UUID,
    at: datetime | None = None,
) -> datetime:
    """Schedule (and suspend); on AlreadyScheduled fall back to the existing row."""
    try:
        async with factory() as db, db.begin():
            if at is None:
                return await scheduler.schedule(db, user_id)
            return await scheduler.schedule_at(db, user_id, at)
    except AlreadyScheduled as exc:
        if exc.deletion_date is not None:
            return exc.deletion_date
        async with factory() as db:
            existing = await get_pending(db, user_id)
        if existing is None:
            raise
        return as_utc(existing.deletion_date)


# ── CLI entry point (external cron) ──────────────────────────────────


async def _run_once() -> BatchResult | None:
    from src.db.engine import close_db

    try:
        return await run_periodic_deletions()
    finally:
        await close_db()


def main() -> None:
    """Run one periodic deletion pass and exit."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    batch = asyncio.run(_run_once())
    raise SystemExit(0 if batch is not None else 1)


if __name__ == "__main__":
    main()
