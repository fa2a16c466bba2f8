"""Deletion batch processor: executes every pending deletion that is due.

Safe to call on every schedule tick: due rows are selected by date, each one
is erased in its own transaction, and a failed item leaves its PendingDeletion
untouched so the next run picks it up again. One user's failure never aborts
the batch.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import settings
from src.models.enums import AuditAction, DeletionMode
from src.models.pending_deletion import PendingDeletion
from src.security.audit import AuditLedger, audit_ledger
from src.security.clock import Clock, as_utc, utc_now
from src.security.erasure import ErasureConflict, ErasureExecutor

logger = logging.getLogger(__name__)


class DatastoreUnavailable(Exception):
    """Due deletions could not be read at all. Fatal for the current run."""


@dataclass
class BatchResult:
    """Outcome of one batch run."""

    processed: int = 0
    failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)


class DeletionBatchProcessor:
    """Finds due pending deletions and erases each with bounded concurrency."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        executor: ErasureExecutor | None = None,
        ledger: AuditLedger | None = None,
        clock: Clock = utc_now,
        max_concurrency: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._executor = executor or ErasureExecutor(clock=clock)
        self._ledger = ledger or audit_ledger
        self._max_concurrency = max_concurrency or settings.gdpr.batch_concurrency

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            from src.db.engine import async_session_factory

            self._session_factory = async_session_factory
        return self._session_factory

    async def due_deletions(self) -> list[tuple[uuid.UUID, datetime]]:
        """(user_id, deletion_date) of every pending deletion whose date has arrived."""
        now = self._clock()
        try:
            async with self._factory()() as db:
                result = await db.execute(
                    select(PendingDeletion.user_id, PendingDeletion.deletion_date)
                    .where(PendingDeletion.deletion_date <= now)
                    .order_by(PendingDeletion.deletion_date.asc())
                )
                return [(user_id, as_utc(date)) for user_id, date in result.all()]
        except (SQLAlchemyError, OSError) as exc:
            raise DatastoreUnavailable(f"Failed to fetch pending deletions: {exc}") from exc

    async def run_due_deletions(self) -> BatchResult:
        """Erase every due user. Only raises DatastoreUnavailable."""
        batch = BatchResult()
        due = await self.due_deletions()
        if not due:
            logger.info("No scheduled deletions due")
            return batch

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(user_id: uuid.UUID, deletion_date: datetime) -> None:
            async with semaphore:
                await self._process_one(batch, user_id, deletion_date)

        await asyncio.gather(*[_bounded(user_id, date) for user_id, date in due])

        logger.info(
            "Processed %d scheduled deletions: %d successful, %d failed",
            len(due),
            batch.processed,
            batch.failed,
        )
        if batch.errors:
            logger.error("Deletion errors: %s", batch.errors)
        return batch

    async def _process_one(self, batch: BatchResult, user_id: uuid.UUID, deletion_date: datetime) -> None:
        try:
            async with self._factory()() as db, db.begin():
                result = await self._executor.execute(db, user_id, mode=DeletionMode.SCHEDULED)
        except ErasureConflict:
            # The competing run counts and audits this user
            logger.info("User %s already erased by a concurrent run", user_id)
            return
        except Exception as exc:
            batch.failed += 1
            batch.errors.append({"user_id": str(user_id), "error": str(exc)})
            logger.exception("Failed to delete user %s", user_id)
            await self._ledger.record(
                None,
                AuditAction.FAILED,
                {
                    "deleted_user_id": str(user_id),
                    "deletion_date": deletion_date.isoformat(),
                    "error": str(exc),
                },
            )
            return

        batch.processed += 1
        logger.info("Deleted user %s (scheduled for %s)", user_id, deletion_date.isoformat())
        await self._ledger.record(
            None,
            AuditAction.BATCH_ITEM,
            {
                "deleted_user_id": str(user_id),
                "deletion_date": deletion_date.isoformat(),
                "archive_id": str(result.archive_id) if result.archive_id else None,
                "already_erased": result.already_erased,
            },
        )

