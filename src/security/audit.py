"""Audit ledger: append-only record of every deletion lifecycle action.

Each entry is written in its own session so it never joins (or rolls back)
the transaction of the operation it describes.

Never raises: failures are logged but never propagate to the caller.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.models.audit import AuditEntry
from src.models.enums import AuditAction

logger = logging.getLogger(__name__)


class AuditWriteFailed(Exception):
    """An audit entry could not be persisted."""


class AuditLedger:
    """Best-effort writer for the audit_log table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            from src.db.engine import async_session_factory

            self._session_factory = async_session_factory
        return self._session_factory

    async def record(
        self,
        actor_id: uuid.UUID | None,
        action: AuditAction,
        details: dict[str, Any] | None = None,
        origin: str | None = None,
    ) -> None:
        """Append an entry. Failures are logged and swallowed.

        Audit logging must never crash or roll back the main flow.
        """
        try:
            await self._write(actor_id, action, details, origin)
        except Exception:
            logger.exception("Failed to persist audit entry: %s (actor=%s)", action.value, actor_id)

    async def _write(
        self,
        actor_id: uuid.UUID | None,
        action: AuditAction,
        details: dict[str, Any] | None,
        origin: str | None,
    ) -> None:
        try:
            async with self._factory()() as db:
                db.add(AuditEntry(
                    actor_id=actor_id,
                    action=action.value,
                    details=details,
                    ip_address=origin,
                ))
                await db.commit()
        except SQLAlchemyError as exc:
            raise AuditWriteFailed(str(exc)) from exc


async def get_audit_log_paginated(
    db: AsyncSession,
    action: AuditAction | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[AuditEntry], int]:
    """Newest-first page of audit entries plus the total count."""
    query = select(AuditEntry)
    count_query = select(func.count(AuditEntry.id))
    if action is not None:
        query = query.where(AuditEntry.action == action.value)
        count_query = count_query.where(AuditEntry.action == action.value)

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(
        query.order_by(AuditEntry.created_at.desc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), total


# Module-level singleton
audit_ledger = AuditLedger()
