"""Admin API: deletion lifecycle endpoints for administrators.

All routes require an authenticated administrator via `require_admin`
(401 without a session, 403 for non-admins) which runs before any handler
logic, so an unauthorized caller never reaches the batch processor.
"""
# ruff: noqa: B008

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.auth import client_ip, is_admin, require_admin
from src.admin.queries import get_scheduled_deletions
from src.db.engine import get_session
from src.models.enums import AuditAction
from src.models.user import User
from src.schemas.gdpr import AuditEntryOut, AuditPage, ScheduledDeletion, TriggerResponse, UserDeletedResponse
from src.security.audit import get_audit_log_paginated
from src.security.deletion_schedule import UserNotFound
from src.security.retention import DatastoreUnavailable
from src.security.triggers import erase_user_by_admin, run_manual_deletions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/cron/trigger-delete", response_model=TriggerResponse)
async def trigger_delete(
    request: Request,
    admin: User = Depends(require_admin),
) -> TriggerResponse | JSONResponse:
    """Run the due-deletion batch now."""
    try:
        batch = await run_manual_deletions(admin.id, origin=client_ip(request))
    except DatastoreUnavailable as exc:
        logger.exception("[MANUAL_CRON] Error during manual deletion")
        return JSONResponse(status_code=500, content={"error": str(exc)})
    return TriggerResponse(deleted=batch.processed)


@router.delete("/users/{user_id}", response_model=UserDeletedResponse)
async def delete_user(
    user_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> UserDeletedResponse:
    """Erase one user now, bypassing retention. Administrators must be demoted first."""
    if user_id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete yourself")
    if await is_admin(db, user_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete an administrator. Revoke admin rights first.",
        )

    try:
        await erase_user_by_admin(admin.id, user_id, origin=client_ip(request))
    except UserNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from exc
    return UserDeletedResponse()


@router.get("/deletions", response_model=list[ScheduledDeletion])
async def list_scheduled_deletions(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[ScheduledDeletion]:
    """Pending deletions, soonest first."""
    rows = await get_scheduled_deletions(db)
    return [ScheduledDeletion(**row) for row in rows]


@router.get("/logs", response_model=AuditPage)
async def audit_log(
    action: AuditAction | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AuditPage:
    """Paginated audit ledger, newest first."""
    entries, total = await get_audit_log_paginated(db, action=action, limit=limit, offset=offset)
    return AuditPage(
        entries=[AuditEntryOut.model_validate(e) for e in entries],
        total=total,
        limit=limit,
        offset=offset,
    )
