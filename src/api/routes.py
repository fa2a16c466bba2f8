"""User-facing and scheduler-facing deletion endpoints.

- POST /api/profile/delete: self-service deletion of the caller's account
- GET  /api/cron/delete-users: daily run invoked by an external scheduler
"""
# ruff: noqa: B008

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from src.admin.auth import clear_session_cookie, client_ip, require_user, verify_cron_secret
from src.models.user import User
from src.schemas.gdpr import SelfDeletionResponse, TriggerResponse
from src.security.triggers import request_self_deletion, run_periodic_deletions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["gdpr"])


@router.post("/profile/delete")
async def delete_profile(
    request: Request,
    user: User = Depends(require_user),
) -> JSONResponse:
    """Erase the caller now, or schedule erasure and suspend the account.

    The session cookie is cleared on every outcome, errors included.
    """
    user_id = user.id
    try:
        outcome = await request_self_deletion(user_id, origin=client_ip(request))
    except Exception:
        logger.exception("[DELETE Profile] Deletion request failed for user %s", user_id)
        response = JSONResponse(status_code=500, content={"error": "Failed to delete profile"})
        clear_session_cookie(response)
        return response

    body = SelfDeletionResponse(immediate=outcome.immediate, deletion_date=outcome.deletion_date)
    response = JSONResponse(status_code=200, content=body.to_json())
    clear_session_cookie(response)
    return response


@router.get("/cron/delete-users", response_model=TriggerResponse)
async def cron_delete_users(
    _: None = Depends(verify_cron_secret),
) -> TriggerResponse | JSONResponse:
    """Periodic trigger over HTTP, for schedulers that can only call URLs."""
    batch = await run_periodic_deletions()
    if batch is None:
        return JSONResponse(status_code=500, content={"error": "Scheduled deletion run failed"})
    return TriggerResponse(deleted=batch.processed)
