"""Tests for POST /api/profile/delete and GET /api/cron/delete-users."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.admin.auth import require_user
from src.config import settings
from src.db.engine import get_session
from src.security.retention import BatchResult
from src.security.triggers import SelfDeletionOutcome

USER_ID = uuid.uuid4()


@pytest.fixture
def mock_self_deletion():
    with patch("src.api.routes.request_self_deletion", new_callable=AsyncMock) as mock:
        mock.return_value = SelfDeletionOutcome(immediate=True)
        yield mock


@pytest.fixture
def mock_periodic():
    with patch("src.api.routes.run_periodic_deletions", new_callable=AsyncMock) as mock:
        mock.return_value = BatchResult(processed=2)
        yield mock


@pytest.fixture
def client(monkeypatch, mock_self_deletion, mock_periodic):
    from src.api.routes import router

    monkeypatch.setattr(settings.security, "cron_secret", "cron-token")
    monkeypatch.setattr(settings.security, "secure_cookies", False)

    test_app = FastAPI()
    test_app.include_router(router)
    test_app.dependency_overrides[require_user] = lambda: SimpleNamespace(id=USER_ID, is_suspended=False)
    return TestClient(test_app)


def _assert_cookie_cleared(resp) -> None:
    cookie = resp.headers.get("set-cookie", "")
    assert "auth_token=" in cookie
    assert "Max-Age=0" in cookie


# ── Self-service deletion ────────────────────────────────────────────


class TestProfileDelete:
    def test_immediate(self, client, mock_self_deletion):
        resp = client.post("/api/profile/delete")

        assert resp.status_code == 200
        assert resp.json() == {"deleted": True, "immediate": True}
        _assert_cookie_cleared(resp)
        assert mock_self_deletion.call_args[0][0] == USER_ID

    def test_scheduled(self, client, mock_self_deletion):
        mock_self_deletion.return_value = SelfDeletionOutcome(
            immediate=False, deletion_date=datetime(2025, 1, 29, tzinfo=UTC)
        )

        resp = client.post("/api/profile/delete")

        assert resp.status_code == 200
        assert resp.json() == {"deleted": True, "immediate": False, "deletionDate": "2025-01-29T00:00:00Z"}
        _assert_cookie_cleared(resp)

    def test_failure_still_clears_cookie(self, client, mock_self_deletion):
        mock_self_deletion.side_effect = RuntimeError("connection refused")

        resp = client.post("/api/profile/delete")

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to delete profile"}
        _assert_cookie_cleared(resp)

    def test_origin_passed_through(self, client, mock_self_deletion):
        client.post("/api/profile/delete", headers={"x-forwarded-for": "203.0.113.5"})
        assert mock_self_deletion.call_args.kwargs["origin"] == "203.0.113.5"

    def test_requires_session(self, client, mock_self_deletion):
        async def fake_get_session():
            yield AsyncMock()

        client.app.dependency_overrides.clear()
        client.app.dependency_overrides[get_session] = fake_get_session
        with patch("src.admin.auth.resolve_user", new_callable=AsyncMock, return_value=None):
            resp = client.post("/api/profile/delete")

        assert resp.status_code == 401
        mock_self_deletion.assert_not_awaited()


# ── Cron endpoint ────────────────────────────────────────────────────


class TestCronEndpoint:
    def test_valid_bearer(self, client, mock_periodic):
        resp = client.get("/api/cron/delete-users", headers={"Authorization": "Bearer cron-token"})

        assert resp.status_code == 200
        assert resp.json() == {"deleted": 2}
        mock_periodic.assert_awaited_once()

    def test_invalid_bearer(self, client, mock_periodic):
        resp = client.get("/api/cron/delete-users", headers={"Authorization": "Bearer nope"})

        assert resp.status_code == 401
        mock_periodic.assert_not_awaited()

    def test_missing_bearer(self, client, mock_periodic):
        assert client.get("/api/cron/delete-users").status_code == 401
        mock_periodic.assert_not_awaited()

    def test_unconfigured_secret(self, client, monkeypatch, mock_periodic):
        monkeypatch.setattr(settings.security, "cron_secret", "")

        resp = client.get("/api/cron/delete-users", headers={"Authorization": "Bearer anything"})

        assert resp.status_code == 503
        mock_periodic.assert_not_awaited()

    def test_total_failure_is_500(self, client, mock_periodic):
        mock_periodic.return_value = None

        resp = client.get("/api/cron/delete-users", headers={"Authorization": "Bearer cron-token"})

        assert resp.status_code == 500
