"""Shared fixtures: an in-memory SQLite database and row builders."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.config import settings
from src.models import AdminRole, Base, Event, PendingDeletion, Registration, Review, User
from src.security.audit import AuditLedger


@pytest.fixture(autouse=True)
def _sequential_batches(monkeypatch):
    """A single shared SQLite connection cannot host concurrent transactions."""
    monkeypatch.setattr(settings.gdpr, "batch_concurrency", 1)
    monkeypatch.setattr(settings.gdpr, "retention_days", 28)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def ledger(session_factory) -> AuditLedger:
    return AuditLedger(session_factory=session_factory)


class Builder:
    """Inserts rows in their own committed transactions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._factory = session_factory

    async def _save(self, obj):
        async with self._factory() as db:
            db.add(obj)
            await db.commit()
        return obj

    async def user(self, **overrides) -> User:
        fields = {
            "email": f"user-{uuid.uuid4().hex[:8]}@example.org",
            "password_hash": "$2b$12$secret-hash-value",
            "first_name": "Lena",
            "last_name": "Schmidt",
            "address_street": "Hauptstraße",
            "address_number": "12",
            "address_zip": "10115",
            "address_city": "Berlin",
            "phone": "+49301234567",
            "whatsapp": "+49301234568",
            "telegram": "@lena_s",
            "preferred_language": "de",
        }
        fields.update(overrides)
        return await self._save(User(**fields))

    async def event(self, date: datetime, end_date: datetime | None = None, **overrides) -> Event:
        overrides.setdefault("title", "Berufsorientierung")
        return await self._save(Event(date=date, end_date=end_date, **overrides))

    async def registration(self, user: User, event: Event, cancelled_at: datetime | None = None) -> Registration:
        return await self._save(Registration(user_id=user.id, event_id=event.id, cancelled_at=cancelled_at))

    async def admin(self, user: User, created_by: uuid.UUID | None = None) -> AdminRole:
        return await self._save(AdminRole(user_id=user.id, created_by=created_by))

    async def review(self, user: User, event: Event, moderated_by: uuid.UUID | None = None) -> Review:
        return await self._save(
            Review(event_id=event.id, user_id=user.id, rating=9, comment="Sehr hilfreich", moderated_by=moderated_by)
        )

    async def pending(self, user: User, deletion_date: datetime) -> PendingDeletion:
        return await self._save(PendingDeletion(user_id=user.id, deletion_date=deletion_date))


@pytest.fixture
def build(session_factory) -> Builder:
    return Builder(session_factory)
