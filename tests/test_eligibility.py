"""Tests for the eligibility evaluator: retention window rules."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from src.security.clock import frozen
from src.security.eligibility import EligibilityEvaluator, decide

WINDOW = timedelta(days=28)


def _dt(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


# ── decide (pure) ────────────────────────────────────────────────────


class TestDecide:
    def test_no_registrations_is_eligible(self):
        decision = decide([], _dt(2025, 1, 15), WINDOW)
        assert decision.eligible is True
        assert decision.retained_until is None

    def test_only_future_events_is_eligible(self):
        """Upcoming registrations do not block erasure on their own."""
        decision = decide([_dt(2025, 3, 1)], _dt(2025, 1, 15), WINDOW)
        assert decision.eligible is True
        assert decision.attended_events == 0

    def test_recent_attendance_blocks(self):
        decision = decide([_dt(2025, 1, 1)], _dt(2025, 1, 15), WINDOW)
        assert decision.eligible is False
        assert decision.retained_until == _dt(2025, 1, 29)
        assert "14 days" in decision.reason

    def test_eligible_exactly_at_retained_until(self):
        decision = decide([_dt(2025, 1, 1)], _dt(2025, 1, 29), WINDOW)
        assert decision.eligible is True
        assert decision.retained_until == _dt(2025, 1, 29)

    def test_one_second_before_window_ends(self):
        decision = decide([_dt(2025, 1, 1)], _dt(2025, 1, 29) - timedelta(seconds=1), WINDOW)
        assert decision.eligible is False

    def test_uses_latest_attended_event(self):
        ends = [_dt(2024, 6, 1), _dt(2025, 1, 1), _dt(2024, 11, 20)]
        decision = decide(ends, _dt(2025, 1, 15), WINDOW)
        assert decision.retained_until == _dt(2025, 1, 29)
        assert decision.attended_events == 3

    def test_future_event_ignored_for_window(self):
        decision = decide([_dt(2025, 1, 1), _dt(2025, 2, 10)], _dt(2025, 1, 15), WINDOW)
        assert decision.retained_until == _dt(2025, 1, 29)
        assert decision.attended_events == 1

    def test_naive_datetimes_treated_as_utc(self):
        decision = decide([datetime(2025, 1, 1)], datetime(2025, 1, 15), WINDOW)
        assert decision.retained_until == _dt(2025, 1, 29)

    @pytest.mark.parametrize("days_after", [0, 1, 27])
    def test_inside_window_never_eligible(self, days_after):
        end = _dt(2025, 1, 1)
        decision = decide([end], end + timedelta(days=days_after), WINDOW)
        assert decision.eligible is False
        assert decision.retained_until == end + WINDOW

    @pytest.mark.parametrize("days_after", [28, 29, 400])
    def test_after_window_always_eligible(self, days_after):
        end = _dt(2025, 1, 1)
        decision = decide([end], end + timedelta(days=days_after), WINDOW)
        assert decision.eligible is True


# ── EligibilityEvaluator (database) ──────────────────────────────────


class TestEvaluator:
    @pytest.mark.asyncio()
    async def test_user_without_registrations(self, session_factory, build):
        user = await build.user()
        evaluator = EligibilityEvaluator(clock=frozen(_dt(2025, 1, 15)))

        async with session_factory() as db:
            decision = await evaluator.evaluate(db, user.id)

        assert decision.eligible is True

    @pytest.mark.asyncio()
    async def test_end_date_is_the_anchor(self, session_factory, build):
        user = await build.user()
        event = await build.event(date=_dt(2024, 12, 30, 9), end_date=_dt(2025, 1, 1))
        await build.registration(user, event)
        evaluator = EligibilityEvaluator(clock=frozen(_dt(2025, 1, 15)))

        async with session_factory() as db:
            decision = await evaluator.evaluate(db, user.id)

        assert decision.eligible is False
        assert decision.retained_until == _dt(2025, 1, 29)

    @pytest.mark.asyncio()
    async def test_start_date_used_without_end_date(self, session_factory, build):
        user = await build.user()
        event = await build.event(date=_dt(2025, 1, 5, 10))
        await build.registration(user, event)
        evaluator = EligibilityEvaluator(clock=frozen(_dt(2025, 1, 15)))

        async with session_factory() as db:
            decision = await evaluator.evaluate(db, user.id)

        assert decision.retained_until == _dt(2025, 2, 2, 10)

    @pytest.mark.asyncio()
    async def test_cancelled_registrations_ignored(self, session_factory, build):
        user = await build.user()
        event = await build.event(date=_dt(2025, 1, 1))
        await build.registration(user, event, cancelled_at=_dt(2024, 12, 20))
        evaluator = EligibilityEvaluator(clock=frozen(_dt(2025, 1, 15)))

        async with session_factory() as db:
            decision = await evaluator.evaluate(db, user.id)

        assert decision.eligible is True

    @pytest.mark.asyncio()
    async def test_other_users_registrations_ignored(self, session_factory, build):
        user = await build.user()
        other = await build.user()
        event = await build.event(date=_dt(2025, 1, 1))
        await build.registration(other, event)
        evaluator = EligibilityEvaluator(clock=frozen(_dt(2025, 1, 15)))

        async with session_factory() as db:
            decision = await evaluator.evaluate(db, user.id)

        assert decision.eligible is True

    @pytest.mark.asyncio()
    async def test_repeated_calls_are_side_effect_free(self, session_factory, build):
        user = await build.user()
        event = await build.event(date=_dt(2025, 1, 1))
        await build.registration(user, event)
        evaluator = EligibilityEvaluator(clock=frozen(_dt(2025, 1, 15)))

        async with session_factory() as db:
            first = await evaluator.evaluate(db, user.id)
            second = await evaluator.evaluate(db, user.id)
            refreshed = await db.get(type(user), user.id)

        assert first == second
        assert refreshed.is_suspended is False

    @pytest.mark.asyncio()
    async def test_retention_days_configurable(self, session_factory, build):
        user = await build.user()
        event = await build.event(date=_dt(2025, 1, 1))
        await build.registration(user, event)
        evaluator = EligibilityEvaluator(clock=frozen(_dt(2025, 1, 15)), retention_days=7)

        async with session_factory() as db:
            decision = await evaluator.evaluate(db, user.id)

        assert decision.eligible is True
        assert decision.retained_until == _dt(2025, 1, 8)

    @pytest.mark.asyncio()
    async def test_unknown_user_is_eligible(self, session_factory):
        evaluator = EligibilityEvaluator(clock=frozen(_dt(2025, 1, 15)))

        async with session_factory() as db:
            decision = await evaluator.evaluate(db, uuid.uuid4())

        assert decision.eligible is True
