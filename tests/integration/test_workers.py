"""Recompute jobs run with the context arq hands them."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import select

from streakup.database import get_session_factory
from streakup.db.models import Challenge, User
from streakup.workers.recompute import (
    recompute_all_challenge_rates,
    recompute_challenge_rate,
    reevaluate_user,
)
from streakup.workers.settings import WorkerSettings


@pytest_asyncio.fixture
async def ctx(database):
    return {"session_factory": get_session_factory(), "redis": None}


@pytest_asyncio.fixture
async def started_long_ago(make_user, make_challenge, join):
    """One participant with 15 completions over a challenge joined 60 days ago."""
    user = await make_user()
    challenge = await make_challenge(user)
    await join(user, challenge, start=datetime.now(timezone.utc) - timedelta(days=60), total_completions=15)
    return user, challenge


async def _stored_rate(challenge_id: int) -> int:
    async with get_session_factory()() as session:
        return (
            await session.execute(select(Challenge.completion_rate).where(Challenge.id == challenge_id))
        ).scalar_one()


class TestRecomputeJobs:
    @pytest.mark.asyncio
    async def test_challenge_rate_capped_window(self, ctx, started_long_ago):
        _, challenge = started_long_ago
        assert await recompute_challenge_rate(ctx, challenge.id) == 50
        assert await _stored_rate(challenge.id) == 50

    @pytest.mark.asyncio
    async def test_recompute_is_idempotent(self, ctx, started_long_ago):
        _, challenge = started_long_ago
        first = await recompute_challenge_rate(ctx, challenge.id)
        assert await recompute_challenge_rate(ctx, challenge.id) == first

    @pytest.mark.asyncio
    async def test_all_rates(self, ctx, started_long_ago, make_challenge):
        user, challenge = started_long_ago
        empty = await make_challenge(user, title="Nobody here")

        assert await recompute_all_challenge_rates(ctx) == 2
        assert await _stored_rate(challenge.id) == 50
        assert await _stored_rate(empty.id) == 0

    @pytest.mark.asyncio
    async def test_reevaluate_user(self, ctx, started_long_ago, make_badge):
        user, _ = started_long_ago
        await make_badge("completions_10", "completions", 10)
        await make_badge("completions_20", "completions", 20)

        assert await reevaluate_user(ctx, user.id) == ["completions_10"]
        assert await reevaluate_user(ctx, user.id) == []

        async with get_session_factory()() as session:
            stored = await session.get(User, user.id)
            assert stored.grade == "bronze"


def test_worker_settings_register_jobs():
    names = {f.__name__ for f in WorkerSettings.functions}
    assert names == {"recompute_challenge_rate", "reevaluate_user", "recompute_all_challenge_rates"}
    assert len(WorkerSettings.cron_jobs) == 1
