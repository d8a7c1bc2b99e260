"""Badge catalog management and showcase selection."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from streakup.db.models import UserBadge
from streakup.exceptions import BadgeConditionError, NotFoundError, RepresentativeBadgeError
from streakup.gamification.badge_service import (
    create_badge,
    delete_badge,
    get_badge_by_slug,
    get_badges_by_ids,
    get_user_badges,
    list_badges,
    set_representative_badges,
    update_badge,
)
from streakup.gamification.seed import BADGE_SEED_DATA, seed_badges

EARNED_AT = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def collector(db, make_user, make_badge):
    """A user holding five badges, the first three on the showcase."""
    user = await make_user()
    badges = [await make_badge(f"b{i}", "completions", i + 1, sort_order=i) for i in range(5)]
    for i, badge in enumerate(badges):
        db.add(UserBadge(
            user_id=user.id,
            badge_id=badge.id,
            earned_at=EARNED_AT,
            representative_order=i + 1 if i < 3 else None,
        ))
    await db.commit()
    return user, badges


class TestCatalog:
    @pytest.mark.asyncio
    async def test_create_and_fetch(self, db):
        badge = await create_badge(
            db,
            slug="study_5",
            name="Bookworm",
            description="Five study completions",
            condition_type="category_completions",
            threshold=5,
            category_target="study",
        )
        assert (await get_badge_by_slug(db, "study_5")).id == badge.id
        assert badge.category_target == "study"

    @pytest.mark.asyncio
    async def test_target_dropped_for_other_conditions(self, db):
        badge = await create_badge(
            db,
            slug="streak_4",
            name="Four",
            description="Four in a row",
            condition_type="streak",
            threshold=4,
            category_target="study",
        )
        assert badge.category_target is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("condition_type", "threshold", "target"),
        [
            ("likes", 1, None),
            ("streak", 0, None),
            ("category_completions", 3, None),
            ("category_completions", 3, "knitting"),
        ],
    )
    async def test_invalid_condition(self, db, condition_type, threshold, target):
        with pytest.raises(BadgeConditionError):
            await create_badge(
                db,
                slug="bad",
                name="Bad",
                description="",
                condition_type=condition_type,
                threshold=threshold,
                category_target=target,
            )
        assert await list_badges(db) == []

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, db, make_badge):
        await make_badge("first_step", "completions", 1)
        with pytest.raises(BadgeConditionError):
            await create_badge(
                db,
                slug="first_step",
                name="Another",
                description="",
                condition_type="completions",
                threshold=1,
            )

    @pytest.mark.asyncio
    async def test_update_validates_merged_condition(self, db, make_badge):
        await make_badge("streak_3", "streak", 3)
        updated = await update_badge(db, "streak_3", {"threshold": 5, "name": "Five in a row"})
        assert (updated.threshold, updated.name) == (5, "Five in a row")

        with pytest.raises(BadgeConditionError):
            await update_badge(db, "streak_3", {"condition_type": "category_completions"})

    @pytest.mark.asyncio
    async def test_delete(self, db, make_badge):
        await make_badge("gone", "completions", 1)
        await delete_badge(db, "gone")
        with pytest.raises(NotFoundError):
            await get_badge_by_slug(db, "gone")

    @pytest.mark.asyncio
    async def test_lookup_reports_missing_ids(self, db, make_badge):
        badge = await make_badge("a", "completions", 1)
        found, missing = await get_badges_by_ids(db, [badge.id, 999])
        assert [b.slug for b in found] == ["a"]
        assert missing == [999]

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, db):
        assert await seed_badges(db) == len(BADGE_SEED_DATA)
        assert await seed_badges(db) == 0
        slugs = [b.slug for b in await list_badges(db)]
        assert slugs[0] == "first_step"
        assert len(slugs) == len(BADGE_SEED_DATA)


class TestRepresentative:
    @pytest.mark.asyncio
    async def test_user_badges(self, db, collector):
        user, _ = collector
        result = await get_user_badges(db, user.id)
        assert len(result["earned"]) == 5
        assert [ub.representative_order for ub in result["representative"]] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            await get_user_badges(db, 404)

    @pytest.mark.asyncio
    async def test_replace_showcase(self, db, collector):
        user, badges = collector
        chosen = await set_representative_badges(db, user.id, [(badges[4].id, 1), (badges[0].id, 2)])

        assert [(ub.badge_id, ub.representative_order) for ub in chosen] == [
            (badges[4].id, 1),
            (badges[0].id, 2),
        ]
        result = await get_user_badges(db, user.id)
        assert len(result["earned"]) == 5
        assert [ub.badge_id for ub in result["representative"]] == [badges[4].id, badges[0].id]

    @pytest.mark.asyncio
    async def test_clear_showcase(self, db, collector):
        user, _ = collector
        assert await set_representative_badges(db, user.id, []) == []
        assert (await get_user_badges(db, user.id))["representative"] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "picks",
        [
            [(0, 1), (1, 2), (2, 3), (3, 4), (4, 4)],  # more than four
            [(0, 1), (1, 1)],  # repeated order
            [(0, 5)],  # order out of range
            [(0, 0)],
            [(0, 1), (0, 2)],  # same badge twice
        ],
    )
    async def test_invalid_selection(self, db, collector, picks):
        user, badges = collector
        with pytest.raises(RepresentativeBadgeError):
            await set_representative_badges(db, user.id, [(badges[i].id, order) for i, order in picks])

    @pytest.mark.asyncio
    async def test_unearned_badge(self, db, collector, make_badge):
        user, _ = collector
        other = await make_badge("unearned", "completions", 50)
        with pytest.raises(RepresentativeBadgeError):
            await set_representative_badges(db, user.id, [(other.id, 1)])

    @pytest.mark.asyncio
    async def test_slot_beyond_showcase_rejected_by_schema(self, db, make_user, make_badge):
        user = await make_user()
        badge = await make_badge("extra", "completions", 1)
        db.add(UserBadge(user_id=user.id, badge_id=badge.id, earned_at=EARNED_AT, representative_order=5))
        with pytest.raises(IntegrityError):
            await db.commit()
        await db.rollback()
