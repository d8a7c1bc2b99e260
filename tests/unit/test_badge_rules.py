"""Badge conditions and the pure evaluation pass (synthetic catalogs, no database)."""

from types import SimpleNamespace

import pytest

from streakup.exceptions import BadgeConditionError
from streakup.gamification.badge_rules import (
    BadgeRule,
    LifetimeStats,
    evaluate_badges,
    validate_condition,
)


def _record(challenge_id, completions=0, max_streak=0, score=0, days=0):
    return SimpleNamespace(
        challenge_id=challenge_id,
        total_completions=completions,
        max_streak_count=max_streak,
        score=score,
        completed_dates=[None] * days,
    )


CATALOG = (
    BadgeRule(badge_id=1, slug="first_step", condition_type="completions", threshold=1),
    BadgeRule(badge_id=2, slug="completions_5", condition_type="completions", threshold=5),
    BadgeRule(badge_id=3, slug="streak_3", condition_type="streak", threshold=3),
    BadgeRule(badge_id=4, slug="score_50", condition_type="score", threshold=50),
    BadgeRule(badge_id=5, slug="challenges_2", condition_type="challenges", threshold=2),
    BadgeRule(badge_id=6, slug="exercise_3", condition_type="category_completions", threshold=3,
              category_target="exercise"),
)


class TestValidateCondition:
    def test_valid_conditions(self):
        validate_condition("completions", 5, None)
        validate_condition("category_completions", 3, "study")

    def test_unknown_type(self):
        with pytest.raises(BadgeConditionError, match="Unknown condition type"):
            validate_condition("likes", 5, None)

    @pytest.mark.parametrize("threshold", [0, -1, 2.5, True, "5"])
    def test_threshold_must_be_positive_int(self, threshold):
        with pytest.raises(BadgeConditionError, match="threshold"):
            validate_condition("completions", threshold, None)

    def test_category_condition_needs_target(self):
        with pytest.raises(BadgeConditionError, match="category_target is required"):
            validate_condition("category_completions", 3, None)

    def test_category_target_must_be_known(self):
        with pytest.raises(BadgeConditionError, match="Unknown category_target"):
            validate_condition("category_completions", 3, "gaming")


class TestLifetimeStats:
    def test_aggregates_all_records(self):
        categories = {10: "exercise", 11: "study", 12: "exercise"}
        stats = LifetimeStats.from_records(
            [
                _record(10, completions=4, max_streak=3, score=40, days=4),
                _record(11, completions=2, max_streak=5, score=20, days=2),
                _record(12, completions=1, max_streak=1, score=10, days=1),
            ],
            categories.get,
        )
        assert stats.total_completions == 7
        assert stats.max_streak == 5
        assert stats.total_score == 70
        assert stats.total_challenges == 3
        assert stats.total_active_days == 7
        assert stats.category_completions == {"exercise": 5, "study": 2}

    def test_empty(self):
        stats = LifetimeStats.from_records([], lambda _id: None)
        assert stats == LifetimeStats()
        assert stats.value_for("streak") == 0

    def test_unknown_category_counts_as_other(self):
        stats = LifetimeStats.from_records([_record(99, completions=2)], lambda _id: None)
        assert stats.category_completions == {"other": 2}

    def test_missing_category_target_is_zero(self):
        stats = LifetimeStats(category_completions={"study": 4})
        assert stats.value_for("category_completions", "exercise") == 0


class TestEvaluateBadges:
    def test_threshold_is_inclusive(self):
        four = LifetimeStats(total_completions=4)
        five = LifetimeStats(total_completions=5)
        rule = CATALOG[1]
        assert not rule.is_met(four)
        assert rule.is_met(five)

    def test_completions_badge_granted_at_five_not_four(self):
        earned_at_four = evaluate_badges(CATALOG, LifetimeStats(total_completions=4), [1], [1])
        assert [g.rule.slug for g in earned_at_four] == []

        earned_at_five = evaluate_badges(CATALOG, LifetimeStats(total_completions=5), [1], [1])
        assert [g.rule.slug for g in earned_at_five] == ["completions_5"]

    def test_catalog_order_is_scan_order(self):
        stats = LifetimeStats(total_completions=5, max_streak=3, total_score=50, total_challenges=2)
        grants = evaluate_badges(CATALOG, stats, [], [])
        assert [g.rule.slug for g in grants] == ["first_step", "completions_5", "streak_3", "score_50", "challenges_2"]

    def test_earned_badges_never_regranted(self):
        stats = LifetimeStats(total_completions=10)
        assert evaluate_badges(CATALOG, stats, [1, 2], [1, 2]) == []

    def test_representative_slots_fill_up_to_four(self):
        stats = LifetimeStats(
            total_completions=5,
            max_streak=3,
            total_score=50,
            total_challenges=2,
            category_completions={"exercise": 3},
        )
        grants = evaluate_badges(CATALOG, stats, [], [])
        assert [g.representative_order for g in grants] == [1, 2, 3, 4, None, None]

    def test_new_badges_append_after_existing_slots(self):
        stats = LifetimeStats(total_completions=5)
        grants = evaluate_badges(CATALOG, stats, [1], [1])
        assert grants[0].representative_order == 2

    def test_gap_in_showcase_uses_lowest_free_slot(self):
        # user kept slots 2 and 3; count + 1 == 3 is taken
        stats = LifetimeStats(total_completions=5)
        grants = evaluate_badges(CATALOG, stats, [1, 3], [2, 3])
        assert grants[0].representative_order == 1

    def test_full_showcase_assigns_no_slot(self):
        stats = LifetimeStats(total_completions=5)
        grants = evaluate_badges(CATALOG, stats, [1, 3, 4, 5], [1, 2, 3, 4])
        assert grants[0].representative_order is None

    def test_custom_slot_count(self):
        stats = LifetimeStats(total_completions=5, max_streak=3)
        grants = evaluate_badges(CATALOG, stats, [], [], max_representative=2)
        assert [g.representative_order for g in grants] == [1, 2, None]

    def test_slot_count_never_exceeds_showcase_size(self):
        stats = LifetimeStats(
            total_completions=5,
            max_streak=3,
            total_score=50,
            total_challenges=2,
            category_completions={"exercise": 3},
        )
        grants = evaluate_badges(CATALOG, stats, [], [], max_representative=6)
        assert [g.representative_order for g in grants] == [1, 2, 3, 4, None, None]
