"""Calendar-day, streak and trust-score arithmetic."""

from datetime import date, datetime, timedelta, timezone

import pytest

from streakup.progress.streaks import (
    TRUST_SCORE_CAP,
    capped_trust_score,
    days_since,
    next_streak,
    personal_completion_rate,
    trust_score_increase,
    utc_today,
)


class TestUtcToday:
    def test_truncates_time_of_day(self):
        assert utc_today(datetime(2026, 3, 5, 23, 59, 59, tzinfo=timezone.utc)) == date(2026, 3, 5)

    def test_converts_other_timezones_to_utc(self):
        """01:00 in UTC+9 is still the previous day in UTC."""
        kst = timezone(timedelta(hours=9))
        assert utc_today(datetime(2026, 3, 6, 1, 0, tzinfo=kst)) == date(2026, 3, 5)

    def test_naive_datetimes_are_utc(self):
        assert utc_today(datetime(2026, 3, 5, 0, 0)) == date(2026, 3, 5)


class TestDaysSince:
    def test_floor_of_elapsed_days(self):
        start = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert days_since(start, datetime(2026, 3, 2, 11, 59, tzinfo=timezone.utc)) == 0
        assert days_since(start, datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)) == 1
        assert days_since(start, datetime(2026, 3, 11, 0, 0, tzinfo=timezone.utc)) == 9

    def test_never_negative(self):
        start = datetime(2026, 3, 5, tzinfo=timezone.utc)
        assert days_since(start, datetime(2026, 3, 1, tzinfo=timezone.utc)) == 0


class TestNextStreak:
    def test_first_completion_starts_at_one(self):
        assert next_streak([], date(2026, 3, 1), 0) == 1

    def test_consecutive_days_count_up(self):
        days = [date(2026, 3, 1)]
        assert next_streak(days, date(2026, 3, 2), 1) == 2
        days.append(date(2026, 3, 2))
        assert next_streak(days, date(2026, 3, 3), 2) == 3

    def test_gap_resets_to_one(self):
        days = [date(2026, 3, 1), date(2026, 3, 2)]
        assert next_streak(days, date(2026, 3, 4), 2) == 1

    def test_month_boundary(self):
        assert next_streak([date(2026, 2, 28)], date(2026, 3, 1), 5) == 6


class TestTrustScore:
    @pytest.mark.parametrize(
        ("streak", "expected"),
        [(0, 1.0), (1, 1.0), (2, 1.0), (3, 2.0), (6, 2.0), (7, 2.5), (9, 2.5), (10, 3.0), (50, 3.0)],
    )
    def test_only_the_highest_bonus_applies(self, streak, expected):
        assert trust_score_increase(streak) == expected

    def test_cap_at_one_hundred(self):
        assert capped_trust_score(99.0, trust_score_increase(10)) == TRUST_SCORE_CAP

    def test_below_cap_adds_fully(self):
        assert capped_trust_score(40.0, 2.5) == 42.5

    def test_already_at_cap(self):
        assert capped_trust_score(100.0, 1.0) == 100.0


class TestPersonalCompletionRate:
    def test_zero_on_join_day(self):
        start = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert personal_completion_rate(1, start, datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)) == 0.0

    def test_rounded_to_two_decimals(self):
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert personal_completion_rate(2, start, datetime(2026, 3, 4, tzinfo=timezone.utc)) == 66.67

    def test_capped_at_one_hundred(self):
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert personal_completion_rate(5, start, datetime(2026, 3, 3, tzinfo=timezone.utc)) == 100.0
