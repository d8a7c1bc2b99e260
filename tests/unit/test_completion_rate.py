"""Challenge completion-rate arithmetic."""

from datetime import datetime, timezone
from types import SimpleNamespace

from streakup.challenges.completion_rate import compute_completion_rate, possible_days, round_half_up

NOW = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)


def _record(start: datetime, completions: int) -> SimpleNamespace:
    return SimpleNamespace(start_date=start, total_completions=completions)


class TestRoundHalfUp:
    def test_half_rounds_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(66.5) == 67

    def test_below_half_rounds_down(self):
        assert round_half_up(66.49) == 66


class TestPossibleDays:
    def test_join_day_counts_as_one(self):
        assert possible_days(NOW, NOW) == 1

    def test_includes_join_day(self):
        assert possible_days(datetime(2026, 3, 29, 12, 0, tzinfo=timezone.utc), NOW) == 3

    def test_capped(self):
        assert possible_days(datetime(2025, 1, 1, tzinfo=timezone.utc), NOW) == 30
        assert possible_days(datetime(2025, 1, 1, tzinfo=timezone.utc), NOW, max_days=7) == 7


class TestComputeCompletionRate:
    def test_no_participants_is_zero(self):
        assert compute_completion_rate([], NOW) == 0

    def test_single_participant(self):
        # joined 3 days ago (4 possible days), completed 3
        record = _record(datetime(2026, 3, 28, 12, 0, tzinfo=timezone.utc), 3)
        assert compute_completion_rate([record], NOW) == 75

    def test_pools_numerators_and_denominators(self):
        records = [
            _record(datetime(2026, 3, 31, 8, 0, tzinfo=timezone.utc), 1),  # 1 of 1
            _record(datetime(2026, 3, 22, 12, 0, tzinfo=timezone.utc), 2),  # 2 of 10
        ]
        assert compute_completion_rate(records, NOW) == 27  # 300 / 11 = 27.27

    def test_clamped_to_one_hundred(self):
        record = _record(NOW, 3)
        assert compute_completion_rate([record], NOW) == 100

    def test_long_running_participant_uses_capped_denominator(self):
        record = _record(datetime(2025, 6, 1, tzinfo=timezone.utc), 15)
        assert compute_completion_rate([record], NOW) == 50
        assert compute_completion_rate([record], NOW, max_days=60) == 25
