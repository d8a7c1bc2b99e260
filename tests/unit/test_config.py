"""Settings validation."""

import pytest
from pydantic import ValidationError

from streakup.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.completion_rate_max_days == 30
    assert settings.representative_badge_slots == 4


@pytest.mark.parametrize("slots", [-1, 5])
def test_showcase_slots_bounded(slots):
    with pytest.raises(ValidationError):
        Settings(representative_badge_slots=slots)


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("STREAKUP_REPRESENTATIVE_BADGE_SLOTS", "2")
    assert Settings().representative_badge_slots == 2
