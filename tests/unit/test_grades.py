"""Grade tier boundaries."""

import pytest

from streakup.gamification.grades import Grade, classify_grade


@pytest.mark.parametrize(
    ("badges", "grade"),
    [
        (0, Grade.BRONZE),
        (9, Grade.BRONZE),
        (10, Grade.SILVER),
        (12, Grade.SILVER),
        (19, Grade.SILVER),
        (20, Grade.GOLD),
        (39, Grade.GOLD),
        (40, Grade.DIAMOND),
        (120, Grade.DIAMOND),
    ],
)
def test_classify_grade(badges, grade):
    assert classify_grade(badges) is grade


def test_grade_values_are_stored_strings():
    assert [g.value for g in Grade] == ["bronze", "silver", "gold", "diamond"]
