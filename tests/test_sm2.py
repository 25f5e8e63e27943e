# tests/test_sm2.py
import random

import pytest

from mindstack.sm2 import clamp_quality, next_difficulty, sm2_update


def test_sm2_first_review_correct():
    """First correct answer: interval=1, repetitions=1."""
    result = sm2_update(quality=4, repetitions=0, ease_factor=2.5, interval=1)
    assert result["interval"] == 1
    assert result["repetitions"] == 1
    assert result["ease_factor"] == pytest.approx(2.5)


def test_sm2_second_review_correct():
    """Second correct answer: interval=3 regardless of the old interval."""
    result = sm2_update(quality=4, repetitions=1, ease_factor=2.5, interval=17)
    assert result["interval"] == 3
    assert result["repetitions"] == 2


def test_sm2_third_review_uses_current_ease():
    """Third+ correct: interval = round(old_interval * ease_factor)."""
    result = sm2_update(quality=4, repetitions=2, ease_factor=2.6, interval=3)
    assert result["interval"] == 8  # round(3 * 2.6)
    assert result["repetitions"] == 3


def test_sm2_rounds_half_up():
    result = sm2_update(quality=4, repetitions=2, ease_factor=2.5, interval=3)
    assert result["interval"] == 8  # 7.5


def test_sm2_incorrect_resets():
    """Quality < 3 resets repetitions and interval and costs 0.2 ease."""
    result = sm2_update(quality=1, repetitions=5, ease_factor=2.0, interval=10)
    assert result["repetitions"] == 0
    assert result["interval"] == 1
    assert result["ease_factor"] == pytest.approx(1.8)


def test_sm2_ease_factor_minimum():
    """Ease factor never drops below 1.3."""
    assert sm2_update(quality=0, repetitions=0, ease_factor=1.3, interval=1)["ease_factor"] == 1.3
    assert sm2_update(quality=2, repetitions=3, ease_factor=1.4, interval=9)["ease_factor"] == 1.3
    assert sm2_update(quality=3, repetitions=3, ease_factor=1.3, interval=9)["ease_factor"] == 1.3


def test_sm2_easy_increases_ease():
    """Quality 5 increases ease factor."""
    result = sm2_update(quality=5, repetitions=2, ease_factor=2.5, interval=3)
    assert result["ease_factor"] == pytest.approx(2.6)


def test_sm2_quality_is_clamped():
    high = sm2_update(quality=9, repetitions=0, ease_factor=2.5, interval=1)
    assert high == sm2_update(quality=5, repetitions=0, ease_factor=2.5, interval=1)
    low = sm2_update(quality=-4, repetitions=4, ease_factor=2.5, interval=20)
    assert low["repetitions"] == 0
    assert low["ease_factor"] == pytest.approx(2.3)


def test_sm2_ease_floor_holds_for_any_sequence():
    rng = random.Random(7)
    state = {"interval": 1, "repetitions": 0, "ease_factor": 2.5}
    for _ in range(500):
        state = sm2_update(quality=rng.randint(-2, 7), **state)
        assert state["ease_factor"] >= 1.3
        assert state["interval"] >= 1
        assert state["repetitions"] >= 0


def test_clamp_quality():
    assert clamp_quality(-1) == 0
    assert clamp_quality(3) == 3
    assert clamp_quality(12) == 5


@pytest.mark.parametrize("current,quality,expected", [
    ("easy", 0, "hard"),
    ("medium", 2, "hard"),
    ("hard", 3, "hard"),
    ("easy", 3, "easy"),
    ("hard", 4, "medium"),
    ("medium", 5, "medium"),
    ("easy", 5, "easy"),
])
def test_next_difficulty(current, quality, expected):
    assert next_difficulty(current, quality) == expected
