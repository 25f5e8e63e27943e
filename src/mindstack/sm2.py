"""SM-2 spaced repetition algorithm."""
import math

MIN_EASE_FACTOR = 1.3
FAILURE_EASE_PENALTY = 0.2
DAY_MS = 24 * 60 * 60 * 1000


def clamp_quality(quality: int) -> int:
    return max(0, min(5, int(quality)))


def sm2_update(
    quality: int,
    repetitions: int,
    ease_factor: float,
    interval: int,
) -> dict:
    """Calculate next review parameters using SM-2.

    Args:
        quality: Rating 0-5 (0=complete blackout, 5=perfect), clamped first
        repetitions: Number of consecutive correct reviews
        ease_factor: Current ease factor (minimum 1.3)
        interval: Current interval in days

    Returns:
        Dict with updated interval, repetitions, ease_factor.
    """
    quality = clamp_quality(quality)

    if quality < 3:
        # Incorrect: reset and penalise ease
        return {
            "interval": 1,
            "repetitions": 0,
            "ease_factor": max(MIN_EASE_FACTOR, ease_factor - FAILURE_EASE_PENALTY),
        }

    new_repetitions = repetitions + 1
    if new_repetitions == 1:
        new_interval = 1
    elif new_repetitions == 2:
        new_interval = 3
    else:
        new_interval = math.floor(interval * ease_factor + 0.5)  # round half up

    new_ef = ease_factor + 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
    return {
        "interval": max(1, new_interval),
        "repetitions": new_repetitions,
        "ease_factor": max(MIN_EASE_FACTOR, new_ef),
    }


def next_difficulty(current: str, quality: int) -> str:
    """Display-only difficulty tag after a review of the given quality."""
    quality = clamp_quality(quality)
    if quality <= 2:
        return "hard"
    if quality >= 4:
        return "easy" if current == "easy" else "medium"
    return current
