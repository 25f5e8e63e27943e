"""Flashcard scheduling with SM-2: reviews, due cards and deck statistics."""
import logging
import math
import sqlite3
from dataclasses import replace
from datetime import datetime, timedelta

from mindstack.db import transaction
from mindstack.models import Flashcard
from mindstack.sm2 import DAY_MS, clamp_quality, next_difficulty, sm2_update
from mindstack.store import (
    fetch_all, current_time_ms, get_card_row, list_cards, read_stats, save_card, save_stats,
)

logger = logging.getLogger(__name__)

MASTERED_REPETITIONS = 10
RETENTION_EASE_FACTOR = 2.5
NEW_CARD_SPREAD_DAYS = 7
MINUTES_PER_CARD = 1.5


def _local_midnight_ms(now: int) -> int:
    day_start = datetime.fromtimestamp(now / 1000).replace(hour=0, minute=0, second=0, microsecond=0)
    return int(day_start.timestamp() * 1000)


def is_due(card: Flashcard, now: int | None = None) -> bool:
    if card.next_review is None:
        return True
    return card.next_review <= (current_time_ms() if now is None else now)


def apply_review(card: Flashcard, quality: int, now: int) -> Flashcard:
    """Return a copy of ``card`` rescheduled for a review of the given quality."""
    quality = clamp_quality(quality)
    updated = sm2_update(
        quality=quality,
        repetitions=card.repetitions,
        ease_factor=card.ease_factor,
        interval=card.interval,
    )
    return replace(
        card,
        interval=updated["interval"],
        repetitions=updated["repetitions"],
        ease_factor=updated["ease_factor"],
        last_review=now,
        next_review=now + updated["interval"] * DAY_MS,
        difficulty=next_difficulty(card.difficulty, quality),
    )


def _next_streak(last_studied: int | None, streak: int, now: int) -> int:
    if last_studied is None:
        return 1
    today = datetime.fromtimestamp(now / 1000).date()
    last_day = datetime.fromtimestamp(last_studied / 1000).date()
    if last_day == today:
        return max(streak, 1)
    if last_day == today - timedelta(days=1):
        return streak + 1
    return 1


def record_review(db_path: str, card_id: str, quality: int, now: int | None = None) -> Flashcard | None:
    """Reschedule a card and update deck and user statistics in one transaction.

    Returns the stored card, or ``None`` if the card does not exist or the
    write failed.
    """
    now = current_time_ms() if now is None else now
    quality = clamp_quality(quality)
    try:
        with transaction(db_path) as conn:
            card = get_card_row(conn, card_id)
            if card is None:
                return None
            card = apply_review(card, quality, now)
            save_card(conn, card)
            conn.execute(
                "INSERT INTO review_log (flashcard_id, quality, reviewed_at) VALUES (?, ?, ?)",
                (card_id, quality, now),
            )
            conn.execute(
                "UPDATE decks SET total_reviews = total_reviews + 1, last_studied = ? WHERE id = ?",
                (now, card.deck_id),
            )
            stats = read_stats(conn)
            stats.total_reviews += 1
            if quality >= 3:
                stats.correct_reviews += 1
            stats.streak = _next_streak(stats.last_studied, stats.streak, now)
            stats.last_studied = now
            stats.total_cards = conn.execute("SELECT COUNT(*) FROM flashcards").fetchone()[0]
            stats.total_decks = conn.execute("SELECT COUNT(*) FROM decks").fetchone()[0]
            save_stats(conn, stats)
    except sqlite3.Error:
        logger.exception(f"Failed to record review for card {card_id}")
        return None
    return card


def get_review_history(db_path: str, card_id: str) -> list[dict]:
    rows = fetch_all(
        db_path,
        "SELECT quality, reviewed_at FROM review_log WHERE flashcard_id = ? ORDER BY id",
        (card_id,),
    )
    return [dict(r) for r in rows]


def get_due_cards(db_path: str, deck_id: str, now: int | None = None) -> list[Flashcard]:
    now = current_time_ms() if now is None else now
    return [c for c in list_cards(db_path, deck_id) if is_due(c, now)]


def get_cards_by_difficulty(db_path: str, deck_id: str) -> dict[str, list[Flashcard]]:
    """Group a deck's cards by their declared difficulty tag."""
    groups = {"easy": [], "medium": [], "hard": []}
    for card in list_cards(db_path, deck_id):
        groups.setdefault(card.difficulty, []).append(card)
    return groups


def get_deck_stats(db_path: str, deck_id: str, now: int | None = None) -> dict:
    now = current_time_ms() if now is None else now
    cards = list_cards(db_path, deck_id)
    midnight = _local_midnight_ms(now)
    return {
        "total_cards": len(cards),
        "new_cards": sum(1 for c in cards if c.last_review is None),
        "due_cards": sum(1 for c in cards if is_due(c, now)),
        "reviewed_today": sum(1 for c in cards if c.last_review is not None and c.last_review >= midnight),
        "mastered_cards": sum(
            1 for c in cards
            if c.repetitions >= MASTERED_REPETITIONS and c.ease_factor > RETENTION_EASE_FACTOR
        ),
    }


def get_retention_rate(db_path: str, deck_id: str) -> int:
    """Percentage of cards whose ease factor is at least the starting 2.5."""
    cards = list_cards(db_path, deck_id)
    if not cards:
        return 0
    retained = sum(1 for c in cards if c.ease_factor >= RETENTION_EASE_FACTOR)
    return math.floor(retained / len(cards) * 100 + 0.5)


def get_optimal_study_order(db_path: str, deck_id: str) -> list[Flashcard]:
    """Interleave hard, medium and easy cards round-robin, hardest first."""
    groups = get_cards_by_difficulty(db_path, deck_id)
    hard, medium, easy = groups["hard"], groups["medium"], groups["easy"]
    order = []
    for i in range(max(len(hard), len(medium), len(easy))):
        for group in (hard, medium, easy):
            if i < len(group):
                order.append(group[i])
    return order


def get_daily_goal(db_path: str, deck_id: str, now: int | None = None) -> dict:
    stats = get_deck_stats(db_path, deck_id, now)
    new_cards_goal = math.ceil(stats["new_cards"] / NEW_CARD_SPREAD_DAYS)
    minutes = (new_cards_goal + stats["due_cards"]) * MINUTES_PER_CARD
    return {
        "new_cards_today": max(0, new_cards_goal - stats["reviewed_today"]),
        "reviews_needed": stats["due_cards"],
        "estimated_minutes": math.floor(minutes + 0.5),
    }
