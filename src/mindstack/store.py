"""Record store for decks, flashcards and user statistics.

Reads never raise: unreadable or missing storage is reported as "no data
yet". Writes run in a single transaction and report failure through a
``None``/``False`` result instead of raising.
"""
import logging
import random
import sqlite3
import string
import time

from mindstack.db import SCHEMA_VERSION, get_connection, transaction
from mindstack.models import DIFFICULTIES, Deck, Flashcard, UserStats

logger = logging.getLogger(__name__)

DECK_FIELDS = ("name", "description", "subject", "created", "last_studied", "total_reviews")
CARD_FIELDS = (
    "deck_id", "question", "answer", "difficulty", "created", "last_review",
    "next_review", "interval", "ease_factor", "repetitions",
)
STATS_FIELDS = ("total_cards", "total_decks", "total_reviews", "correct_reviews", "last_studied", "streak")


def current_time_ms() -> int:
    return int(time.time() * 1000)


def generate_id() -> str:
    """Timestamp plus a random base-36 suffix; unique enough for one user's data."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{current_time_ms()}-{suffix}"


def fetch_all(db_path: str, query: str, params: tuple = ()) -> list:
    try:
        conn = get_connection(db_path)
        try:
            return conn.execute(query, params).fetchall()
        finally:
            conn.close()
    except sqlite3.DatabaseError as e:
        logger.warning(f"Could not read from {db_path}: {e}")
        return []


def fetch_one(db_path: str, query: str, params: tuple = ()):
    rows = fetch_all(db_path, query, params)
    return rows[0] if rows else None


def _check_fields(fields: dict, allowed: tuple) -> None:
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")


def _check_card_fields(fields: dict) -> None:
    if "difficulty" in fields and fields["difficulty"] not in DIFFICULTIES:
        raise ValueError(f"Unknown difficulty: {fields['difficulty']!r}")
    for name in ("interval", "ease_factor", "repetitions"):
        if name in fields and fields[name] is None:
            raise ValueError(f"{name} cannot be empty")
    if "interval" in fields and fields["interval"] < 1:
        raise ValueError("interval must be at least 1")
    if "ease_factor" in fields and fields["ease_factor"] < 1.3:
        raise ValueError("ease_factor must be at least 1.3")
    if "repetitions" in fields and fields["repetitions"] < 0:
        raise ValueError("repetitions must not be negative")


def _set_fields(conn: sqlite3.Connection, table: str, row_id, fields: dict) -> None:
    # Column names come from the *_FIELDS whitelists, never from callers.
    assignments = ", ".join(f"{name} = ?" for name in fields)
    conn.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", (*fields.values(), row_id))


def _insert_deck(conn: sqlite3.Connection, deck: Deck) -> None:
    conn.execute(
        """INSERT INTO decks (id, name, description, subject, created, card_count, last_studied, total_reviews)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (deck.id, deck.name, deck.description, deck.subject, deck.created,
         deck.card_count, deck.last_studied, deck.total_reviews),
    )


def _insert_card(conn: sqlite3.Connection, card: Flashcard) -> None:
    conn.execute(
        """INSERT INTO flashcards
        (id, deck_id, question, answer, difficulty, created, last_review, next_review,
         interval, ease_factor, repetitions)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (card.id, card.deck_id, card.question, card.answer, card.difficulty, card.created,
         card.last_review, card.next_review, card.interval, card.ease_factor, card.repetitions),
    )


def _adjust_card_count(conn: sqlite3.Connection, deck_id: str, delta: int) -> None:
    cursor = conn.execute(
        "UPDATE decks SET card_count = MAX(card_count + ?, 0) WHERE id = ?", (delta, deck_id)
    )
    if cursor.rowcount == 0:
        logger.debug(f"Deck {deck_id} not found; card count left unchanged")


def get_card_row(conn: sqlite3.Connection, card_id: str) -> Flashcard | None:
    row = conn.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,)).fetchone()
    return Flashcard.from_row(row) if row else None


def save_card(conn: sqlite3.Connection, card: Flashcard) -> None:
    """Write every scheduling-relevant field of ``card`` back to its row."""
    _set_fields(conn, "flashcards", card.id, {name: getattr(card, name) for name in CARD_FIELDS})


def read_stats(conn: sqlite3.Connection) -> UserStats:
    row = conn.execute("SELECT * FROM user_stats WHERE id = 1").fetchone()
    return UserStats.from_row(row) if row else UserStats()


def save_stats(conn: sqlite3.Connection, stats: UserStats) -> None:
    values = [getattr(stats, name) for name in STATS_FIELDS]
    assignments = ", ".join(f"{name} = excluded.{name}" for name in STATS_FIELDS)
    conn.execute(
        f"""INSERT INTO user_stats (id, {', '.join(STATS_FIELDS)}) VALUES (1, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET {assignments}""",
        values,
    )


# --- Decks ---


def list_decks(db_path: str) -> list[Deck]:
    rows = fetch_all(db_path, "SELECT * FROM decks ORDER BY rowid")
    return [Deck.from_row(r) for r in rows]


def get_deck(db_path: str, deck_id: str) -> Deck | None:
    row = fetch_one(db_path, "SELECT * FROM decks WHERE id = ?", (deck_id,))
    return Deck.from_row(row) if row else None


def create_deck(db_path: str, name: str, description: str = "", subject: str = "") -> Deck | None:
    deck = Deck(id=generate_id(), name=name, description=description, subject=subject,
                created=current_time_ms())
    try:
        with transaction(db_path) as conn:
            _insert_deck(conn, deck)
    except sqlite3.Error:
        logger.exception(f"Failed to create deck {name!r}")
        return None
    return deck


def update_deck(db_path: str, deck_id: str, **fields) -> Deck | None:
    """Merge ``fields`` into a deck. Unknown ids are left alone and give ``None``."""
    _check_fields(fields, DECK_FIELDS)
    try:
        with transaction(db_path) as conn:
            row = conn.execute("SELECT * FROM decks WHERE id = ?", (deck_id,)).fetchone()
            if row is None:
                return None
            if fields:
                _set_fields(conn, "decks", deck_id, fields)
            row = conn.execute("SELECT * FROM decks WHERE id = ?", (deck_id,)).fetchone()
    except sqlite3.Error:
        logger.exception(f"Failed to update deck {deck_id}")
        return None
    return Deck.from_row(row)


def delete_deck(db_path: str, deck_id: str) -> bool:
    """Delete a deck together with all of its cards."""
    try:
        with transaction(db_path) as conn:
            conn.execute("DELETE FROM flashcards WHERE deck_id = ?", (deck_id,))
            conn.execute("DELETE FROM decks WHERE id = ?", (deck_id,))
    except sqlite3.Error:
        logger.exception(f"Failed to delete deck {deck_id}")
        return False
    return True


# --- Flashcards ---


def list_cards(db_path: str, deck_id: str | None = None) -> list[Flashcard]:
    if deck_id is None:
        rows = fetch_all(db_path, "SELECT * FROM flashcards ORDER BY rowid")
    else:
        rows = fetch_all(db_path, "SELECT * FROM flashcards WHERE deck_id = ? ORDER BY rowid", (deck_id,))
    return [Flashcard.from_row(r) for r in rows]


def get_card(db_path: str, card_id: str) -> Flashcard | None:
    row = fetch_one(db_path, "SELECT * FROM flashcards WHERE id = ?", (card_id,))
    return Flashcard.from_row(row) if row else None


def create_card(
    db_path: str,
    deck_id: str,
    question: str,
    answer: str,
    difficulty: str = "medium",
) -> Flashcard | None:
    """Add a card and bump its deck's card count.

    The card is stored even if ``deck_id`` does not name an existing deck;
    in that case no count changes.
    """
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"Unknown difficulty: {difficulty!r}")
    card = Flashcard(id=generate_id(), deck_id=deck_id, question=question, answer=answer,
                     difficulty=difficulty, created=current_time_ms())
    try:
        with transaction(db_path) as conn:
            _insert_card(conn, card)
            _adjust_card_count(conn, deck_id, 1)
    except sqlite3.Error:
        logger.exception(f"Failed to create card in deck {deck_id}")
        return None
    return card


def update_card(db_path: str, card_id: str, **fields) -> Flashcard | None:
    _check_fields(fields, CARD_FIELDS)
    _check_card_fields(fields)
    try:
        with transaction(db_path) as conn:
            card = get_card_row(conn, card_id)
            if card is None:
                return None
            if fields:
                _set_fields(conn, "flashcards", card_id, fields)
            new_deck = fields.get("deck_id", card.deck_id)
            if new_deck != card.deck_id:
                _adjust_card_count(conn, card.deck_id, -1)
                _adjust_card_count(conn, new_deck, 1)
            card = get_card_row(conn, card_id)
    except sqlite3.Error:
        logger.exception(f"Failed to update card {card_id}")
        return None
    return card


def delete_card(db_path: str, card_id: str) -> bool:
    try:
        with transaction(db_path) as conn:
            card = get_card_row(conn, card_id)
            if card is None:
                return False
            conn.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
            _adjust_card_count(conn, card.deck_id, -1)
    except sqlite3.Error:
        logger.exception(f"Failed to delete card {card_id}")
        return False
    return True


def delete_all_cards_in_deck(db_path: str, deck_id: str) -> bool:
    """Remove every card in a deck. Returns True if any card was deleted."""
    try:
        with transaction(db_path) as conn:
            deleted = conn.execute("DELETE FROM flashcards WHERE deck_id = ?", (deck_id,)).rowcount
            conn.execute("UPDATE decks SET card_count = 0 WHERE id = ?", (deck_id,))
    except sqlite3.Error:
        logger.exception(f"Failed to clear deck {deck_id}")
        return False
    return deleted > 0


# --- Statistics ---


def get_stats(db_path: str) -> UserStats:
    row = fetch_one(db_path, "SELECT * FROM user_stats WHERE id = 1")
    return UserStats.from_row(row) if row else UserStats()


def update_stats(db_path: str, **fields) -> UserStats | None:
    _check_fields(fields, STATS_FIELDS)
    try:
        with transaction(db_path) as conn:
            stats = read_stats(conn)
            for name, value in fields.items():
                setattr(stats, name, value)
            save_stats(conn, stats)
    except sqlite3.Error:
        logger.exception("Failed to update statistics")
        return None
    return stats


# --- Snapshots ---


def export_snapshot(db_path: str) -> dict:
    return {
        "version": SCHEMA_VERSION,
        "decks": [d.to_dict() for d in list_decks(db_path)],
        "flashcards": [c.to_dict() for c in list_cards(db_path)],
        "stats": get_stats(db_path).to_dict(),
        "exportedAt": current_time_ms(),
    }


def import_snapshot(db_path: str, data: dict) -> bool:
    """Replace each collection present in ``data``; omitted ones are untouched."""
    if not isinstance(data, dict):
        logger.error(f"Malformed snapshot: expected an object, got {type(data).__name__}")
        return False
    version = data.get("version", SCHEMA_VERSION)
    if isinstance(version, bool) or not isinstance(version, int):
        logger.error(f"Malformed snapshot: version {version!r} is not an integer")
        return False
    if version > SCHEMA_VERSION:
        logger.error(f"Snapshot version {version} is newer than supported version {SCHEMA_VERSION}")
        return False
    try:
        decks = [Deck.from_dict(d) for d in data["decks"]] if "decks" in data else None
        cards = [Flashcard.from_dict(c) for c in data["flashcards"]] if "flashcards" in data else None
        stats = UserStats.from_dict(data["stats"]) if "stats" in data else None
    except (KeyError, TypeError) as e:
        logger.error(f"Malformed snapshot: {e}")
        return False
    try:
        with transaction(db_path) as conn:
            if decks is not None:
                conn.execute("DELETE FROM decks")
                for deck in decks:
                    _insert_deck(conn, deck)
            if cards is not None:
                conn.execute("DELETE FROM flashcards")
                for card in cards:
                    _insert_card(conn, card)
            if stats is not None:
                conn.execute("DELETE FROM user_stats")
                save_stats(conn, stats)
    except sqlite3.Error:
        logger.exception("Failed to import snapshot")
        return False
    return True


def wipe_all(db_path: str) -> bool:
    try:
        with transaction(db_path) as conn:
            conn.execute("DELETE FROM flashcards")
            conn.execute("DELETE FROM decks")
            conn.execute("DELETE FROM user_stats")
    except sqlite3.Error:
        logger.exception("Failed to wipe data")
        return False
    return True
