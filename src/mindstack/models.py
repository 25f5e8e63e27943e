"""Data classes for decks, flashcards, statistics and study sessions."""
from dataclasses import dataclass, field, fields
from typing import Optional

DIFFICULTIES = ("easy", "medium", "hard")
STUDY_MODES = ("learn", "test", "review")

# Python attribute -> snapshot (JSON) key
DECK_WIRE_NAMES = {
    "id": "id",
    "name": "name",
    "description": "description",
    "subject": "subject",
    "created": "created",
    "card_count": "cardCount",
    "last_studied": "lastStudied",
    "total_reviews": "totalReviews",
}

FLASHCARD_WIRE_NAMES = {
    "id": "id",
    "deck_id": "deckId",
    "question": "question",
    "answer": "answer",
    "difficulty": "difficulty",
    "created": "created",
    "last_review": "lastReview",
    "next_review": "nextReview",
    "interval": "interval",
    "ease_factor": "easeFactor",
    "repetitions": "repetitions",
}

STATS_WIRE_NAMES = {
    "total_cards": "totalCards",
    "total_decks": "totalDecks",
    "total_reviews": "totalReviews",
    "correct_reviews": "correctReviews",
    "last_studied": "lastStudied",
    "streak": "streak",
}


def _to_wire(obj, names: dict) -> dict:
    # Absent optional values are omitted rather than written as null.
    return {wire: getattr(obj, attr) for attr, wire in names.items() if getattr(obj, attr) is not None}


def _from_wire(cls, data: dict, names: dict):
    kwargs = {attr: data[wire] for attr, wire in names.items() if wire in data and data[wire] is not None}
    return cls(**kwargs)


def _from_row(cls, row):
    keys = row.keys()
    return cls(**{f.name: row[f.name] for f in fields(cls) if f.name in keys})


@dataclass
class Deck:
    id: str
    name: str
    created: int
    description: str = ""
    subject: str = ""
    card_count: int = 0
    last_studied: Optional[int] = None
    total_reviews: int = 0

    @classmethod
    def from_row(cls, row) -> "Deck":
        return _from_row(cls, row)

    @classmethod
    def from_dict(cls, data: dict) -> "Deck":
        return _from_wire(cls, data, DECK_WIRE_NAMES)

    def to_dict(self) -> dict:
        return _to_wire(self, DECK_WIRE_NAMES)


@dataclass
class Flashcard:
    id: str
    deck_id: str
    question: str
    answer: str
    created: int
    difficulty: str = "medium"
    last_review: Optional[int] = None
    next_review: Optional[int] = None
    interval: int = 1
    ease_factor: float = 2.5
    repetitions: int = 0

    @property
    def is_new(self) -> bool:
        return self.last_review is None

    @classmethod
    def from_row(cls, row) -> "Flashcard":
        return _from_row(cls, row)

    @classmethod
    def from_dict(cls, data: dict) -> "Flashcard":
        return _from_wire(cls, data, FLASHCARD_WIRE_NAMES)

    def to_dict(self) -> dict:
        return _to_wire(self, FLASHCARD_WIRE_NAMES)


@dataclass
class UserStats:
    total_cards: int = 0
    total_decks: int = 0
    total_reviews: int = 0
    correct_reviews: int = 0
    last_studied: Optional[int] = None
    streak: int = 0

    @classmethod
    def from_row(cls, row) -> "UserStats":
        return _from_row(cls, row)

    @classmethod
    def from_dict(cls, data: dict) -> "UserStats":
        return _from_wire(cls, data, STATS_WIRE_NAMES)

    def to_dict(self) -> dict:
        return _to_wire(self, STATS_WIRE_NAMES)


@dataclass
class StudySession:
    """Transient state of one study session. Never persisted."""

    deck_id: str
    mode: str
    start_time: int
    cards: list[Flashcard] = field(default_factory=list)
    current_index: int = 0
    score: int = 0
