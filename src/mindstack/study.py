"""Study session controller.

A ``StudyController`` is either idle (``session is None``) or has one
active ``StudySession``. The caller owns the controller and drives it with
``start``, ``advance``, ``review`` and ``end``. In test mode each card also
has a countdown, advanced cooperatively through ``tick``.
"""
import logging
import random

from mindstack.config import settings
from mindstack.flashcards import get_due_cards, record_review
from mindstack.models import STUDY_MODES, Flashcard, StudySession
from mindstack.sm2 import clamp_quality
from mindstack.store import current_time_ms, list_cards

logger = logging.getLogger(__name__)


class CardTimer:
    """Per-card countdown, in seconds. Stopped timers never expire."""

    def __init__(self):
        self.remaining = 0.0
        self.running = False

    def start(self, seconds: float) -> None:
        self.remaining = float(seconds)
        self.running = True

    def cancel(self) -> None:
        self.remaining = 0.0
        self.running = False

    def tick(self, elapsed: float) -> bool:
        """Consume ``elapsed`` seconds. Returns True exactly once, on expiry."""
        if not self.running:
            return False
        self.remaining = max(0.0, self.remaining - elapsed)
        if self.remaining == 0:
            self.running = False
            return True
        return False


def select_cards(db_path: str, deck_id: str, mode: str, rng: random.Random | None = None,
                 limit: int = settings.test_card_limit, now: int | None = None) -> list[Flashcard]:
    """Build the working set of cards for a study mode."""
    if mode == "learn":
        return list_cards(db_path, deck_id)
    if mode == "test":
        cards = list_cards(db_path, deck_id)
        (rng or random).shuffle(cards)
        return cards[:limit]
    if mode == "review":
        return [c for c in get_due_cards(db_path, deck_id, now) if c.difficulty == "hard"]
    raise ValueError(f"Unknown study mode: {mode!r}")


class StudyController:
    def __init__(self, db_path: str, card_time_limit: int = settings.card_time_limit,
                 test_card_limit: int = settings.test_card_limit, rng: random.Random | None = None):
        self.db_path = db_path
        self.card_time_limit = card_time_limit
        self.test_card_limit = test_card_limit
        self.rng = rng or random.Random()
        self.session: StudySession | None = None
        self.timer = CardTimer()

    @property
    def is_active(self) -> bool:
        return self.session is not None

    def start(self, deck_id: str, mode: str, now: int | None = None) -> StudySession:
        """Start a session, replacing any session already in progress."""
        if mode not in STUDY_MODES:
            raise ValueError(f"Unknown study mode: {mode!r}")
        now = current_time_ms() if now is None else now
        if self.session is not None:
            logger.info(f"Replacing active session on deck {self.session.deck_id}")
        cards = select_cards(self.db_path, deck_id, mode, rng=self.rng, limit=self.test_card_limit, now=now)
        self.session = StudySession(deck_id=deck_id, mode=mode, start_time=now, cards=cards)
        self._restart_timer()
        return self.session

    def current_card(self) -> Flashcard | None:
        if self.session is None or self.is_complete():
            return None
        return self.session.cards[self.session.current_index]

    def is_complete(self) -> bool:
        """True once every card has been passed; an empty session is complete at once."""
        return self.session is not None and self.session.current_index >= len(self.session.cards)

    def progress(self) -> tuple[int, int]:
        if self.session is None:
            return 0, 0
        return min(self.session.current_index + 1, len(self.session.cards)), len(self.session.cards)

    def advance(self) -> Flashcard | None:
        """Move to the next card and return it, or None once complete."""
        if self.session is None:
            return None
        if not self.is_complete():
            self.session.current_index += 1
        self._restart_timer()
        return self.current_card()

    def review(self, card_id: str, quality: int, now: int | None = None) -> Flashcard | None:
        """Record a rating for a card in the session without moving on."""
        if self.session is None:
            logger.debug(f"Ignoring review of {card_id}: no active session")
            return None
        current = self.current_card()
        if current is not None and current.id == card_id:
            # a rated card can no longer time out
            self.timer.cancel()
        quality = clamp_quality(quality)
        updated = record_review(self.db_path, card_id, quality, now)
        if updated is not None:
            self.session.cards = [updated if c.id == card_id else c for c in self.session.cards]
        if quality >= 3:
            self.session.score += 1
        return updated

    def tick(self, elapsed: float, now: int | None = None) -> bool:
        """Advance the test-mode countdown; on expiry fail the card and move on."""
        if self.session is None or not self.timer.tick(elapsed):
            return False
        card = self.current_card()
        if card is not None:
            logger.debug(f"Time ran out on card {card.id}")
            self.review(card.id, 0, now)
        self.advance()
        return True

    def end(self) -> None:
        self.timer.cancel()
        self.session = None

    def _restart_timer(self) -> None:
        if self.session is not None and self.session.mode == "test" and not self.is_complete():
            self.timer.start(self.card_time_limit)
        else:
            self.timer.cancel()
