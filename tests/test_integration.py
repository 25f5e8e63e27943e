# tests/test_integration.py
"""End-to-end test of the core workflow."""
from mindstack.db import init_db
from mindstack.flashcards import get_daily_goal, get_deck_stats, get_due_cards, get_optimal_study_order
from mindstack.store import (
    create_card, create_deck, delete_deck, export_snapshot, get_deck, get_stats, list_cards,
)
from mindstack.study import StudyController

NOW = 1_770_000_000_000


def test_full_study_workflow(tmp_db):
    """Build a deck, study it, and verify scheduling, stats and cleanup together."""
    init_db(tmp_db)
    deck = create_deck(tmp_db, "Spanish", "Everyday words", "languages")
    for question, answer, difficulty in [
        ("hola", "hello", "easy"),
        ("gato", "cat", "medium"),
        ("perro", "dog", "hard"),
        ("ventana", "window", "hard"),
    ]:
        create_card(tmp_db, deck.id, question, answer, difficulty)
    assert get_deck(tmp_db, deck.id).card_count == 4
    order = [c.question for c in get_optimal_study_order(tmp_db, deck.id)]
    assert order == ["perro", "gato", "hola", "ventana"]

    controller = StudyController(tmp_db)
    controller.start(deck.id, "learn", now=NOW)
    ratings = [5, 4, 1, 3]
    while not controller.is_complete():
        card = controller.current_card()
        controller.review(card.id, ratings[controller.session.current_index], now=NOW)
        controller.advance()
    assert controller.session.score == 3
    controller.end()

    # Everything was just reviewed, so nothing is due until tomorrow.
    assert get_due_cards(tmp_db, deck.id, now=NOW + 1) == []
    stats = get_deck_stats(tmp_db, deck.id, now=NOW + 1)
    assert stats["new_cards"] == 0
    assert stats["reviewed_today"] == 4
    assert get_daily_goal(tmp_db, deck.id, now=NOW + 1)["new_cards_today"] == 0

    user = get_stats(tmp_db)
    assert user.total_reviews == 4
    assert user.correct_reviews == 3
    assert get_deck(tmp_db, deck.id).total_reviews == 4

    # Tomorrow a review session picks up only the cards tagged hard.
    review = controller.start(deck.id, "review", now=NOW + 86_400_000)
    assert [c.question for c in review.cards] == ["perro", "ventana"]

    snapshot = export_snapshot(tmp_db)
    assert len(snapshot["flashcards"]) == 4

    delete_deck(tmp_db, deck.id)
    assert list_cards(tmp_db) == []
