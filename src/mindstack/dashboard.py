"""Overview figures and labels for the stats screen."""
from mindstack.flashcards import get_daily_goal, get_deck_stats, get_retention_rate
from mindstack.models import UserStats
from mindstack.store import get_stats, list_decks


def get_retention_label(score: float) -> str:
    if score >= 80:
        return "STRONG"
    elif score >= 60:
        return "STEADY"
    elif score >= 40:
        return "SHAKY"
    return "WEAK"


def get_retention_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 60:
        return "yellow"
    elif score >= 40:
        return "dark_orange"
    return "red"


def get_accuracy(stats: UserStats) -> float:
    """Share of all reviews rated 3 or better, as a percentage."""
    if not stats.total_reviews:
        return 0.0
    return round(stats.correct_reviews / stats.total_reviews * 100, 1)


def get_deck_overview(db_path: str, now: int | None = None) -> list[dict]:
    results = []
    for deck in list_decks(db_path):
        retention = get_retention_rate(db_path, deck.id)
        results.append({
            "deck": deck,
            "stats": get_deck_stats(db_path, deck.id, now),
            "goal": get_daily_goal(db_path, deck.id, now),
            "retention": retention,
            "label": get_retention_label(retention),
        })
    return results


def get_study_stats(db_path: str) -> dict:
    stats = get_stats(db_path)
    return {
        "total_reviews": stats.total_reviews,
        "correct_reviews": stats.correct_reviews,
        "accuracy": get_accuracy(stats),
        "streak": stats.streak,
        "decks": len(list_decks(db_path)),
    }
