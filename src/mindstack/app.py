"""Interactive CLI application."""
import json
import logging
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from mindstack.config import settings
from mindstack.dashboard import get_deck_overview, get_retention_color, get_study_stats
from mindstack.db import init_db
from mindstack.flashcards import get_optimal_study_order, is_due
from mindstack.models import DIFFICULTIES, STUDY_MODES
from mindstack.store import (
    create_card, create_deck, delete_deck, export_snapshot, import_snapshot, list_decks,
)
from mindstack.study import StudyController

console = Console()

EXIT_WORDS = ("q", "menu")
RATING_CHOICES = ["0", "1", "2", "3", "4", "5"]


class SessionExitRequested(Exception):
    """Raised when the learner asks to leave a study session early."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    answer = session_prompt(f"{prompt} [{'/'.join(choices)}]", choices=choices + list(EXIT_WORDS),
                            show_choices=False)
    return int(answer)


def show_welcome():
    console.print(Panel(
        "[bold]MindStack[/bold]\n[dim]Spaced repetition flashcards[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("decks", "List decks with due cards and goals"),
        ("cards", "List a deck's cards, hardest first"),
        ("new", "Create a deck"),
        ("add", "Add a card to a deck"),
        ("study", "Study a deck (learn / test / review)"),
        ("delete", "Delete a deck and its cards"),
        ("stats", "Overall review statistics"),
        ("export", "Save a snapshot to a JSON file"),
        ("import", "Load a snapshot from a JSON file"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def choose_deck(db_path: str) -> str | None:
    decks = list_decks(db_path)
    if not decks:
        console.print("[yellow]No decks yet. Use 'new' to create one.[/yellow]")
        return None
    for i, deck in enumerate(decks, 1):
        console.print(f"  [cyan]{i}[/cyan]) {deck.name} [dim]({deck.card_count} cards)[/dim]")
    index = Prompt.ask("Select deck", choices=[str(i) for i in range(1, len(decks) + 1)])
    return decks[int(index) - 1].id


def run_study_session(controller: StudyController, deck_id: str, mode: str, clock=time.monotonic) -> tuple[int, int]:
    """Walk the learner through a session. Returns (score, cards in session)."""
    session = controller.start(deck_id, mode)
    try:
        if not session.cards:
            console.print("[yellow]No cards to study right now![/yellow]")
            return 0, 0
        console.print(f"\n[bold]{mode.title()} Session[/bold] ({len(session.cards)} cards)\n")
        while not controller.is_complete():
            card = controller.current_card()
            position, total = controller.progress()
            title = f"Card {position}/{total}"
            if mode == "test":
                title += f" - {controller.card_time_limit}s"
            console.print(Panel(card.question, title=title, border_style="cyan"))
            shown_at = clock()
            session_prompt("[dim]Press Enter to reveal answer[/dim]", default="", show_default=False)
            if controller.tick(clock() - shown_at):
                console.print(f"[red]Time's up![/red] Answer: [green]{card.answer}[/green]\n")
                continue
            console.print(Panel(card.answer, border_style="green"))
            rating = session_int_prompt("Rate yourself (0=forgot, 3=hard, 4=good, 5=easy)", RATING_CHOICES)
            controller.review(card.id, rating)
            controller.advance()
            console.print()
        score, total = controller.session.score, len(session.cards)
        console.print(f"[bold]Score: {score}/{total} ({score / total * 100:.0f}%)[/bold]\n")
        return score, total
    finally:
        controller.end()


def cmd_decks(db_path: str):
    overview = get_deck_overview(db_path)
    if not overview:
        console.print("[yellow]No decks yet. Use 'new' to create one.[/yellow]")
        return
    table = Table(title="Decks")
    table.add_column("Deck", style="cyan")
    table.add_column("Cards", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Due", justify="right")
    table.add_column("Mastered", justify="right")
    table.add_column("Retention", justify="right")
    table.add_column("Today's goal")
    for item in overview:
        stats, goal = item["stats"], item["goal"]
        color = get_retention_color(item["retention"])
        table.add_row(
            item["deck"].name,
            str(stats["total_cards"]),
            str(stats["new_cards"]),
            str(stats["due_cards"]),
            str(stats["mastered_cards"]),
            f"[{color}]{item['retention']}% {item['label']}[/{color}]",
            f"{goal['new_cards_today']} new, {goal['reviews_needed']} reviews (~{goal['estimated_minutes']} min)",
        )
    console.print(table)


def cmd_cards(db_path: str):
    deck_id = choose_deck(db_path)
    if deck_id is None:
        return
    cards = get_optimal_study_order(db_path, deck_id)
    if not cards:
        console.print("[yellow]This deck has no cards yet. Use 'add' to create some.[/yellow]")
        return
    table = Table(title="Study order")
    table.add_column("#", justify="right")
    table.add_column("Question", style="cyan")
    table.add_column("Difficulty")
    table.add_column("Reps", justify="right")
    table.add_column("Due")
    colors = {"hard": "red", "medium": "yellow", "easy": "green"}
    for i, card in enumerate(cards, 1):
        color = colors.get(card.difficulty, "white")
        table.add_row(
            str(i),
            card.question,
            f"[{color}]{card.difficulty}[/{color}]",
            str(card.repetitions),
            "yes" if is_due(card) else "no",
        )
    console.print(table)


def cmd_new(db_path: str):
    name = Prompt.ask("Deck name")
    description = Prompt.ask("Description", default="")
    subject = Prompt.ask("Subject", default="")
    deck = create_deck(db_path, name, description, subject)
    if deck is None:
        console.print("[red]Could not save the deck.[/red]")
        return
    console.print(f"[green]Created deck {deck.name}[/green]")


def cmd_add(db_path: str):
    deck_id = choose_deck(db_path)
    if deck_id is None:
        return
    while True:
        question = Prompt.ask("Question [dim](blank to stop)[/dim]", default="", show_default=False)
        if not question.strip():
            break
        answer = Prompt.ask("Answer")
        difficulty = Prompt.ask("Difficulty", choices=list(DIFFICULTIES), default="medium")
        if create_card(db_path, deck_id, question, answer, difficulty) is None:
            console.print("[red]Could not save the card.[/red]")
            return
        console.print("[green]Card added.[/green]")


def cmd_study(db_path: str):
    deck_id = choose_deck(db_path)
    if deck_id is None:
        return
    mode = Prompt.ask("Mode", choices=list(STUDY_MODES), default="learn")
    controller = StudyController(db_path)
    try:
        run_study_session(controller, deck_id, mode)
    except SessionExitRequested:
        console.print("[dim]Session ended.[/dim]")


def cmd_delete(db_path: str):
    deck_id = choose_deck(db_path)
    if deck_id is None:
        return
    if not Confirm.ask("Delete this deck and all of its cards?"):
        return
    if delete_deck(db_path, deck_id):
        console.print("[green]Deck deleted.[/green]")
    else:
        console.print("[red]Could not delete the deck.[/red]")


def cmd_stats(db_path: str):
    stats = get_study_stats(db_path)
    color = get_retention_color(stats["accuracy"])
    console.print(Panel(
        f"Decks: [bold]{stats['decks']}[/bold]  |  "
        f"Reviews: [bold]{stats['total_reviews']}[/bold]  |  "
        f"Accuracy: [{color}]{stats['accuracy']}%[/{color}]  |  "
        f"Streak: [bold]{stats['streak']}[/bold] days",
        title="Statistics", border_style="blue",
    ))


def cmd_export(db_path: str):
    file_path = Prompt.ask("File path", default="mindstack-backup.json")
    Path(file_path).write_text(json.dumps(export_snapshot(db_path), indent=2))
    console.print(f"[green]Saved snapshot to {file_path}[/green]")


def cmd_import(db_path: str):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    try:
        data = json.loads(Path(file_path).read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]Not a valid snapshot: {e}[/red]")
        return
    if import_snapshot(db_path, data):
        console.print("[green]Snapshot imported.[/green]")
    else:
        console.print("[red]Import failed; existing data was kept.[/red]")


def main():
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    db_path = settings.db_path
    init_db(db_path)
    show_welcome()

    commands = {
        "decks": cmd_decks,
        "cards": cmd_cards,
        "new": cmd_new,
        "add": cmd_add,
        "study": cmd_study,
        "delete": cmd_delete,
        "stats": cmd_stats,
        "export": cmd_export,
        "import": cmd_import,
    }
    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="decks").strip().lower()
        try:
            if choice in commands:
                commands[choice](db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you next review![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
