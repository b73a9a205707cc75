"""
NeuroLearn CLI - spaced repetition flashcards in the terminal.

Usage:
    neurolearn add "Front" "Back" -c biology   # Create a card
    neurolearn list                            # All cards
    neurolearn due                             # Cards due now
    neurolearn at-risk                         # Cards likely to be forgotten soon
    neurolearn study                           # Review session
    neurolearn study -m 10                     # Review session sized for 10 minutes
    neurolearn stats                           # Deck statistics
    neurolearn edit ID --back "New answer"
    neurolearn delete ID
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from config import get_settings
from src.srs import (
    FlashcardService,
    NoCardsDueError,
    PersistenceError,
    ReviewSession,
    SpacedRepetitionScheduler,
    SQLiteCardStore,
    SRSError,
)
from src.srs.models import Flashcard, Rating

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="neurolearn",
    help="🧠 NeuroLearn - spaced repetition flashcards",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

RATING_CHOICES = {str(r.value): r for r in Rating}
RATING_STYLES = {
    Rating.AGAIN: "red",
    Rating.HARD: "yellow",
    Rating.GOOD: "green",
    Rating.EASY: "cyan",
    Rating.PERFECT: "magenta",
}


def configure_logging(level: str, log_file: str | None = None) -> None:
    """Route loguru to stderr (and optionally a rotating file)."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if log_file:
        logger.add(log_file, level="DEBUG", rotation="5 MB", retention=3)


def _build_service(ctx: typer.Context) -> FlashcardService:
    settings = get_settings()
    db_path = (ctx.obj or {}).get("db_path") or settings.db_path
    store = SQLiteCardStore(db_path)
    scheduler = SpacedRepetitionScheduler(settings.get_scheduler_config())
    return FlashcardService(store, scheduler)


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run a command coroutine; domain errors become exit code 1."""
    try:
        return asyncio.run(coro)
    except (SRSError, ValueError) as exc:
        logger.debug(f"Command failed: {exc!r}")
        console.print(f"[red]✗ {exc}[/]")
        raise typer.Exit(code=1) from None


def _cards_table(cards: list[Flashcard], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Front")
    table.add_column("Category")
    table.add_column("Interval", justify="right")
    table.add_column("Ease", justify="right")
    table.add_column("Next review")

    for card in cards:
        table.add_row(
            card.id,
            card.front if len(card.front) <= 40 else card.front[:37] + "...",
            card.category,
            f"{card.interval}d",
            f"{card.ease_factor:.2f}",
            f"{card.next_review:%Y-%m-%d %H:%M}",
        )
    return table


@app.callback()
def main(
    ctx: typer.Context,
    db: Annotated[
        Path | None, typer.Option("--db", help="SQLite database path")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Debug logging")
    ] = False,
) -> None:
    """🧠 NeuroLearn - spaced repetition flashcards."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_file)
    ctx.obj = {"db_path": db}


# =============================================================================
# Card Commands
# =============================================================================


@app.command()
def add(
    ctx: typer.Context,
    front: Annotated[str, typer.Argument(help="Question side")],
    back: Annotated[str, typer.Argument(help="Answer side")],
    category: Annotated[
        str, typer.Option("--category", "-c", help="Card category")
    ] = "general",
) -> None:
    """Create a flashcard (due immediately)."""
    service = _build_service(ctx)
    card = _run(service.create_card(front, back, category))
    console.print(f"[green]✓ Created[/] {card.id} [dim]({card.category})[/]")


@app.command("list")
def list_cards(
    ctx: typer.Context,
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Only this category")
    ] = None,
) -> None:
    """List flashcards."""
    service = _build_service(ctx)
    cards = _run(service.list_cards(category))
    if not cards:
        console.print("[dim]No flashcards yet. Add one with 'neurolearn add'.[/]")
        return
    console.print(_cards_table(cards, f"Flashcards ({len(cards)})"))


@app.command()
def edit(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card ID")],
    front: Annotated[str | None, typer.Option("--front", help="New question")] = None,
    back: Annotated[str | None, typer.Option("--back", help="New answer")] = None,
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="New category")
    ] = None,
) -> None:
    """Edit a card's content (its schedule is kept)."""
    service = _build_service(ctx)
    card = _run(service.update_card(card_id, front=front, back=back, category=category))
    console.print(f"[green]✓ Updated[/] {card.id}")


@app.command()
def delete(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card ID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a card."""
    if not yes and not Confirm.ask(f"Delete flashcard {card_id}?", default=False):
        console.print("Cancelled.")
        return
    service = _build_service(ctx)
    _run(service.delete_card(card_id))
    console.print(f"[green]✓ Deleted[/] {card_id}")


# =============================================================================
# Queue Commands
# =============================================================================


@app.command()
def due(ctx: typer.Context) -> None:
    """Show cards due for review, most overdue first."""
    service = _build_service(ctx)
    cards = _run(service.due_cards())
    if not cards:
        console.print("[green]All cards are up to date![/]")
        return
    console.print(_cards_table(cards, f"Due now ({len(cards)})"))


@app.command("at-risk")
def at_risk(ctx: typer.Context) -> None:
    """Show cards not yet due that are likely to be forgotten soon."""
    service = _build_service(ctx)
    cards = _run(service.at_risk_cards())
    if not cards:
        console.print("[green]No cards at risk.[/]")
        return
    console.print(_cards_table(cards, f"At risk ({len(cards)})"))


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show deck statistics."""
    service = _build_service(ctx)
    deck = _run(service.get_stats())

    table = Table(title="📊 Deck Statistics", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Total cards", str(deck.total_cards))
    table.add_row("Due now", str(deck.due_cards))
    table.add_row("At risk", str(deck.at_risk_cards))
    table.add_row("New", str(deck.new_cards))
    table.add_row("Mastered", str(deck.mastered_cards))
    table.add_row("Sessions completed", str(deck.sessions_completed))
    table.add_row("Cards studied", str(deck.cards_studied))
    accuracy = "-" if deck.average_accuracy is None else f"{deck.average_accuracy:.0%}"
    table.add_row("Average accuracy", accuracy)
    table.add_row("Cognitive load", f"{deck.cognitive_load:.2f}")
    table.add_row("Recommended session", f"{deck.recommended_session_size} cards")

    insights = deck.insights
    retention = "-" if insights.average_retention is None else f"{insights.average_retention:.0%}"
    table.add_row("Retention", retention)
    if insights.difficult_categories:
        table.add_row("Difficult categories", ", ".join(insights.difficult_categories))
    console.print(table)
    console.print(Panel(insights.suggestion, title="💡 Suggestion", border_style="cyan"))


# =============================================================================
# Study Command
# =============================================================================


@app.command()
def study(
    ctx: typer.Context,
    minutes: Annotated[
        float | None,
        typer.Option("--minutes", "-m", min=0, help="Time available; limits the number of cards"),
    ] = None,
) -> None:
    """
    Start a review session.

    The session size adapts to your recent cognitive load and, with
    --minutes, to the time you have.
    Type 'q' at any prompt to stop early; progress so far is kept.
    """
    service = _build_service(ctx)
    _run(_study(service.new_session(), minutes))


async def _study(session: ReviewSession, minutes: float | None = None) -> None:
    try:
        queue = await session.start(minutes)
    except NoCardsDueError:
        console.print("[green]No cards due. Come back later for reviews.[/]")
        return

    console.print(
        Panel(
            f"[bold cyan]REVIEW SESSION[/]\n"
            f"Cards: {len(queue)}\n"
            f"Cognitive load: {session.cognitive_load:.2f}",
            title="🧠",
            border_style="cyan",
        )
    )

    while session.is_active and session.current_card is not None:
        card = session.current_card
        position = session.current_index + 1
        console.print(
            Panel(card.front, title=f"{position}/{session.total_cards} · {card.category}")
        )

        if Prompt.ask("[dim]Enter to reveal, q to quit[/]", default="").strip().lower() == "q":
            break

        session.reveal_answer()
        console.print(Panel(card.back, title="Answer", border_style="green"))
        console.print(
            "  ".join(
                f"[{RATING_STYLES[r]}]{r.value}={r.name.lower()}[/]" for r in Rating
            )
        )
        choice = Prompt.ask("Rate", choices=[*RATING_CHOICES, "q"])
        if choice == "q":
            break

        await _rate_with_retry(session, RATING_CHOICES[choice], card.id)

    if session.is_active:
        await _abort_with_retry(session)

    summary = session.summary
    if summary is not None:
        console.print(
            f"\n[bold green]Session complete![/] Reviewed {summary.cards_studied} cards "
            f"in {summary.duration} min."
        )


async def _rate_with_retry(session: ReviewSession, rating: Rating, card_id: str) -> None:
    while True:
        try:
            if session.current_card is not None and session.current_card.id == card_id:
                await session.rate(rating, card_id=card_id)
            else:
                # The rating was saved; only the session summary is pending
                await session.finish()
            return
        except PersistenceError as exc:
            console.print(f"[red]Save failed: {exc}[/]")
            if not Confirm.ask("Retry?", default=True):
                raise


async def _abort_with_retry(session: ReviewSession) -> None:
    while True:
        try:
            await session.abort()
            return
        except PersistenceError as exc:
            console.print(f"[red]Could not save the session summary: {exc}[/]")
            if not Confirm.ask("Retry?", default=True):
                raise


def run() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()
