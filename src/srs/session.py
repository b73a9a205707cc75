"""
Review Session: one pass over a bounded queue of due cards.

State machine:
    IDLE --start()--> ACTIVE --rate(last card) / abort()--> COMPLETED

While ACTIVE the learner reveals the current card's answer, then rates
it. Each rating is scheduled, persisted and only then committed to the
in-memory session, so a failed card save leaves the session exactly as it
was and the rating can be retried. Once a summary is pending (its save
failed at the end or on abort) no more cards can be rated; finish() or
abort() retries the save.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from enum import Enum

from loguru import logger

from .card_store import CardStore
from .errors import (
    NoCardsDueError,
    OutOfSequenceRatingError,
    PersistenceError,
    SessionBusyError,
)
from .models import Flashcard, Rating, StudySession
from .scheduler import SpacedRepetitionScheduler


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"


class ReviewSession:
    """
    Orchestrates one review session against a card store.

    Writes are serialized: at most one save is in flight, and a rating
    that arrives meanwhile is rejected with SessionBusyError.
    """

    def __init__(self, store: CardStore, scheduler: SpacedRepetitionScheduler):
        self.store = store
        self.scheduler = scheduler

        self.state = SessionState.IDLE
        self.cognitive_load = 1.0
        self.current_index = 0
        self.answer_revealed = False
        self.started_at: datetime | None = None
        self.summary: StudySession | None = None

        self._cards: list[Flashcard] = []  # Full collection snapshot
        self._queue: list[Flashcard] = []
        self._rated_ids: set[str] = set()
        self._ratings: list[Rating] = []
        self._pending_summary: StudySession | None = None
        self._save_lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def is_completed(self) -> bool:
        return self.state is SessionState.COMPLETED

    @property
    def queue(self) -> list[Flashcard]:
        return list(self._queue)

    @property
    def total_cards(self) -> int:
        return len(self._queue)

    @property
    def cards_studied(self) -> int:
        return len(self._ratings)

    @property
    def remaining(self) -> int:
        return max(0, len(self._queue) - self.current_index)

    @property
    def current_card(self) -> Flashcard | None:
        if self.state is not SessionState.ACTIVE or self.current_index >= len(self._queue):
            return None
        if self._pending_summary is not None:
            # Ending: only finish() or abort() may run
            return None
        return self._queue[self.current_index]

    @property
    def summary_pending(self) -> bool:
        return self._pending_summary is not None

    @property
    def save_in_flight(self) -> bool:
        return self._save_lock.locked()

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    async def start(self, available_minutes: float | None = None) -> list[Flashcard]:
        """
        Load the deck and pick the session queue.

        Args:
            available_minutes: Optional study time; shortens the queue to fit

        Returns:
            The cards queued for this session, most overdue first

        Raises:
            NoCardsDueError: nothing is due
            PersistenceError: the store could not be read
            OutOfSequenceRatingError: the session was already started
        """
        if self.state is not SessionState.IDLE:
            raise OutOfSequenceRatingError(f"Session already {self.state.value}")

        cards = await self.store.get_flashcards()
        sessions = await self.store.get_study_sessions()

        due = self.scheduler.get_due_cards(cards)
        if not due:
            raise NoCardsDueError("All cards are up to date, nothing is due for review")

        window = self.scheduler.config.cognitive_load_window
        load = self.scheduler.calculate_cognitive_load(sessions[-window:])
        size = self.scheduler.get_optimal_session_size(load, len(due), available_minutes)

        self._cards = cards
        self._queue = due[:size]
        self.cognitive_load = load
        self.current_index = 0
        self.answer_revealed = False
        self.started_at = self.scheduler.clock.now()
        self.state = SessionState.ACTIVE

        logger.info(
            f"Session started: {len(self._queue)} of {len(due)} due cards "
            f"(cognitive load {load:.2f})"
        )
        return self.queue

    def reveal_answer(self) -> Flashcard:
        """Flip the current card."""
        if self._pending_summary is not None:
            raise OutOfSequenceRatingError("Session is ending; call finish() to save its summary")
        card = self.current_card
        if card is None:
            raise OutOfSequenceRatingError("No card is being shown")
        self.answer_revealed = True
        return card

    async def rate(self, rating: Rating | str | int, card_id: str | None = None) -> Flashcard:
        """
        Rate the current card, reschedule it and persist the deck.

        Args:
            rating: Recall quality, again..perfect
            card_id: Optional id of the card being rated; must match the current card

        Returns:
            The rescheduled card

        Raises:
            SessionBusyError: a previous save is still in flight
            OutOfSequenceRatingError: not active, answer hidden, wrong or repeated card
            InvalidRatingError: rating outside the vocabulary
            PersistenceError: the card save failed and the session is unchanged,
                or (last card only) the cards were saved but the session summary
                was not; summary_pending is then True and finish() retries it
        """
        if self._save_lock.locked():
            raise SessionBusyError("A rating is still being saved")
        if self._pending_summary is not None:
            raise OutOfSequenceRatingError("Session is ending; call finish() to save its summary")

        card = self.current_card
        if card is None:
            raise OutOfSequenceRatingError(f"Session is {self.state.value}, nothing to rate")
        if not self.answer_revealed:
            raise OutOfSequenceRatingError("Reveal the answer before rating")
        if card_id is not None and card_id != card.id:
            raise OutOfSequenceRatingError(
                f"Card {card_id} is not the current card ({card.id})"
            )
        if card.id in self._rated_ids:
            raise OutOfSequenceRatingError(f"Card {card.id} was already rated this session")

        rating = Rating.parse(rating)

        async with self._save_lock:
            updated = self.scheduler.schedule_next_review(card, rating, self.cognitive_load)
            collection = [updated if c.id == card.id else c for c in self._cards]

            await self.store.save_flashcards(collection)

            # Commit only after the store confirmed
            self._cards = collection
            self._queue[self.current_index] = updated
            self._rated_ids.add(card.id)
            self._ratings.append(rating)
            self.current_index += 1
            self.answer_revealed = False

            logger.debug(
                f"Rated {card.id} {rating.name.lower()} "
                f"({self.current_index}/{len(self._queue)})"
            )

            if self.current_index >= len(self._queue):
                await self._finalize(completed=True)

        return updated

    async def abort(self) -> StudySession | None:
        """
        End the session early.

        Idempotent: a no-op once completed (or before start). An in-flight
        save is allowed to finish first so the last rating is kept.
        """
        if self.state is not SessionState.ACTIVE:
            return self.summary

        async with self._save_lock:
            if self.state is not SessionState.ACTIVE:
                return self.summary
            logger.info(f"Session aborted after {self.cards_studied} of {len(self._queue)} cards")
            return await self._finalize(completed=False)

    async def finish(self) -> StudySession:
        """
        Retry persisting a session summary whose save failed.

        Raises:
            OutOfSequenceRatingError: there is no pending summary
            PersistenceError: the save failed again
        """
        if self.state is SessionState.COMPLETED and self.summary is not None:
            return self.summary
        if self._pending_summary is None:
            raise OutOfSequenceRatingError("Session has no summary waiting to be saved")

        async with self._save_lock:
            return await self._finalize(completed=self._pending_summary.completed)

    async def _finalize(self, completed: bool) -> StudySession:
        if self._pending_summary is None:
            self._pending_summary = StudySession.finalize(
                start_time=self.started_at or self.scheduler.clock.now(),
                end_time=self.scheduler.clock.now(),
                ratings=self._ratings,
                completed=completed,
            )

        try:
            await self.store.save_study_session(self._pending_summary)
        except PersistenceError:
            logger.warning("Session summary could not be saved; call finish() to retry")
            raise

        self.summary = self._pending_summary
        self._pending_summary = None
        self.state = SessionState.COMPLETED
        self._cards = []
        self._queue = []
        self._rated_ids.clear()
        self.answer_revealed = False

        logger.info(
            f"Session complete: {self.summary.cards_studied} cards in "
            f"{self.summary.duration} min (completed={self.summary.completed})"
        )
        return self.summary
