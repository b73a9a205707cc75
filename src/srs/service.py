"""
Flashcard Service.

Provides high-level operations for the CLI:
- Create, edit and delete cards
- Due / at-risk queues
- Cognitive load and recommended session size
- Deck statistics and learning insights
- New review sessions
"""

from __future__ import annotations

from collections import Counter

from loguru import logger

from .card_store import CardStore
from .errors import CardNotFoundError
from .models import DEFAULT_CATEGORY, DeckStats, Flashcard, LearningInsights
from .scheduler import SpacedRepetitionScheduler
from .session import ReviewSession


class FlashcardService:
    """Card management and queries on top of a CardStore."""

    def __init__(self, store: CardStore, scheduler: SpacedRepetitionScheduler):
        self.store = store
        self.scheduler = scheduler

    # -------------------------------------------------------------------------
    # Card management
    # -------------------------------------------------------------------------

    async def create_card(self, front: str, back: str, category: str = DEFAULT_CATEGORY) -> Flashcard:
        """Create a card; it is due immediately."""
        cfg = self.scheduler.config
        card = Flashcard.create(
            front,
            back,
            now=self.scheduler.clock.now(),
            category=category,
            ease_factor=cfg.initial_ease,
            interval=cfg.initial_interval,
        )
        cards = await self.store.get_flashcards()
        await self.store.save_flashcards([*cards, card])

        logger.info(f"Created flashcard {card.id} in '{card.category}'")
        return card

    async def get_card(self, card_id: str) -> Flashcard:
        for card in await self.store.get_flashcards():
            if card.id == card_id:
                return card
        raise CardNotFoundError(card_id)

    async def update_card(
        self,
        card_id: str,
        front: str | None = None,
        back: str | None = None,
        category: str | None = None,
    ) -> Flashcard:
        """Edit a card's content. Scheduling state is untouched."""
        cards = await self.store.get_flashcards()
        for index, card in enumerate(cards):
            if card.id == card_id:
                updated = card.with_content(front=front, back=back, category=category)
                cards[index] = updated
                await self.store.save_flashcards(cards)
                logger.info(f"Updated flashcard {card_id}")
                return updated
        raise CardNotFoundError(card_id)

    async def delete_card(self, card_id: str) -> None:
        cards = await self.store.get_flashcards()
        remaining = [c for c in cards if c.id != card_id]
        if len(remaining) == len(cards):
            raise CardNotFoundError(card_id)
        await self.store.save_flashcards(remaining)
        logger.info(f"Deleted flashcard {card_id}")

    async def list_cards(self, category: str | None = None) -> list[Flashcard]:
        cards = await self.store.get_flashcards()
        if category:
            cards = [c for c in cards if c.category == category]
        return sorted(cards, key=lambda c: (c.created, c.id))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def due_cards(self) -> list[Flashcard]:
        return self.scheduler.get_due_cards(await self.store.get_flashcards())

    async def at_risk_cards(self) -> list[Flashcard]:
        return self.scheduler.get_at_risk_cards(await self.store.get_flashcards())

    async def cognitive_load(self) -> float:
        sessions = await self.store.get_study_sessions()
        return self.scheduler.calculate_cognitive_load(sessions)

    async def recommended_session_size(self, available_minutes: float | None = None) -> int:
        due = await self.due_cards()
        return self.scheduler.get_optimal_session_size(
            await self.cognitive_load(), len(due), available_minutes
        )

    async def analyze_learning_patterns(self) -> LearningInsights:
        cards = await self.store.get_flashcards()
        sessions = await self.store.get_study_sessions()
        return self.scheduler.analyze_learning_patterns(cards, sessions)

    def new_session(self) -> ReviewSession:
        return ReviewSession(self.store, self.scheduler)

    async def get_stats(self) -> DeckStats:
        """
        Get overall deck statistics.

        Returns:
            DeckStats with counts, accuracy, the current load and learning insights
        """
        cards = await self.store.get_flashcards()
        sessions = await self.store.get_study_sessions()

        due = self.scheduler.get_due_cards(cards)
        load = self.scheduler.calculate_cognitive_load(sessions)

        accuracies = [s.accuracy for s in sessions if s.accuracy is not None]
        average_accuracy = round(sum(accuracies) / len(accuracies), 3) if accuracies else None

        return DeckStats(
            total_cards=len(cards),
            due_cards=len(due),
            at_risk_cards=len(self.scheduler.get_at_risk_cards(cards)),
            mastered_cards=sum(1 for c in cards if self.scheduler.is_mastered(c)),
            new_cards=sum(1 for c in cards if c.is_new),
            sessions_completed=sum(1 for s in sessions if s.completed),
            cards_studied=sum(s.cards_studied for s in sessions),
            average_accuracy=average_accuracy,
            cognitive_load=load,
            recommended_session_size=self.scheduler.get_optimal_session_size(load, len(due)),
            categories=dict(Counter(c.category for c in cards)),
            insights=self.scheduler.analyze_learning_patterns(cards, sessions),
        )
