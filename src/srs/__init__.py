"""
NeuroLearn SRS: spaced repetition core.

Components:
- SpacedRepetitionScheduler: interval/ease updates, due and at-risk queues,
  cognitive load and session sizing
- CardStore: async persistence (SQLite or in-memory)
- ReviewSession: one review pass over the due queue
- FlashcardService: card management and deck statistics
"""

from .card_store import CardStore, InMemoryCardStore, SQLiteCardStore
from .clock import Clock, FixedClock, SystemClock
from .errors import (
    CardNotFoundError,
    InvalidRatingError,
    NoCardsDueError,
    OutOfSequenceRatingError,
    PersistenceError,
    SessionBusyError,
    SRSError,
)
from .models import DeckStats, Flashcard, LearningInsights, Rating, StudySession
from .scheduler import SchedulerConfig, SpacedRepetitionScheduler
from .service import FlashcardService
from .session import ReviewSession, SessionState

__all__ = [
    # Model
    "Flashcard",
    "Rating",
    "StudySession",
    "DeckStats",
    "LearningInsights",
    # Time
    "Clock",
    "SystemClock",
    "FixedClock",
    # Scheduling
    "SchedulerConfig",
    "SpacedRepetitionScheduler",
    # Persistence
    "CardStore",
    "InMemoryCardStore",
    "SQLiteCardStore",
    # Sessions
    "ReviewSession",
    "SessionState",
    "FlashcardService",
    # Errors
    "SRSError",
    "InvalidRatingError",
    "NoCardsDueError",
    "PersistenceError",
    "OutOfSequenceRatingError",
    "SessionBusyError",
    "CardNotFoundError",
]
