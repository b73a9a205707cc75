"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import asyncio
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.srs import (  # noqa: E402
    FixedClock,
    Flashcard,
    FlashcardService,
    InMemoryCardStore,
    PersistenceError,
    SpacedRepetitionScheduler,
    StudySession,
)

BASE_TIME = datetime(2026, 1, 5, 9, 0, 0)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (use a real SQLite file)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# =============================================================================
# Test doubles
# =============================================================================


class FlakyCardStore(InMemoryCardStore):
    """In-memory store that fails the next N saves on request and counts writes."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_card_saves = 0
        self.fail_session_saves = 0
        self.card_saves = 0
        self.session_saves = 0

    async def save_flashcards(self, cards):
        if self.fail_card_saves:
            self.fail_card_saves -= 1
            raise PersistenceError("disk full")
        await super().save_flashcards(cards)
        self.card_saves += 1

    async def save_study_session(self, session):
        if self.fail_session_saves:
            self.fail_session_saves -= 1
            raise PersistenceError("disk full")
        await super().save_study_session(session)
        self.session_saves += 1


class GatedCardStore(InMemoryCardStore):
    """In-memory store whose card saves block until the gate opens."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gate = asyncio.Event()
        self.save_started = asyncio.Event()

    async def save_flashcards(self, cards):
        self.save_started.set()
        await self.gate.wait()
        await super().save_flashcards(cards)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock():
    """A clock pinned to Monday 2026-01-05 09:00."""
    return FixedClock(BASE_TIME)


@pytest.fixture
def scheduler(clock):
    return SpacedRepetitionScheduler(clock=clock)


@pytest.fixture
def make_card():
    """Factory for cards with explicit scheduling state."""
    counter = {"n": 0}

    def _make(
        interval=1,
        ease_factor=2.5,
        repetitions=0,
        next_review=None,
        created=None,
        **kwargs,
    ):
        counter["n"] += 1
        created = created or BASE_TIME - timedelta(days=30)
        return Flashcard(
            id=kwargs.pop("id", f"card-{counter['n']:03d}"),
            front=kwargs.pop("front", f"Question {counter['n']}"),
            back=kwargs.pop("back", f"Answer {counter['n']}"),
            created=created,
            next_review=next_review or BASE_TIME,
            interval=interval,
            ease_factor=ease_factor,
            repetitions=repetitions,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_session():
    """Factory for finished study sessions."""
    counter = {"n": 0}

    def _make(start=None, minutes=20, cards_studied=10, completed=True, accuracy=0.7):
        counter["n"] += 1
        start = start or BASE_TIME - timedelta(days=counter["n"])
        return StudySession(
            id=f"session-{counter['n']:03d}",
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            cards_studied=cards_studied,
            completed=completed,
            accuracy=accuracy,
        )

    return _make


@pytest.fixture
def store():
    return FlakyCardStore()


@pytest.fixture
def make_store():
    """Factory for seeded stores; gated=True gives a GatedCardStore."""

    def _make(cards=(), sessions=(), gated=False):
        store_class = GatedCardStore if gated else FlakyCardStore
        return store_class(cards=list(cards), sessions=list(sessions))

    return _make


@pytest.fixture
def service(store, scheduler):
    return FlashcardService(store, scheduler)
