"""
Card Store: durable flashcard and session persistence.

Backends:
- SQLiteCardStore: aiosqlite file database (default ~/.neurolearn/cards.db)
- InMemoryCardStore: process-local, for tests and throwaway decks

Contract:
- save_flashcards replaces the whole collection atomically
- reads reflect the most recent successful write
- every backend failure surfaces as PersistenceError
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import aiosqlite
from loguru import logger

from .errors import PersistenceError
from .models import Flashcard, Rating, StudySession


class CardStore(ABC):
    """Async collection store for flashcards and study sessions."""

    @abstractmethod
    async def get_flashcards(self) -> list[Flashcard]:
        """Return every flashcard."""

    @abstractmethod
    async def save_flashcards(self, cards: Sequence[Flashcard]) -> None:
        """Replace the stored collection with ``cards``."""

    @abstractmethod
    async def get_study_sessions(self) -> list[StudySession]:
        """Return every study session, oldest first."""

    @abstractmethod
    async def save_study_session(self, session: StudySession) -> None:
        """Append a finished study session."""


# =============================================================================
# In-memory
# =============================================================================


class InMemoryCardStore(CardStore):
    """Copies on the way in and out so callers never share state with the store."""

    def __init__(
        self,
        cards: Sequence[Flashcard] | None = None,
        sessions: Sequence[StudySession] | None = None,
    ):
        self._cards: list[Flashcard] = copy.deepcopy(list(cards or []))
        self._sessions: list[StudySession] = list(sessions or [])

    async def get_flashcards(self) -> list[Flashcard]:
        return copy.deepcopy(self._cards)

    async def save_flashcards(self, cards: Sequence[Flashcard]) -> None:
        self._cards = copy.deepcopy(list(cards))

    async def get_study_sessions(self) -> list[StudySession]:
        return sorted(self._sessions, key=lambda s: s.start_time)

    async def save_study_session(self, session: StudySession) -> None:
        self._sessions.append(session)


# =============================================================================
# SQLite
# =============================================================================

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS flashcards (
    id            TEXT PRIMARY KEY,
    front         TEXT NOT NULL,
    back          TEXT NOT NULL,
    category      TEXT NOT NULL DEFAULT 'general',
    interval_days INTEGER NOT NULL DEFAULT 1,
    ease_factor   REAL NOT NULL DEFAULT 2.5,
    repetitions   INTEGER NOT NULL DEFAULT 0,
    next_review   TEXT NOT NULL,
    created       TEXT NOT NULL,
    last_reviewed TEXT,
    last_rating   INTEGER,
    lapses        INTEGER NOT NULL DEFAULT 0,
    reviews       INTEGER NOT NULL DEFAULT 0,
    position      INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_flashcards_next_review ON flashcards(next_review);

CREATE TABLE IF NOT EXISTS study_sessions (
    id            TEXT PRIMARY KEY,
    type          TEXT NOT NULL DEFAULT 'flashcards',
    start_time    TEXT NOT NULL,
    end_time      TEXT NOT NULL,
    duration      INTEGER NOT NULL DEFAULT 0,
    cards_studied INTEGER NOT NULL DEFAULT 0,
    completed     INTEGER NOT NULL DEFAULT 0,
    accuracy      REAL
);
CREATE INDEX IF NOT EXISTS idx_sessions_start ON study_sessions(start_time);
"""


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _row_to_flashcard(row: aiosqlite.Row) -> Flashcard:
    return Flashcard(
        id=row["id"],
        front=row["front"],
        back=row["back"],
        category=row["category"],
        interval=row["interval_days"],
        ease_factor=row["ease_factor"],
        repetitions=row["repetitions"],
        next_review=_dt(row["next_review"]),
        created=_dt(row["created"]),
        last_reviewed=_dt(row["last_reviewed"]),
        last_rating=Rating(row["last_rating"]) if row["last_rating"] is not None else None,
        lapses=row["lapses"],
        reviews=row["reviews"],
    )


def _row_to_session(row: aiosqlite.Row) -> StudySession:
    return StudySession(
        id=row["id"],
        type=row["type"],
        start_time=_dt(row["start_time"]),
        end_time=_dt(row["end_time"]),
        cards_studied=row["cards_studied"],
        completed=bool(row["completed"]),
        accuracy=row["accuracy"],
    )


class SQLiteCardStore(CardStore):
    """
    aiosqlite-backed store.

    One connection per operation; the flashcard collection is replaced
    inside a single transaction so a partial write is never visible.
    """

    DEFAULT_DB_PATH = Path.home() / ".neurolearn" / "cards.db"

    def __init__(self, db_path: Path | str | None = None):
        """
        Initialize the store.

        Args:
            db_path: Custom database path (defaults to ~/.neurolearn/cards.db)
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False

    async def init(self) -> None:
        """Create the schema if needed."""
        if self._initialized:
            return
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.executescript(SCHEMA_SQL)
                await db.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceError(f"Could not initialize {self.db_path}: {exc}") from exc
        self._initialized = True
        logger.info(f"SQLiteCardStore initialized at {self.db_path}")

    async def _fetch(self, sql: str) -> list[aiosqlite.Row]:
        await self.init()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql)
                return list(await cursor.fetchall())
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceError(f"Read failed: {exc}") from exc

    async def get_flashcards(self) -> list[Flashcard]:
        rows = await self._fetch("SELECT * FROM flashcards ORDER BY position ASC")
        return [_row_to_flashcard(r) for r in rows]

    async def save_flashcards(self, cards: Sequence[Flashcard]) -> None:
        await self.init()
        rows = [
            (
                c.id,
                c.front,
                c.back,
                c.category,
                c.interval,
                c.ease_factor,
                c.repetitions,
                _iso(c.next_review),
                _iso(c.created),
                _iso(c.last_reviewed),
                int(c.last_rating) if c.last_rating is not None else None,
                c.lapses,
                c.reviews,
                position,
            )
            for position, c in enumerate(cards)
        ]
        try:
            async with aiosqlite.connect(self.db_path) as db:
                try:
                    await db.execute("DELETE FROM flashcards")
                    await db.executemany(
                        """INSERT INTO flashcards
                           (id, front, back, category, interval_days, ease_factor,
                            repetitions, next_review, created, last_reviewed,
                            last_rating, lapses, reviews, position)
                           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                        rows,
                    )
                    await db.commit()
                except aiosqlite.Error:
                    await db.rollback()
                    raise
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceError(f"Saving {len(rows)} flashcards failed: {exc}") from exc

        logger.debug(f"Saved {len(rows)} flashcards")

    async def get_study_sessions(self) -> list[StudySession]:
        rows = await self._fetch("SELECT * FROM study_sessions ORDER BY start_time ASC")
        return [_row_to_session(r) for r in rows]

    async def save_study_session(self, session: StudySession) -> None:
        await self.init()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """INSERT INTO study_sessions
                       (id, type, start_time, end_time, duration,
                        cards_studied, completed, accuracy)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        session.id,
                        session.type,
                        _iso(session.start_time),
                        _iso(session.end_time),
                        session.duration,
                        session.cards_studied,
                        int(session.completed),
                        session.accuracy,
                    ),
                )
                await db.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceError(f"Saving session {session.id} failed: {exc}") from exc

        logger.debug(f"Saved study session {session.id} ({session.cards_studied} cards)")
