"""
Flashcard and study session data model.

Ratings (ordered):
1 - again    Failed recall, card goes back to the start
2 - hard     Recalled with significant difficulty
3 - good     Recalled with normal effort
4 - easy     Recalled with little effort
5 - perfect  Instant, effortless recall
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timedelta
from enum import IntEnum

from .errors import InvalidRatingError

DEFAULT_CATEGORY = "general"
SESSION_TYPE_FLASHCARDS = "flashcards"


class Rating(IntEnum):
    """Recall quality reported by the learner."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4
    PERFECT = 5

    @property
    def is_success(self) -> bool:
        return self is not Rating.AGAIN

    @classmethod
    def parse(cls, value: Rating | str | int) -> Rating:
        """
        Coerce a rating from its enum, name or number.

        Raises:
            InvalidRatingError: for anything outside the vocabulary
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidRatingError(value)
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidRatingError(value) from None
        if isinstance(value, str):
            name = value.strip()
            if name.isascii() and name.isdigit():
                return cls.parse(int(name))
            try:
                return cls[name.upper()]
            except KeyError:
                raise InvalidRatingError(value) from None
        raise InvalidRatingError(value)


def _require_text(value: str, name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValueError(f"Flashcard {name} must not be empty")
    return text


@dataclass
class Flashcard:
    """
    A flashcard and its scheduling state.

    Content fields (front/back/category) are edited by the learner; the
    scheduling fields are only ever replaced by the scheduler.
    """

    id: str
    front: str
    back: str
    created: datetime
    next_review: datetime
    category: str = DEFAULT_CATEGORY
    interval: int = 1  # Days until next review
    ease_factor: float = 2.5
    repetitions: int = 0  # Consecutive successful reviews
    last_reviewed: datetime | None = None
    last_rating: Rating | None = None
    lapses: int = 0
    reviews: int = 0

    @classmethod
    def create(
        cls,
        front: str,
        back: str,
        now: datetime,
        category: str = DEFAULT_CATEGORY,
        ease_factor: float = 2.5,
        interval: int = 1,
    ) -> Flashcard:
        """New cards are due immediately."""
        return cls(
            id=uuid.uuid4().hex,
            front=_require_text(front, "front"),
            back=_require_text(back, "back"),
            category=(category or "").strip() or DEFAULT_CATEGORY,
            created=now,
            next_review=now,
            interval=interval,
            ease_factor=ease_factor,
        )

    @property
    def is_new(self) -> bool:
        return self.reviews == 0

    @property
    def failure_rate(self) -> float:
        """Fraction of reviews rated 'again'."""
        if self.reviews == 0:
            return 0.0
        return self.lapses / self.reviews

    def is_due(self, now: datetime) -> bool:
        return self.next_review <= now

    def days_overdue(self, now: datetime) -> int:
        delta = now - self.next_review
        return max(0, delta.days)

    def with_content(
        self,
        front: str | None = None,
        back: str | None = None,
        category: str | None = None,
    ) -> Flashcard:
        """Return a copy with edited content; scheduling state is kept."""
        return replace(
            self,
            front=_require_text(front, "front") if front is not None else self.front,
            back=_require_text(back, "back") if back is not None else self.back,
            category=(category.strip() or DEFAULT_CATEGORY) if category is not None else self.category,
        )


@dataclass(frozen=True)
class StudySession:
    """A finished review session. Immutable once persisted."""

    id: str
    start_time: datetime
    end_time: datetime
    cards_studied: int
    completed: bool
    type: str = SESSION_TYPE_FLASHCARDS
    accuracy: float | None = None  # Fraction of ratings that were not 'again'

    @property
    def duration(self) -> int:
        """Whole minutes, rounded half-up."""
        seconds = max(0.0, (self.end_time - self.start_time).total_seconds())
        return int(seconds / 60 + 0.5)

    @classmethod
    def finalize(
        cls,
        start_time: datetime,
        end_time: datetime,
        ratings: list[Rating],
        completed: bool,
    ) -> StudySession:
        accuracy = None
        if ratings:
            accuracy = sum(1 for r in ratings if r.is_success) / len(ratings)
        return cls(
            id=uuid.uuid4().hex,
            start_time=start_time,
            end_time=max(end_time, start_time),
            cards_studied=len(ratings),
            completed=completed,
            accuracy=accuracy,
        )

    def started_within(self, now: datetime, window: timedelta) -> bool:
        return timedelta(0) <= now - self.start_time <= window


@dataclass
class LearningInsights:
    """Retention summary and a study suggestion for the stats view."""

    average_retention: float | None = None  # None until something was reviewed
    difficult_categories: list[str] = field(default_factory=list)
    suggestion: str = ""


@dataclass
class DeckStats:
    """Aggregate numbers for the stats view."""

    total_cards: int = 0
    due_cards: int = 0
    at_risk_cards: int = 0
    mastered_cards: int = 0
    new_cards: int = 0
    sessions_completed: int = 0
    cards_studied: int = 0
    average_accuracy: float | None = None
    cognitive_load: float = 1.0
    recommended_session_size: int = 0
    categories: dict[str, int] = field(default_factory=dict)
    insights: LearningInsights = field(default_factory=LearningInsights)

    def to_dict(self) -> dict:
        return asdict(self)
