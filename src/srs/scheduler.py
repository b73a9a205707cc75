"""
SM-2 Style Spaced Repetition Scheduler.

Implements:
- Review interval / ease factor updates per rating
- Due-card queue (most overdue first)
- At-risk early warning based on a forgetting curve
- Cognitive load estimate from recent sessions
- Adaptive session sizing under a cognitive load budget
- Retention insights and a study suggestion

Interval policy:
- again:      repetitions reset, interval back to 1 day, ease penalised
- first pass: fixed short interval regardless of rating
- hard:       interval grows gently, ease unchanged
- good+:      interval *= ease * rating multiplier (strictly growing below
              maximum_interval; a card at the cap stays there)
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import timedelta

from loguru import logger

from .clock import Clock, SystemClock
from .models import Flashcard, LearningInsights, Rating, StudySession

# =============================================================================
# Configuration
# =============================================================================


def _default_ease_bonus() -> dict[Rating, float]:
    return {
        Rating.HARD: 0.0,
        Rating.GOOD: 0.05,
        Rating.EASY: 0.10,
        Rating.PERFECT: 0.15,
    }


def _default_interval_multiplier() -> dict[Rating, float]:
    return {
        Rating.HARD: 1.2,  # Applied to the previous interval only
        Rating.GOOD: 1.0,
        Rating.EASY: 1.3,
        Rating.PERFECT: 1.5,
    }


@dataclass
class SchedulerConfig:
    """Tunable constants for the scheduler."""

    # Ease factor
    initial_ease: float = 2.5
    minimum_ease: float = 1.3
    failure_penalty: float = 0.2
    max_ease_delta: float = 0.15
    ease_bonus: dict[Rating, float] = field(default_factory=_default_ease_bonus)

    # Intervals (days)
    initial_interval: int = 1
    failure_interval: int = 1
    maximum_interval: int = 36500
    interval_multiplier: dict[Rating, float] = field(default_factory=_default_interval_multiplier)

    # Cognitive load
    cognitive_load_window: int = 10
    min_cognitive_load: float = 0.5
    max_cognitive_load: float = 2.0
    incompletion_weight: float = 0.5
    long_session_minutes: int = 45

    # Session sizing: (load upper bound, size), loads at or above the last
    # bound fall back to min_session_size
    session_size_tiers: tuple[tuple[float, int], ...] = ((0.8, 15), (1.2, 10), (1.5, 7))
    min_session_size: int = 5
    max_session_size: int = 20
    minutes_per_card: float = 1.5  # Time budget per card when sizing by available minutes

    # At-risk detection
    risk_threshold: float = 0.3
    ease_risk_margin: float = 0.15

    # Mastery (stats only)
    mastery_interval: int = 21

    # Learning insights (retention = share of reviewed cards not rated 'again')
    low_retention: float = 0.8
    high_retention: float = 0.95

    def __post_init__(self) -> None:
        if self.minimum_ease <= 0:
            raise ValueError("minimum_ease must be positive")
        if self.initial_ease < self.minimum_ease:
            raise ValueError("initial_ease must be >= minimum_ease")
        if min(self.initial_interval, self.failure_interval) < 1:
            raise ValueError("intervals must be at least 1 day")
        if self.minutes_per_card <= 0:
            raise ValueError("minutes_per_card must be positive")
        if self.max_session_size < 1 or self.min_session_size < 1:
            raise ValueError("session sizes must be at least 1")

        bounds = [bound for bound, _ in self.session_size_tiers]
        sizes = [size for _, size in self.session_size_tiers] + [self.min_session_size]
        if bounds != sorted(bounds):
            raise ValueError("session_size_tiers must be ordered by load bound")
        if any(a < b for a, b in zip(sizes, sizes[1:])):
            raise ValueError("session sizes must not grow with cognitive load")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# =============================================================================
# Scheduler
# =============================================================================


class SpacedRepetitionScheduler:
    """
    Pure scheduling functions over flashcards and study sessions.

    Nothing here touches storage; "now" comes from the injected clock.
    """

    def __init__(self, config: SchedulerConfig | None = None, clock: Clock | None = None):
        """
        Initialize the scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
            clock: Source of "now" (system clock if None)
        """
        self.config = config or SchedulerConfig()
        self.clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # Review scheduling
    # -------------------------------------------------------------------------

    def schedule_next_review(
        self,
        card: Flashcard,
        rating: Rating | str | int,
        cognitive_load: float = 1.0,
    ) -> Flashcard:
        """
        Calculate the card's next review.

        Successful ratings strictly grow the interval until it reaches
        config.maximum_interval; from then on it stays at the cap.

        Args:
            card: Card being reviewed (not modified)
            rating: Recall quality, again..perfect
            cognitive_load: Current load; nudges successful intervals

        Returns:
            A new Flashcard with updated scheduling fields

        Raises:
            InvalidRatingError: rating outside the vocabulary
        """
        rating = Rating.parse(rating)
        cfg = self.config
        now = self.clock.now()

        lapses = card.lapses
        if rating is Rating.AGAIN:
            repetitions = 0
            interval = cfg.failure_interval
            ease = card.ease_factor - cfg.failure_penalty
            lapses += 1
        elif card.repetitions == 0:
            # No evidence yet, keep the first gap short
            repetitions = 1
            interval = cfg.initial_interval
            ease = self._grow_ease(card.ease_factor, rating)
        elif rating is Rating.HARD:
            repetitions = card.repetitions + 1
            grown = _round_half_up(card.interval * cfg.interval_multiplier[Rating.HARD])
            interval = max(card.interval, grown)
            ease = self._grow_ease(card.ease_factor, rating)
        else:
            repetitions = card.repetitions + 1
            raw = (
                card.interval
                * card.ease_factor
                * cfg.interval_multiplier[rating]
                * self._load_adjustment(cognitive_load)
            )
            interval = max(card.interval + 1, _round_half_up(raw))
            ease = self._grow_ease(card.ease_factor, rating)

        # Growth stops at the cap: a capped card keeps maximum_interval
        interval = max(1, min(interval, cfg.maximum_interval))
        ease = max(cfg.minimum_ease, round(ease, 4))

        updated = replace(
            card,
            interval=interval,
            ease_factor=ease,
            repetitions=repetitions,
            next_review=now + timedelta(days=interval),
            last_reviewed=now,
            last_rating=rating,
            lapses=lapses,
            reviews=card.reviews + 1,
        )

        logger.debug(
            f"Scheduled {card.id}: rating={rating.name.lower()}, "
            f"interval={card.interval}d->{interval}d, ease={card.ease_factor:.2f}->{ease:.2f}, "
            f"next_review={updated.next_review:%Y-%m-%d}"
        )
        return updated

    def _grow_ease(self, ease: float, rating: Rating) -> float:
        bonus = self.config.ease_bonus.get(rating, 0.0)
        bonus = max(0.0, min(bonus, self.config.max_ease_delta))
        return ease + bonus

    @staticmethod
    def _load_adjustment(cognitive_load: float) -> float:
        """High load stretches intervals, low load tightens them."""
        if cognitive_load > 1.5:
            return 1.2
        if cognitive_load > 1.2:
            return 1.1
        if cognitive_load < 0.8:
            return 0.9
        return 1.0

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def is_card_due(self, card: Flashcard) -> bool:
        """Check if a card is due for review."""
        return card.is_due(self.clock.now())

    def get_due_cards(self, cards: Iterable[Flashcard]) -> list[Flashcard]:
        """
        Get cards due for review, most overdue first.

        Ties are broken by creation time, then id, so the order is stable.
        """
        now = self.clock.now()
        due = [card for card in cards if card.is_due(now)]
        due.sort(key=lambda c: (c.next_review, c.created, c.id))
        return due

    def predict_forgetting_probability(self, card: Flashcard) -> float:
        """
        Probability the card has been forgotten right now (0-1).

        Ebbinghaus-style curve with stability = interval * ease factor,
        measured from the last review (or creation).
        """
        anchor = card.last_reviewed or card.created
        elapsed_days = (self.clock.now() - anchor).total_seconds() / 86400
        if elapsed_days <= 0:
            return 0.0
        stability = max(card.interval * card.ease_factor, 1e-6)
        retention = math.exp(-elapsed_days / stability)
        return 1.0 - max(0.0, min(1.0, retention))

    def _risk_score(self, card: Flashcard) -> float:
        return self.predict_forgetting_probability(card) * (1.0 + card.failure_rate)

    def get_at_risk_cards(self, cards: Iterable[Flashcard]) -> list[Flashcard]:
        """
        Cards not yet due that are likely to be forgotten soon.

        A card is at risk when its forgetting probability, amplified by its
        failure history, reaches the threshold, or when its ease factor sits
        near the floor. Highest risk first.
        """
        now = self.clock.now()
        ease_limit = self.config.minimum_ease + self.config.ease_risk_margin

        at_risk: list[tuple[float, Flashcard]] = []
        for card in cards:
            if card.is_due(now):
                continue
            score = self._risk_score(card)
            if score >= self.config.risk_threshold or card.ease_factor <= ease_limit:
                at_risk.append((score, card))

        at_risk.sort(key=lambda pair: (-pair[0], pair[1].next_review, pair[1].id))
        return [card for _, card in at_risk]

    # -------------------------------------------------------------------------
    # Cognitive load & session sizing
    # -------------------------------------------------------------------------

    def calculate_cognitive_load(self, recent_sessions: Iterable[StudySession]) -> float:
        """
        Estimate the learner's current cognitive load.

        Factors that increase load:
        - Abandoned (incomplete) sessions
        - Poor recent accuracy
        - Many sessions in the last 24 hours
        - Very long sessions

        Returns:
            Load in [min_cognitive_load, max_cognitive_load]; 1.0 is neutral
        """
        cfg = self.config
        sessions = sorted(recent_sessions, key=lambda s: s.start_time)
        sessions = sessions[-cfg.cognitive_load_window :]
        if not sessions:
            return 1.0

        load = 1.0

        incomplete = sum(1 for s in sessions if not s.completed)
        load += cfg.incompletion_weight * incomplete / len(sessions)

        accuracies = [s.accuracy for s in sessions if s.accuracy is not None]
        if accuracies:
            performance = sum(accuracies) / len(accuracies)
            if performance < 0.3:
                load += 0.4
            elif performance < 0.5:
                load += 0.2
            elif performance > 0.8:
                load -= 0.2

        now = self.clock.now()
        last_day = sum(1 for s in sessions if s.started_within(now, timedelta(days=1)))
        if last_day > 4:
            load += 0.3
        elif last_day > 2:
            load += 0.1

        if any(s.duration > cfg.long_session_minutes for s in sessions):
            load += 0.1

        load = max(cfg.min_cognitive_load, min(cfg.max_cognitive_load, load))
        return round(load, 4)

    def get_optimal_session_size(
        self,
        cognitive_load: float,
        due_count: int,
        available_minutes: float | None = None,
    ) -> int:
        """
        Session size for the current load.

        Non-increasing in load, non-decreasing in due_count up to
        max_session_size. Zero only when nothing is due.

        Args:
            cognitive_load: Current load (1.0 is neutral)
            due_count: Number of due cards
            available_minutes: Optional study time; caps the size at
                available_minutes / minutes_per_card (at least 1 card)
        """
        if due_count < 0:
            raise ValueError(f"due_count must be >= 0, got {due_count}")
        if available_minutes is not None and available_minutes < 0:
            raise ValueError(f"available_minutes must be >= 0, got {available_minutes}")
        if due_count == 0:
            return 0

        base = self.config.min_session_size
        for bound, size in self.config.session_size_tiers:
            if cognitive_load < bound:
                base = size
                break

        size = min(base, due_count, self.config.max_session_size)
        if available_minutes is not None:
            size = min(size, int(available_minutes // self.config.minutes_per_card))
        return max(1, size)

    def is_mastered(self, card: Flashcard) -> bool:
        return card.interval >= self.config.mastery_interval

    # -------------------------------------------------------------------------
    # Learning insights
    # -------------------------------------------------------------------------

    SUGGESTION_NO_DATA = "Finish a review session to see how well you are retaining cards."
    SUGGESTION_LOW = (
        "Focus on understanding concepts rather than memorization. "
        "Consider breaking complex topics into smaller pieces."
    )
    SUGGESTION_HIGH = (
        "Excellent retention! Consider increasing difficulty or adding more challenging material."
    )
    SUGGESTION_STEADY = "Good progress! Maintain consistent daily review sessions for optimal results."

    def _is_struggling(self, card: Flashcard) -> bool:
        if card.reviews == 0:
            return False
        near_floor = card.ease_factor <= self.config.minimum_ease + self.config.ease_risk_margin
        return near_floor or card.failure_rate >= 0.5

    def analyze_learning_patterns(
        self,
        cards: Iterable[Flashcard],
        sessions: Iterable[StudySession],
    ) -> LearningInsights:
        """
        Summarize retention and suggest how to study next.

        Retention is the share of reviews not rated 'again', weighted by
        the cards studied in each session. Categories holding a card with
        an ease factor near the floor, or failed on at least half of its
        reviews, are reported as difficult.
        """
        cfg = self.config
        reviewed = [s for s in sessions if s.accuracy is not None and s.cards_studied > 0]
        total = sum(s.cards_studied for s in reviewed)

        retention = None
        if total:
            retention = round(sum(s.accuracy * s.cards_studied for s in reviewed) / total, 3)

        difficult = sorted({c.category for c in cards if self._is_struggling(c)})

        if retention is None:
            suggestion = self.SUGGESTION_NO_DATA
        elif retention < cfg.low_retention:
            suggestion = self.SUGGESTION_LOW
        elif retention > cfg.high_retention:
            suggestion = self.SUGGESTION_HIGH
        else:
            suggestion = self.SUGGESTION_STEADY

        return LearningInsights(
            average_retention=retention,
            difficult_categories=difficult,
            suggestion=suggestion,
        )
