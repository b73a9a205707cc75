"""
Error taxonomy for the spaced repetition core.

Every error here is recoverable: the caller fixes the input or retries
the failed operation.
"""

from __future__ import annotations


class SRSError(Exception):
    """Base class for all spaced repetition errors."""

    pass


class InvalidRatingError(SRSError, ValueError):
    """Raised when a rating is outside the again..perfect vocabulary."""

    def __init__(self, rating: object):
        self.rating = rating
        super().__init__(
            f"Invalid rating {rating!r}: expected one of again, hard, good, easy, perfect (1-5)"
        )


class NoCardsDueError(SRSError):
    """Raised when a review session is started with zero due cards."""

    pass


class PersistenceError(SRSError):
    """Raised when the card store fails to read or write."""

    pass


class OutOfSequenceRatingError(SRSError):
    """Raised when a rating does not match the session's current position."""

    pass


class SessionBusyError(SRSError):
    """Raised when a rating arrives while the previous save is still in flight."""

    pass


class CardNotFoundError(SRSError, KeyError):
    """Raised when a card id does not exist in the store."""

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(card_id)

    def __str__(self) -> str:
        return f"Flashcard not found: {self.card_id}"
