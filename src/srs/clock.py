"""
Clock abstraction.

Scheduling decisions depend on "now"; everything reads it through a Clock
so tests can pin time.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time (naive local datetime)."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, days: float = 0, **kwargs: float) -> datetime:
        """Move time forward and return the new instant."""
        self.current = self.current + timedelta(days=days, **kwargs)
        return self.current

    def set(self, current: datetime) -> None:
        self.current = current
