from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class SelectionClock(ABC):
    """Stamps recent-location selections. Always UTC-aware."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class UtcSelectionClock(SelectionClock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualSelectionClock(SelectionClock):
    """
    Clock for tests and replays: time moves only through advance().
    """

    def __init__(self, start: datetime):
        if start.tzinfo is None:
            raise ValueError("ManualSelectionClock needs a timezone-aware start")
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> datetime:
        self._now += delta
        return self._now
