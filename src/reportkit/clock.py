from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current instant."""
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Always returns the same instant."""

    def __init__(self, instant: datetime) -> None:
        self._instant = instant

    def now(self) -> datetime:
        return self._instant


class IncrementingClock:
    """Returns ``start`` on the first call and advances by ``step`` on every call after.

    Example:
        clock = IncrementingClock(EPOCH, timedelta(milliseconds=333))
        clock.now()  # EPOCH
        clock.now()  # EPOCH + 0.333s
    """

    def __init__(self, start: datetime, step: timedelta) -> None:
        if step < timedelta(0):
            raise ValueError(f"Cannot step time by negative amount: {step}")
        self._next = start
        self._step = step

    def now(self) -> datetime:
        current = self._next
        self._next = current + self._step
        return current


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Default clock for production use
DEFAULT_CLOCK: Clock = SystemClock()
