"""
Module: scheduling

Purpose: Clock-driven event coalescing for the dashboard loop.

Key Classes:
- Debouncer: emit the latest trigger once after a quiet window
- PeriodicScheduler: count elapsed fixed intervals; stoppable
- AgeGroupCycler: rotate through age groups on scheduler ticks

Architecture Notes:
- Nothing here starts threads or timers. The owner polls with its own loop,
  and the clock is injectable so behaviour is deterministic under test.
"""

import logging
import time
from typing import Callable, Generic, TypeVar

from src.data.schemas import Bucket, BucketTable
from src.exceptions import DataValidationError
from src.features.bucketing import AGE_BUCKETS

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]  # seconds

_NOTHING = object()


def _require_positive(name: str, value_ms: float) -> None:
    if value_ms <= 0:
        raise DataValidationError(f"{name} must be positive", field=name, value=value_ms)


class Debouncer(Generic[T]):
    """Coalesce bursts of triggers into one emission after ``delay_ms`` of quiet."""

    def __init__(self, delay_ms: float, *, clock: Clock = time.monotonic) -> None:
        _require_positive("delay_ms", delay_ms)
        self.delay = delay_ms / 1000.0
        self._clock = clock
        self._payload: object = _NOTHING
        self._last_trigger = 0.0

    @property
    def pending(self) -> bool:
        return self._payload is not _NOTHING

    def trigger(self, payload: T) -> None:
        """Record a trigger; restarts the quiet window and replaces the payload."""
        self._payload = payload
        self._last_trigger = self._clock()

    def poll(self) -> T | None:
        """Emit the latest payload if the quiet window has elapsed, else None."""
        if not self.pending:
            return None
        if self._clock() - self._last_trigger < self.delay:
            return None
        return self.flush()

    def flush(self) -> T | None:
        """Emit the pending payload immediately."""
        if not self.pending:
            return None
        payload = self._payload
        self._payload = _NOTHING
        return payload  # type: ignore[return-value]

    def cancel(self) -> None:
        self._payload = _NOTHING


class PeriodicScheduler:
    """Fixed-interval ticker. A stopped scheduler never ticks again until restarted."""

    def __init__(
        self,
        interval_ms: float,
        *,
        clock: Clock = time.monotonic,
        autostart: bool = True,
    ) -> None:
        _require_positive("interval_ms", interval_ms)
        self.interval = interval_ms / 1000.0
        self._clock = clock
        self._anchor = 0.0
        self._running = False
        if autostart:
            self.start()

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._anchor = self._clock()
        self._running = True

    def stop(self) -> None:
        self._running = False

    def poll(self) -> int:
        """Number of whole intervals elapsed since the previous tick."""
        if not self._running:
            return 0
        ticks = int((self._clock() - self._anchor) // self.interval)
        if ticks > 0:
            self._anchor += ticks * self.interval
        return ticks


class AgeGroupCycler:
    """Rotate an index over the buckets of an age table."""

    def __init__(
        self,
        scheduler: PeriodicScheduler,
        table: BucketTable = AGE_BUCKETS,
    ) -> None:
        self.scheduler = scheduler
        self.table = table
        self._index = 0

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> Bucket:
        return self.table.buckets[self._index]

    def advance(self, steps: int = 1) -> int:
        self._index = (self._index + steps) % len(self.table.buckets)
        return self._index

    def poll(self) -> bool:
        """Advance by the ticks elapsed; True if the index changed."""
        ticks = self.scheduler.poll()
        if ticks == 0:
            return False
        before = self._index
        self.advance(ticks)
        logger.debug(f"Age group advanced to {self.current.label}")
        return self._index != before

    def close(self) -> None:
        """Release the timer."""
        self.scheduler.stop()
