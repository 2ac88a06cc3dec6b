from __future__ import annotations

from enum import Enum
from typing import Optional

from core.settings import SYNC
from models.queue_item import QueueItem


class SchedulerState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    BACKOFF = "backoff"


class RetryScheduler:
    """Backoff state for one queue.

    The delay starts at ``floor``, doubles after every failure up to ``ceiling`` and
    falls back to ``floor`` after a success or after an item is dropped.
    """

    def __init__(
        self,
        floor: float = SYNC.retry_floor_sec,
        ceiling: float = SYNC.retry_ceiling_sec,
        max_retries: int = SYNC.max_retries,
    ) -> None:
        if floor <= 0 or ceiling < floor:
            raise ValueError("Backoff requires 0 < floor <= ceiling")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.floor = floor
        self.ceiling = ceiling
        self.max_retries = max_retries
        self.delay = floor
        self.state = SchedulerState.IDLE

    def begin(self) -> None:
        self.state = SchedulerState.PROCESSING

    def record_success(self) -> None:
        self.delay = self.floor
        self.state = SchedulerState.PROCESSING

    def record_failure(self, item: QueueItem) -> Optional[float]:
        """Count a failed attempt; return the backoff delay, or ``None`` when exhausted."""

        item.retry_count += 1
        if item.retry_count >= self.max_retries:
            self.delay = self.floor
            self.state = SchedulerState.PROCESSING
            return None
        self.delay = min(self.delay * 2, self.ceiling)
        self.state = SchedulerState.BACKOFF
        return self.delay

    def exhausted(self, item: QueueItem) -> bool:
        return item.retry_count >= self.max_retries

    def finish(self) -> None:
        self.state = SchedulerState.IDLE

    def reset(self) -> None:
        self.delay = self.floor
        self.state = SchedulerState.IDLE


__all__ = ["RetryScheduler", "SchedulerState"]
