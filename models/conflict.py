"""Conflict and drop events produced while draining the queue."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from datetime_utils import utc_now
from models.queue_item import QueueItem


class ConflictStrategy(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    MERGE = "merge"
    MANUAL = "manual"


@dataclass(frozen=True)
class ConflictDecision:
    strategy: ConflictStrategy
    merged_data: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class DroppedMutation:
    """A mutation removed from the queue after exhausting its retries."""

    item: QueueItem
    reason: str
    dropped_at: datetime = field(default_factory=utc_now)

    def describe(self) -> str:
        return f"Dropped {self.item.action} {self.item.entity_type} {self.item.id}: {self.reason}"


__all__ = ["ConflictDecision", "ConflictStrategy", "DroppedMutation"]
