"""Derived, never persisted, snapshot of the sync queue."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from datetime_utils import to_rfc3339_utc


@dataclass(frozen=True)
class SyncStatus:
    is_online: bool
    is_syncing: bool
    queue_size: int
    last_sync_time: Optional[datetime] = None
    errors: List[str] = field(default_factory=list)

    @property
    def has_problem(self) -> bool:
        return bool(self.errors) and self.queue_size > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isOnline": self.is_online,
            "isSyncing": self.is_syncing,
            "queueSize": self.queue_size,
            "lastSyncTime": to_rfc3339_utc(self.last_sync_time),
            "errors": list(self.errors),
        }


__all__ = ["SyncStatus"]
