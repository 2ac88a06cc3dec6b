"""Pending mutation records kept in the sync queue."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from datetime_utils import now_ms


VALID_ACTIONS = ("create", "update", "delete")


def new_item_id(timestamp: Optional[int] = None) -> str:
    return f"sync_{timestamp or now_ms()}_{uuid.uuid4().hex[:9]}"


@dataclass
class QueueItem:
    action: str
    entity_type: str
    data: Dict[str, Any]
    id: str = ""
    timestamp: int = field(default_factory=now_ms)
    retry_count: int = 0
    last_error: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.id:
            self.id = new_item_id(self.timestamp)

    @property
    def entity_id(self) -> Optional[str]:
        value = (self.data or {}).get("id")
        return str(value) if value not in (None, "") else None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "action": self.action,
            "type": self.entity_type,
            "data": self.data,
            "timestamp": self.timestamp,
            "retryCount": self.retry_count,
        }
        if self.last_error:
            payload["lastError"] = self.last_error
        return payload

    @classmethod
    def from_dict(cls, raw: Any) -> "QueueItem":
        if not isinstance(raw, dict):
            raise ValueError(f"Queue entry must be an object, got {type(raw).__name__}")
        action = raw.get("action")
        if action not in VALID_ACTIONS:
            raise ValueError(f"Unsupported action: {action!r}")
        item_id = raw.get("id")
        entity_type = raw.get("type")
        if not isinstance(item_id, str) or not item_id:
            raise ValueError("Queue entry without id")
        if not isinstance(entity_type, str) or not entity_type:
            raise ValueError(f"Queue entry {item_id} without type")
        data = raw.get("data")
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Queue entry {item_id} has non-object data")
        timestamp = raw.get("timestamp")
        retry_count = raw.get("retryCount", 0)
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError(f"Queue entry {item_id} has invalid timestamp")
        if isinstance(retry_count, bool) or not isinstance(retry_count, int) or retry_count < 0:
            raise ValueError(f"Queue entry {item_id} has invalid retryCount")
        last_error = raw.get("lastError")
        return cls(
            id=item_id,
            action=action,
            entity_type=entity_type,
            data=data,
            timestamp=timestamp,
            retry_count=retry_count,
            last_error=str(last_error) if last_error else None,
        )


__all__ = ["QueueItem", "VALID_ACTIONS", "new_item_id"]
