"""Data models used by the Costik sync engine."""
from .conflict import ConflictDecision, ConflictStrategy, DroppedMutation
from .local_value import LocalValue
from .queue_item import QueueItem, VALID_ACTIONS
from .sync_status import SyncStatus

__all__ = [
    "ConflictDecision",
    "ConflictStrategy",
    "DroppedMutation",
    "LocalValue",
    "QueueItem",
    "SyncStatus",
    "VALID_ACTIONS",
]
