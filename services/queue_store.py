from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Iterable, List, Optional, Protocol

from core.log import get_sync_logger
from core.settings import QUEUE_JSON_PATH, SYNC
from models.queue_item import QueueItem
from storage.store import LocalValueStore


logger = get_sync_logger("queue")


class QueueStore(Protocol):
    def load(self) -> List[QueueItem]: ...

    def save(self, items: Iterable[QueueItem]) -> None: ...

    def clear(self) -> None: ...


def _encode(items: Iterable[QueueItem]) -> List[dict]:
    return [item.to_dict() for item in items]


def _decode(raw: Any, source: str) -> List[QueueItem]:
    """Turn persisted data into queue items, or ``[]`` when it is malformed."""

    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.error("Sync queue in %s is not a list (%s); starting empty", source, type(raw).__name__)
        return []
    try:
        return [QueueItem.from_dict(entry) for entry in raw]
    except ValueError as exc:
        logger.error("Sync queue in %s is corrupt (%s); starting empty", source, exc)
        return []


class SqlQueueStore:
    """Queue persisted as one JSON array under a well-known key of the local database."""

    def __init__(self, values: Optional[LocalValueStore] = None, key: str = SYNC.queue_key):
        self.values = values or LocalValueStore()
        self.key = key

    def load(self) -> List[QueueItem]:
        payload = self.values.get_raw(self.key)
        if payload is None:
            return []
        try:
            raw = json.loads(payload)
        except json.JSONDecodeError as exc:
            logger.error("Failed to load sync queue: %s", exc)
            return []
        return _decode(raw, f"key {self.key!r}")

    def save(self, items: Iterable[QueueItem]) -> None:
        self.values.set_json(self.key, _encode(items))

    def clear(self) -> None:
        self.values.delete(self.key)


class JsonFileQueueStore:
    """Queue persisted to a JSON file, replaced atomically on every save."""

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path or QUEUE_JSON_PATH)

    def load(self) -> List[QueueItem]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("Failed to load sync queue from %s: %s", self.path, exc)
            return []
        return _decode(raw, str(self.path))

    def save(self, items: Iterable[QueueItem]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(_encode(items), ensure_ascii=False)
        tmp = self.path.with_suffix(".tmp")
        try:
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, self.path)
        finally:
            if tmp.exists():
                try:
                    tmp.unlink()
                except OSError:
                    pass

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


__all__ = ["JsonFileQueueStore", "QueueStore", "SqlQueueStore"]
