"""Key/value store for JSON blobs kept in the local database."""
from __future__ import annotations

import json
from typing import Any, Callable, Optional

from sqlmodel import Session

from datetime_utils import utc_now
from models.local_value import LocalValue
from storage.db import get_session


def _serialise(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


class LocalValueStore:
    """High level helper around the ``localvalue`` table.

    Each key holds one JSON document which is replaced wholesale on every write,
    inside a single transaction.
    """

    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    def get_raw(self, key: str) -> Optional[str]:
        with self._session_factory() as session:
            row = session.get(LocalValue, key)
            return row.value if row else None

    def get_json(self, key: str, default: Any = None) -> Any:
        """Return the decoded value for ``key``; ``default`` if missing or unreadable."""

        payload = self.get_raw(key)
        if payload is None:
            return default
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            return default

    def set_json(self, key: str, value: Any) -> None:
        payload = _serialise(value)
        with self._session_factory() as session:
            row = session.get(LocalValue, key)
            if row is None:
                row = LocalValue(key=key, value=payload, updated_at=utc_now())
            else:
                row.value = payload
                row.updated_at = utc_now()
            session.add(row)
            session.commit()

    def delete(self, key: str) -> None:
        with self._session_factory() as session:
            row = session.get(LocalValue, key)
            if row is not None:
                session.delete(row)
                session.commit()


__all__ = ["LocalValueStore"]
