import asyncio
import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# keep the log file and data directory out of the real user profile
os.environ.setdefault("COSTIK_DATA_DIR", tempfile.mkdtemp(prefix="costik-tests-"))

import pytest
from sqlmodel import Session, SQLModel, create_engine

from models.local_value import LocalValue  # noqa: F401
from services.mutation_processor import VersionConflict
from storage.store import LocalValueStore


class FakeRemote:
    """In-memory remote store keyed by ``(entity_type, user_id, entity_id)``."""

    entity_types = ["transaction", "payment", "card", "note"]

    def __init__(self, *, delay: float = 0.0, versioned: bool = False):
        self.records = {}
        self.calls = []
        self.failures = {}
        self.delay = delay
        self.versioned = versioned
        self.in_flight = 0
        self.max_in_flight = 0
        self._next_id = 0

    def fail(self, entity_id, times, message="Network unreachable"):
        self.failures[entity_id] = [times, message]

    async def _enter(self, entity_id):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        pending = self.failures.get(entity_id)
        if pending and pending[0] > 0:
            pending[0] -= 1
            raise ConnectionError(pending[1])

    async def upsert(self, entity_type, user_id, entity):
        entity_id = entity.get("id")
        if not entity_id:
            self._next_id += 1
            entity_id = f"gen-{self._next_id}"
        self.calls.append(("upsert", entity_type, user_id, dict(entity)))
        await self._enter(entity_id)
        key = (entity_type, user_id, entity_id)
        stored = self.records.get(key)
        if self.versioned and stored is not None:
            if int(entity.get("version") or 0) <= int(stored.get("version") or 0):
                raise VersionConflict(dict(stored))
        self.records[key] = {**(stored or {}), **entity, "id": entity_id}
        return entity_id

    async def delete(self, entity_type, user_id, entity_id):
        self.calls.append(("delete", entity_type, user_id, entity_id))
        await self._enter(entity_id)
        self.records.pop((entity_type, user_id, entity_id), None)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture()
def session_factory():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)

    def factory():
        return Session(engine)

    return factory


@pytest.fixture()
def values(session_factory):
    return LocalValueStore(session_factory)


@pytest.fixture()
def remote():
    return FakeRemote()


@pytest.fixture()
def recording_sleep():
    return RecordingSleep()


@pytest.fixture()
def remote_factory():
    return FakeRemote
