import threading

import httplib2
from googleapiclient.errors import HttpError

from models.queue_item import QueueItem
from services.mutation_processor import MutationProcessor, VersionConflict


def _processor(user="u1"):
    return MutationProcessor(lambda: user)


async def test_create_and_update_share_upsert_delete_gets_id():
    calls = []

    async def upsert(user_id, entity):
        calls.append(("upsert", user_id, entity))

    async def delete(user_id, entity_id):
        calls.append(("delete", user_id, entity_id))

    processor = _processor()
    processor.register("transaction", upsert=upsert, delete=delete)

    for action in ("create", "update", "delete"):
        result = await processor.process(QueueItem(action, "transaction", {"id": "t1", "amount": 1500}))
        assert result.ok

    assert calls == [
        ("upsert", "u1", {"id": "t1", "amount": 1500}),
        ("upsert", "u1", {"id": "t1", "amount": 1500}),
        ("delete", "u1", "t1"),
    ]


async def test_missing_identity_is_a_failure():
    processor = MutationProcessor(lambda: None)
    processor.register("transaction", upsert=lambda user_id, entity: None)

    result = await processor.process(QueueItem("create", "transaction", {"id": "t1"}))

    assert not result.ok
    assert result.reason == "No user ID available"


async def test_raising_identity_is_a_failure():
    def identity():
        raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

    processor = MutationProcessor(identity)
    processor.register("transaction", upsert=lambda user_id, entity: None)

    result = await processor.process(QueueItem("create", "transaction", {"id": "t1"}))

    assert not result.ok
    assert result.reason.startswith("Identity lookup failed")


async def test_unregistered_type_is_noop_success():
    processor = _processor()
    assert not processor.supports("budget", "create")
    result = await processor.process(QueueItem("create", "budget", {"id": "b1"}))
    assert result.ok


async def test_delete_without_id_fails():
    processor = _processor()
    processor.register("card", delete=lambda user_id, entity_id: None)
    result = await processor.process(QueueItem("delete", "card", {}))
    assert not result.ok
    assert "Missing entity id" in result.reason


async def test_blocking_handler_runs_off_the_event_loop():
    threads = []
    main_thread = threading.get_ident()

    def upsert(user_id, entity):
        threads.append(threading.get_ident())

    processor = _processor()
    processor.register("note", upsert=upsert)
    result = await processor.process(QueueItem("create", "note", {"id": "n1"}))

    assert result.ok
    assert threads and threads[0] != main_thread


async def test_http_error_reason_carries_status():
    def upsert(user_id, entity):
        raise HttpError(httplib2.Response({"status": 503}), b"backend unavailable")

    processor = _processor()
    processor.register("payment", upsert=upsert)
    result = await processor.process(QueueItem("update", "payment", {"id": "p1"}))

    assert not result.ok
    assert result.reason.startswith("HTTP 503")


async def test_generic_exception_becomes_failure():
    async def upsert(user_id, entity):
        raise ConnectionError("Network unreachable")

    processor = _processor()
    processor.register("payment", upsert=upsert)
    result = await processor.process(QueueItem("create", "payment", {"id": "p1"}))
    assert result == result.failure("Network unreachable")


async def test_version_conflict_returns_remote_copy():
    async def upsert(user_id, entity):
        raise VersionConflict({"id": "t1", "version": 4})

    processor = _processor()
    processor.register("transaction", upsert=upsert)
    result = await processor.process(QueueItem("update", "transaction", {"id": "t1", "version": 2}))

    assert not result.ok
    assert result.conflict == {"id": "t1", "version": 4}


async def test_register_remote_routes_by_type(remote):
    processor = _processor()
    processor.register_remote(remote, ["card"])

    await processor.process(QueueItem("create", "card", {"id": "c1", "bankName": "Akbank"}))
    await processor.process(QueueItem("delete", "card", {"id": "c1"}))

    assert [call[:3] for call in remote.calls] == [("upsert", "card", "u1"), ("delete", "card", "u1")]
    assert processor.supports("card", "update")
    assert not processor.supports("transaction", "create")
