from datetime import datetime, timezone

from models.conflict import ConflictStrategy
from services.conflict_resolver import ConflictResolver, resolve_conflict


def test_newer_local_wins():
    decision = resolve_conflict({"id": "t1", "updatedAt": 10}, {"id": "t1", "updatedAt": 5}, "transaction")
    assert decision.strategy is ConflictStrategy.LOCAL
    assert decision.merged_data is None


def test_newer_remote_wins():
    decision = ConflictResolver().resolve({"id": "t1", "updatedAt": 5}, {"id": "t1", "updatedAt": 10}, "transaction")
    assert decision.strategy is ConflictStrategy.REMOTE


def test_tie_merges_keeping_remote_metadata():
    local = {"id": "local-id", "createdAt": 3, "updatedAt": 7, "amount": 20, "note": "dinner"}
    remote = {"id": "t1", "createdAt": 1, "updatedAt": 7, "amount": 10, "category": "food"}

    decision = resolve_conflict(local, remote, "transaction")

    assert decision.strategy is ConflictStrategy.MERGE
    assert decision.merged_data == {
        "id": "t1",
        "createdAt": 1,
        "updatedAt": 7,
        "amount": 20,
        "note": "dinner",
        "category": "food",
    }


def test_created_at_used_when_updated_at_missing():
    decision = resolve_conflict({"createdAt": 4}, {"createdAt": 2}, "note")
    assert decision.strategy is ConflictStrategy.LOCAL


def test_zero_updated_at_falls_back_to_created_at():
    decision = resolve_conflict({"updatedAt": 0, "createdAt": 4}, {"updatedAt": 3}, "note")
    assert decision.strategy is ConflictStrategy.LOCAL


def test_mixed_timestamp_representations():
    later = datetime(2024, 5, 1, tzinfo=timezone.utc)
    decision = resolve_conflict(
        {"updatedAt": "2024-04-30T10:00:00Z"},
        {"updatedAt": later},
        "card",
    )
    assert decision.strategy is ConflictStrategy.REMOTE


def test_missing_timestamps_merge():
    decision = resolve_conflict({"id": "a", "x": 1}, {"id": "b", "y": 2}, "budget")
    assert decision.strategy is ConflictStrategy.MERGE
    assert decision.merged_data["id"] == "b"
    assert decision.merged_data["updatedAt"] == 0
