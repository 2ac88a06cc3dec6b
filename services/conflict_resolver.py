"""Last-writer-wins conflict policy for records edited on several devices."""
from __future__ import annotations

from typing import Any, Dict, Mapping

from datetime_utils import coerce_epoch_ms
from models.conflict import ConflictDecision, ConflictStrategy


def _record_timestamp(record: Mapping[str, Any]) -> float:
    return coerce_epoch_ms(record.get("updatedAt") or record.get("createdAt"))


def merge_records(local: Mapping[str, Any], remote: Mapping[str, Any]) -> Dict[str, Any]:
    """Local fields over remote ones; identity and creation time stay remote."""

    merged = {**remote, **local}
    merged["id"] = remote.get("id")
    merged["createdAt"] = remote.get("createdAt")
    merged["updatedAt"] = max(
        coerce_epoch_ms(local.get("updatedAt")),
        coerce_epoch_ms(remote.get("updatedAt")),
    )
    return merged


def resolve_conflict(
    local: Mapping[str, Any], remote: Mapping[str, Any], entity_type: str
) -> ConflictDecision:
    local_ts = _record_timestamp(local)
    remote_ts = _record_timestamp(remote)
    if local_ts > remote_ts:
        return ConflictDecision(ConflictStrategy.LOCAL)
    if remote_ts > local_ts:
        return ConflictDecision(ConflictStrategy.REMOTE)
    return ConflictDecision(ConflictStrategy.MERGE, merged_data=merge_records(local, remote))


class ConflictResolver:
    def resolve(
        self, local: Mapping[str, Any], remote: Mapping[str, Any], entity_type: str
    ) -> ConflictDecision:
        return resolve_conflict(local, remote, entity_type)


__all__ = ["ConflictResolver", "merge_records", "resolve_conflict"]
