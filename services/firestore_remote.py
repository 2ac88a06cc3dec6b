"""Firestore REST remote for queued mutations.

Documents live under ``users/{uid}/{collection}/{id}``. Writes are plain
last-write-wins, so this remote never reports a version conflict.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from core.log import get_sync_logger
from core.settings import REMOTE
from datetime_utils import to_rfc3339_utc


logger = get_sync_logger("firestore")


def encode_value(value: Any) -> Dict[str, Any]:
    """Convert a JSON-ish Python value into a Firestore typed value."""

    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": to_rfc3339_utc(value)}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot store {type(value).__name__} in Firestore")


def encode_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(key): encode_value(value) for key, value in data.items()}


class FirestoreRemote:
    def __init__(
        self,
        auth,
        project_id: Optional[str] = REMOTE.project_id,
        *,
        database: str = REMOTE.database,
        collections: Optional[Mapping[str, str]] = None,
        service=None,
    ):
        self.auth = auth
        self.project_id = project_id
        self.database = database
        self.collections = dict(collections or REMOTE.collections)
        self.service = service

    @property
    def entity_types(self):
        return list(self.collections)

    # ------------------------------------------------------------------
    # Public API
    def upsert(self, entity_type: str, user_id: str, entity: Mapping[str, Any]) -> Optional[str]:
        documents = self._documents()
        body = {"fields": encode_fields({k: v for k, v in entity.items() if k != "id"})}
        entity_id = entity.get("id")
        if not entity_id:
            response = documents.createDocument(
                parent=self._parent(user_id),
                collectionId=self._collection(entity_type),
                body=body,
            ).execute()
            name = response.get("name", "")
            new_id = name.rsplit("/", 1)[-1] if name else None
            logger.debug("Created %s %s", entity_type, new_id)
            return new_id

        # merge semantics: only the fields we send are touched
        documents.patch(
            name=self._document_name(entity_type, user_id, str(entity_id)),
            body=body,
            updateMask_fieldPaths=sorted(body["fields"]),
        ).execute()
        return str(entity_id)

    def delete(self, entity_type: str, user_id: str, entity_id: str) -> None:
        documents = self._documents()
        try:
            documents.delete(name=self._document_name(entity_type, user_id, entity_id)).execute()
        except HttpError as exc:
            status = getattr(exc, "resp", None) and getattr(exc.resp, "status", None)
            if status and int(status) == 404:
                logger.debug("%s %s already absent remotely", entity_type, entity_id)
                return
            raise

    # ------------------------------------------------------------------
    # Service helpers
    def _ensure_service(self) -> None:
        if self.service is not None:
            return
        creds = None
        if hasattr(self.auth, "get_credentials") and callable(self.auth.get_credentials):
            creds = self.auth.get_credentials()
        else:
            creds = getattr(self.auth, "creds", None) or getattr(self.auth, "credentials", None)
        if creds is None:
            raise RuntimeError("Credentials are not available for Firestore access")
        self.service = build("firestore", "v1", credentials=creds, cache_discovery=False)

    def _documents(self):
        if not self.project_id:
            raise RuntimeError("Firestore project id is not configured")
        self._ensure_service()
        return self.service.projects().databases().documents()

    def _collection(self, entity_type: str) -> str:
        try:
            return self.collections[entity_type]
        except KeyError:
            raise ValueError(f"No Firestore collection for {entity_type!r}") from None

    def _parent(self, user_id: str) -> str:
        return (
            f"projects/{self.project_id}/databases/{self.database}/documents/"
            f"{REMOTE.users_collection}/{user_id}"
        )

    def _document_name(self, entity_type: str, user_id: str, entity_id: str) -> str:
        return f"{self._parent(user_id)}/{self._collection(entity_type)}/{entity_id}"


__all__ = ["FirestoreRemote", "encode_fields", "encode_value"]
