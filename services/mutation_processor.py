from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from googleapiclient.errors import HttpError

from core.log import get_sync_logger
from models.queue_item import QueueItem


logger = get_sync_logger("processor")

Handler = Callable[[str, Any], Any]


class VersionConflict(Exception):
    """Raised by a remote handler when the stored record diverged from the local one."""

    def __init__(self, remote: Dict[str, Any], message: str = "Version conflict"):
        super().__init__(message)
        self.remote = remote


@dataclass(frozen=True)
class ProcessResult:
    ok: bool
    reason: Optional[str] = None
    conflict: Optional[Dict[str, Any]] = None

    @classmethod
    def success(cls) -> "ProcessResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> "ProcessResult":
        return cls(ok=False, reason=reason)


def _http_status(exc: HttpError) -> int:
    status = getattr(exc, "resp", None) and getattr(exc.resp, "status", None)
    return int(status or 0)


class MutationProcessor:
    """Applies a single queued mutation to the remote store.

    Handlers are looked up by ``(entity_type, action)``; create and update share the
    upsert handler. Combinations without a handler succeed without a remote call so
    that an unimplemented entity type never stalls the queue.
    """

    def __init__(self, identity: Callable[[], Optional[str]]):
        self.identity = identity
        self._handlers: Dict[Tuple[str, str], Tuple[str, Handler]] = {}

    def register(
        self,
        entity_type: str,
        *,
        upsert: Optional[Handler] = None,
        delete: Optional[Handler] = None,
    ) -> None:
        if upsert is not None:
            self._handlers[(entity_type, "create")] = ("upsert", upsert)
            self._handlers[(entity_type, "update")] = ("upsert", upsert)
        if delete is not None:
            self._handlers[(entity_type, "delete")] = ("delete", delete)

    def register_remote(self, remote, entity_types: Iterable[str]) -> None:
        """Route every type in ``entity_types`` to ``remote.upsert`` / ``remote.delete``."""

        for entity_type in entity_types:

            def _upsert(user_id, entity, _type=entity_type):
                return remote.upsert(_type, user_id, entity)

            def _delete(user_id, entity_id, _type=entity_type):
                return remote.delete(_type, user_id, entity_id)

            self.register(entity_type, upsert=_upsert, delete=_delete)

    def supports(self, entity_type: str, action: str) -> bool:
        return (entity_type, action) in self._handlers

    async def process(self, item: QueueItem) -> ProcessResult:
        try:
            user_id = self.identity()
        except Exception as exc:
            logger.warning("Identity lookup failed for %s: %s", item.id, exc)
            return ProcessResult.failure(f"Identity lookup failed: {exc}")
        if not user_id:
            return ProcessResult.failure("No user ID available")

        entry = self._handlers.get((item.entity_type, item.action))
        if entry is None:
            logger.info("Sync for %s/%s not implemented; skipping %s", item.entity_type, item.action, item.id)
            return ProcessResult.success()

        kind, handler = entry
        if kind == "delete":
            argument = item.entity_id
            if argument is None:
                return ProcessResult.failure("Missing entity id for delete")
        else:
            argument = dict(item.data)

        try:
            await self._call(handler, user_id, argument)
        except VersionConflict as exc:
            logger.info("Remote reported a version conflict for %s %s", item.entity_type, item.id)
            return ProcessResult(ok=False, reason=str(exc), conflict=exc.remote)
        except HttpError as exc:
            code = _http_status(exc)
            logger.warning("Push %s %s failed with %s", item.action, item.entity_type, code)
            return ProcessResult.failure(f"HTTP {code}: {exc}")
        except Exception as exc:
            logger.warning("Push %s %s failed: %s", item.action, item.entity_type, exc)
            return ProcessResult.failure(str(exc) or exc.__class__.__name__)
        return ProcessResult.success()

    @staticmethod
    async def _call(handler: Handler, user_id: str, argument: Any) -> Any:
        if inspect.iscoroutinefunction(handler):
            return await handler(user_id, argument)
        result = await asyncio.to_thread(handler, user_id, argument)
        if inspect.isawaitable(result):
            result = await result
        return result


__all__ = ["MutationProcessor", "ProcessResult", "VersionConflict"]
