from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.log import get_sync_logger
from core.settings import SYNC, SyncSettings
from datetime_utils import now_ms, utc_now
from models.conflict import ConflictDecision, ConflictStrategy, DroppedMutation
from models.queue_item import VALID_ACTIONS, QueueItem
from models.sync_status import SyncStatus
from services.conflict_resolver import ConflictResolver
from services.connectivity import ConnectivityMonitor
from services.mutation_processor import MutationProcessor, ProcessResult
from services.queue_store import QueueStore
from services.retry_scheduler import RetryScheduler
from storage.store import LocalValueStore


MAX_DROPPED_ERRORS = 50

StatusListener = Callable[[SyncStatus], None]
DropListener = Callable[[DroppedMutation], None]
ConflictListener = Callable[[QueueItem, ConflictDecision], None]


def _next_version(remote: Dict[str, Any]) -> int:
    try:
        return int(remote.get("version") or 0) + 1
    except (TypeError, ValueError):
        return 1


class SyncManager:
    """Durable FIFO queue of mutations drained against the remote store.

    All queue changes go through a single drain task, so at most one mutation is
    in flight. The queue is saved after every change.
    """

    def __init__(
        self,
        store: QueueStore,
        connectivity: ConnectivityMonitor,
        processor: MutationProcessor,
        *,
        resolver: Optional[ConflictResolver] = None,
        scheduler: Optional[RetryScheduler] = None,
        changes: Optional[LocalValueStore] = None,
        settings: SyncSettings = SYNC,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.connectivity = connectivity
        self.processor = processor
        self.resolver = resolver or ConflictResolver()
        self.scheduler = scheduler or RetryScheduler(
            settings.retry_floor_sec, settings.retry_ceiling_sec, settings.max_retries
        )
        self.changes = changes
        self.settings = settings
        self.logger = get_sync_logger()
        self._sleep = sleep
        self._clock = clock

        self._queue: List[QueueItem] = list(store.load())
        self._change_log: List[Dict[str, Any]] = []
        self._dropped_errors: List[str] = []
        self._processing = False
        self.last_sync_time: Optional[datetime] = None

        self._listeners: List[StatusListener] = []
        self._drop_listeners: List[DropListener] = []
        self._conflict_listeners: List[ConflictListener] = []

        self._drain_task: Optional[asyncio.Task] = None
        self._timer_task: Optional[asyncio.Task] = None
        self.logger.info("Sync queue hydrated with %d pending item(s)", len(self._queue))

    # ------------------------------------------------------------------
    # Lifecycle
    def start(self) -> None:
        """Hook connectivity events and start the periodic drain timer."""

        if self._timer_task is not None and not self._timer_task.done():
            return
        self.connectivity.subscribe(self._on_connectivity_change)
        self._timer_task = asyncio.get_running_loop().create_task(self._periodic())
        self._trigger_drain()

    async def shutdown(self) -> None:
        self.connectivity.unsubscribe(self._on_connectivity_change)
        for task in (self._timer_task, self._drain_task):
            if task is None or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._timer_task = None
        self._drain_task = None

    # ------------------------------------------------------------------
    # Public API
    def enqueue(self, action: str, entity_type: str, payload: Optional[Dict[str, Any]]) -> QueueItem:
        if action not in VALID_ACTIONS:
            raise ValueError(f"Unsupported action: {action}")
        if not entity_type:
            raise ValueError("entity_type is required")
        item = QueueItem(action=action, entity_type=entity_type, data=dict(payload or {}))
        self._queue.append(item)
        self._persist()
        self.logger.debug("Queued %s %s as %s", action, entity_type, item.id)
        self._notify()
        if self.connectivity.is_online:
            self._trigger_drain()
        return item

    def track_change(self, entity_type: str, action: str, data: Dict[str, Any]) -> QueueItem:
        """Version the record, append it to the local change log and queue it."""

        versioned = dict(data or {})
        try:
            versioned["version"] = int(versioned.get("version") or 0) + 1
        except (TypeError, ValueError):
            versioned["version"] = 1
        versioned["updatedAt"] = now_ms()

        changes = self.get_change_log()
        changes.append(
            {"type": entity_type, "action": action, "data": versioned, "timestamp": now_ms()}
        )
        changes = changes[-self.settings.change_log_limit :]
        if self.changes is not None:
            self.changes.set_json(self.settings.changes_key, changes)
        else:
            self._change_log = changes

        return self.enqueue(action, entity_type, versioned)

    def get_change_log(self) -> List[Dict[str, Any]]:
        if self.changes is None:
            return list(self._change_log)
        stored = self.changes.get_json(self.settings.changes_key, [])
        return list(stored) if isinstance(stored, list) else []

    async def force_sync_now(self) -> None:
        if not self.connectivity.is_online:
            return
        task = self._trigger_drain()
        if task is not None:
            await asyncio.shield(task)

    def get_status(self) -> SyncStatus:
        errors = [item.last_error for item in self._queue if item.last_error]
        errors.extend(self._dropped_errors)
        return SyncStatus(
            is_online=self.connectivity.is_online,
            is_syncing=self._processing,
            queue_size=len(self._queue),
            last_sync_time=self.last_sync_time,
            errors=errors,
        )

    def get_queue_items(self) -> List[QueueItem]:
        return [QueueItem.from_dict(item.to_dict()) for item in self._queue]

    def clear_queue(self) -> None:
        if self._queue:
            self.logger.warning("Clearing %d pending mutation(s) on request", len(self._queue))
        self._queue.clear()
        self._dropped_errors.clear()
        self.scheduler.reset()
        self._persist()
        self._notify()

    def acknowledge_dropped(self) -> None:
        self._dropped_errors.clear()
        self._notify()

    # ----- listeners -----
    def subscribe(self, listener: StatusListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: StatusListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def subscribe_dropped(self, listener: DropListener) -> None:
        if listener not in self._drop_listeners:
            self._drop_listeners.append(listener)

    def unsubscribe_dropped(self, listener: DropListener) -> None:
        if listener in self._drop_listeners:
            self._drop_listeners.remove(listener)

    def subscribe_conflicts(self, listener: ConflictListener) -> None:
        if listener not in self._conflict_listeners:
            self._conflict_listeners.append(listener)

    def unsubscribe_conflicts(self, listener: ConflictListener) -> None:
        if listener in self._conflict_listeners:
            self._conflict_listeners.remove(listener)

    # ------------------------------------------------------------------
    # Drain
    def _trigger_drain(self) -> Optional[asyncio.Task]:
        if self._drain_task is not None and not self._drain_task.done():
            return self._drain_task
        if not self.settings.enabled or not self.connectivity.is_online or not self._queue:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.debug("No running event loop; drain deferred to the next trigger")
            return None
        self._drain_task = loop.create_task(self._drain())
        self._drain_task.add_done_callback(self._on_drain_done)
        return self._drain_task

    def _on_drain_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Sync drain crashed: %s", exc, exc_info=exc)

    async def _drain(self) -> None:
        self._processing = True
        self.scheduler.begin()
        self._notify()
        try:
            while self._queue and self.connectivity.is_online:
                item = self._queue[0]
                try:
                    result = await self.processor.process(item)
                except Exception as exc:
                    self.logger.exception("Processing %s raised", item.id)
                    result = ProcessResult.failure(str(exc) or exc.__class__.__name__)
                if not self._queue or self._queue[0] is not item:
                    # the queue was cleared while the call was in flight
                    continue

                if result.ok:
                    self._complete(item)
                    continue

                reason = result.reason or "Unknown error"
                if result.conflict is not None:
                    if self._apply_conflict(item, result.conflict):
                        continue
                    reason = "Manual conflict resolution required"

                delay = self.scheduler.record_failure(item)
                item.last_error = reason
                if delay is None:
                    self._drop(item, reason)
                    continue

                self._persist()
                self._notify()
                self.logger.warning(
                    "Sync failed for %s (attempt %d): %s; retrying in %.1fs",
                    item.id,
                    item.retry_count,
                    reason,
                    delay,
                )
                await self._sleep(delay)
        finally:
            self._processing = False
            self.scheduler.finish()
            self._notify()

    def _complete(self, item: QueueItem) -> None:
        self._queue.pop(0)
        self.scheduler.record_success()
        self.last_sync_time = self._clock()
        self._persist()
        self.logger.info("Synced %s %s (%s)", item.action, item.entity_type, item.id)
        self._notify()

    def _drop(self, item: QueueItem, reason: str) -> None:
        self._queue.remove(item)
        event = DroppedMutation(item=item, reason=reason)
        self._dropped_errors.append(event.describe())
        del self._dropped_errors[:-MAX_DROPPED_ERRORS]
        self._persist()
        self.logger.error("Max retries reached for sync item %s: %s", item.id, reason)
        for listener in list(self._drop_listeners):
            try:
                listener(event)
            except Exception:
                self.logger.exception("Drop listener error")
        self._notify()

    def _apply_conflict(self, item: QueueItem, remote: Dict[str, Any]) -> bool:
        """Apply the resolver's decision; ``False`` means it needs a human."""

        decision = self.resolver.resolve(item.data, remote, item.entity_type)
        self.logger.info("Conflict on %s %s resolved as %s", item.entity_type, item.id, decision.strategy.value)
        for listener in list(self._conflict_listeners):
            try:
                listener(item, decision)
            except Exception:
                self.logger.exception("Conflict listener error")

        if decision.strategy == ConflictStrategy.MANUAL:
            return False
        if decision.strategy == ConflictStrategy.REMOTE:
            self._complete(item)
            return True

        winner = item.data if decision.strategy == ConflictStrategy.LOCAL else decision.merged_data
        item.data = {**(winner or {}), "version": _next_version(remote)}
        item.retry_count += 1
        item.last_error = "Version conflict"
        if self.scheduler.exhausted(item):
            self._drop(item, "Version conflict")
            return True
        self._persist()
        self._notify()
        return True

    async def _periodic(self) -> None:
        while True:
            await asyncio.sleep(self.settings.periodic_interval_sec)
            if self.connectivity.is_online and self._queue:
                self._trigger_drain()

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            self.logger.info("Back online with %d pending item(s)", len(self._queue))
            self._trigger_drain()
        self._notify()

    # ------------------------------------------------------------------
    def _persist(self) -> None:
        self.store.save(self._queue)

    def _notify(self) -> None:
        status = self.get_status()
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                self.logger.exception("Sync listener error")


__all__ = ["SyncManager"]
