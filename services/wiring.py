"""Builds the process-wide sync manager from its collaborators."""
from __future__ import annotations

from typing import Callable, Optional

from core.settings import REMOTE
from services.connectivity import ConnectivityMonitor
from services.firestore_remote import FirestoreRemote
from services.identity import IdentityResolver, OfflineSessionStore
from services.mutation_processor import MutationProcessor
from services.queue_store import SqlQueueStore
from services.sync_manager import SyncManager
from storage.db import init_db
from storage.store import LocalValueStore


def build_sync_manager(
    auth=None,
    *,
    session_provider: Optional[Callable[[], Optional[str]]] = None,
    remote=None,
    connectivity: Optional[ConnectivityMonitor] = None,
    values: Optional[LocalValueStore] = None,
) -> SyncManager:
    """Create the single :class:`SyncManager` the application passes around.

    ``remote`` defaults to :class:`FirestoreRemote` built from ``auth``; every
    entity type it has a collection for gets upsert/delete handlers, all other
    types are accepted and skipped.
    """

    if values is None:
        init_db()
        values = LocalValueStore()
    identity = IdentityResolver(session_provider, OfflineSessionStore())
    processor = MutationProcessor(identity)
    remote = remote or FirestoreRemote(auth, REMOTE.project_id)
    processor.register_remote(remote, getattr(remote, "entity_types", REMOTE.collections))
    return SyncManager(
        SqlQueueStore(values),
        connectivity or ConnectivityMonitor(),
        processor,
        changes=values,
    )


__all__ = ["build_sync_manager"]
