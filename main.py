"""Command line access to the Costik sync queue."""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from core.log import read_sync_log
from services.connectivity import ConnectivityMonitor
from services.sync_manager import SyncManager
from services.wiring import build_sync_manager


def _print_json(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def _sync_once(manager: SyncManager) -> None:
    await manager.connectivity.probe()
    if not manager.connectivity.is_online:
        print("Offline: nothing was sent.")
        return
    await manager.force_sync_now()
    await manager.shutdown()


def run(argv: Optional[List[str]] = None, manager: Optional[SyncManager] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__ or "")
    sub = parser.add_subparsers(dest="command", required=True)
    status = sub.add_parser("status", help="Print the current sync status")
    status.add_argument("--probe", action="store_true", help="Check connectivity before reporting")
    sub.add_parser("queue", help="List pending mutations in order")
    sub.add_parser("sync", help="Probe connectivity and drain the queue once")
    clear = sub.add_parser("clear", help="Discard every pending mutation")
    clear.add_argument("--yes", action="store_true", help="Confirm the reset")
    log = sub.add_parser("log", help="Show the tail of the sync log")
    log.add_argument("--lines", type=int, default=100, help="Number of lines (default: %(default)s)")
    args = parser.parse_args(argv)

    if args.command == "log":
        print(read_sync_log(args.lines))
        return 0

    # offline until a probe says otherwise
    manager = manager or build_sync_manager(connectivity=ConnectivityMonitor(initial=False))

    if args.command == "status":
        if args.probe:
            asyncio.run(manager.connectivity.probe())
        _print_json(manager.get_status().to_dict())
    elif args.command == "queue":
        _print_json([item.to_dict() for item in manager.get_queue_items()])
    elif args.command == "sync":
        asyncio.run(_sync_once(manager))
        _print_json(manager.get_status().to_dict())
    elif args.command == "clear":
        if not args.yes:
            print("Refusing to clear the queue without --yes.", file=sys.stderr)
            return 2
        manager.clear_queue()
        print("Sync queue cleared.")
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
