"""Online/offline tracking for the sync engine.

The monitor is a heuristic: a host can look online while the remote store is
unreachable, so remote failures are still handled as ordinary retryable errors.
"""
from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

from core.log import get_sync_logger
from core.settings import CONNECTIVITY


logger = get_sync_logger("connectivity")

Listener = Callable[[bool], None]


class ConnectivityMonitor:
    def __init__(
        self,
        initial: bool = True,
        *,
        probe_host: str = CONNECTIVITY.probe_host,
        probe_port: int = CONNECTIVITY.probe_port,
        timeout: float = CONNECTIVITY.timeout_sec,
    ) -> None:
        self._online = bool(initial)
        self.probe_host = probe_host
        self.probe_port = probe_port
        self.timeout = timeout
        self._listeners: List[Listener] = []
        self._poll_task: Optional[asyncio.Task] = None

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_online(self, value: bool) -> None:
        value = bool(value)
        if value == self._online:
            return
        self._online = value
        logger.info("Connectivity changed: %s", "online" if value else "offline")
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("Connectivity listener failed")

    async def probe(self) -> bool:
        """Try a TCP connection to the probe endpoint and record the outcome."""

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.probe_host, self.probe_port),
                timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError):
            reachable = False
        else:
            reachable = True
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass
        self.set_online(reachable)
        return reachable

    def start(self, interval: float = CONNECTIVITY.poll_interval_sec) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            return

        async def _loop():
            while True:
                await self.probe()
                await asyncio.sleep(interval)

        self._poll_task = asyncio.get_running_loop().create_task(_loop())

    async def stop(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


__all__ = ["ConnectivityMonitor"]
