"""Logging setup for the synchronization engine."""
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from core.settings import SYNC


SYNC_LOGGER_NAME = "costik.sync"


def get_sync_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the ``costik.sync`` logger (or a child of it) with the file handler attached."""

    root = logging.getLogger(SYNC_LOGGER_NAME)
    if not root.handlers:
        path = Path(SYNC.log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    if not name:
        return root
    return root.getChild(name)


def read_sync_log(lines: int = 100, path: Optional[Path] = None) -> str:
    target = Path(path or SYNC.log_path)
    try:
        with open(target, "r", encoding="utf-8") as fh:
            content = fh.readlines()
    except FileNotFoundError:
        return "Sync log has not been created yet."
    content = [line.rstrip("\n") for line in content[-lines:]]
    return "\n".join(content)


__all__ = ["SYNC_LOGGER_NAME", "get_sync_logger", "read_sync_log"]
