from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from core.log import get_sync_logger
from core.settings import OFFLINE_SESSION
from datetime_utils import now_ms


logger = get_sync_logger("identity")

SessionProvider = Callable[[], Optional[str]]


class OfflineSessionStore:
    """Cached sign-in kept on disk so mutations can be attributed while offline."""

    def __init__(
        self,
        path: Path | str | None = None,
        *,
        max_age: timedelta = timedelta(days=OFFLINE_SESSION.max_age_days),
        clock: Callable[[], int] = now_ms,
    ):
        self.path = Path(path or OFFLINE_SESSION.path)
        self.max_age = max_age
        self._clock = clock

    # ------------------------------------------------------------------
    # generic helpers
    def _load(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Offline session unreadable: %s", exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    # ------------------------------------------------------------------
    def save_user(
        self,
        uid: str,
        *,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
        remember_me: bool = False,
    ) -> None:
        self._save(
            {
                "uid": uid,
                "email": email,
                "displayName": display_name,
                "lastLoginTime": self._clock(),
                "rememberMe": bool(remember_me),
            }
        )

    def get_user(self) -> Optional[Dict[str, Any]]:
        data = self._load()
        if not data.get("uid"):
            return None
        if data.get("rememberMe"):
            return data
        last_login = data.get("lastLoginTime")
        max_age_ms = self.max_age.total_seconds() * 1000
        if isinstance(last_login, (int, float)) and self._clock() - last_login < max_age_ms:
            return data
        logger.info("Offline session for %s expired", data.get("uid"))
        self.clear()
        return None

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class IdentityResolver:
    """Resolves the acting user: live session first, cached offline session second."""

    def __init__(
        self,
        session_provider: Optional[SessionProvider] = None,
        offline_store: Optional[OfflineSessionStore] = None,
    ):
        self.session_provider = session_provider
        self.offline_store = offline_store

    def resolve(self) -> Optional[str]:
        if self.session_provider is not None:
            try:
                uid = self.session_provider()
            except Exception as exc:
                logger.warning("Session provider failed: %s", exc)
                uid = None
            if uid:
                return str(uid)
        if self.offline_store is not None:
            user = self.offline_store.get_user()
            if user:
                return str(user["uid"])
        return None

    __call__ = resolve


__all__ = ["IdentityResolver", "OfflineSessionStore"]
