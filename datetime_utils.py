from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


UTC = timezone.utc


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_rfc3339(s: Optional[str]) -> Optional[datetime]:
    """Parse a RFC3339 string and return a timezone-aware UTC datetime."""

    if not s:
        return None

    value = s.strip()
    if not value:
        return None

    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    if "." in value:
        head, tail = value.split(".", 1)
        suffix = ""
        for sign in ("+", "-"):
            if sign in tail:
                frac, rest = tail.split(sign, 1)
                suffix = sign + rest
                break
        else:
            frac = tail
        value = f"{head}.{(frac[:6]).ljust(6, '0')}{suffix}"
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None

    return ensure_utc(dt)


def to_rfc3339_utc(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to RFC3339 in UTC."""

    value = ensure_utc(dt)
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def now_ms() -> int:
    return to_epoch_ms(utc_now())


def to_epoch_ms(dt: datetime) -> int:
    return int(ensure_utc(dt).timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def coerce_epoch_ms(value: Any) -> float:
    """Best-effort conversion of a record timestamp to milliseconds since epoch.

    Numbers are taken as milliseconds already, datetimes and RFC3339 strings are
    converted, and anything else (including ``None``) counts as ``0``.
    """

    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, datetime):
        return to_epoch_ms(value)
    if isinstance(value, str):
        parsed = parse_rfc3339(value)
        if parsed is not None:
            return to_epoch_ms(parsed)
        try:
            return float(value)
        except ValueError:
            return 0
    return 0


__all__ = [
    "UTC",
    "coerce_epoch_ms",
    "ensure_utc",
    "from_epoch_ms",
    "now_ms",
    "parse_rfc3339",
    "to_epoch_ms",
    "to_rfc3339_utc",
    "utc_now",
]
