from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    # SQLite may round-trip tz-aware datetimes as naive. Treat naive values as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_within_expiration(expires_at: datetime, now: datetime | None = None) -> bool:
    return (now or now_utc()) < ensure_utc(expires_at)
