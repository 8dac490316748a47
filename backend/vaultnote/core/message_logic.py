# vaultnote/core/message_logic.py

from datetime import datetime, timedelta, timezone

SECONDS_PER_HOUR = 3600


def utcnow() -> datetime:
    """Naive UTC, truncated to whole seconds, as stored in the database"""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def clamp_ttl(ttl_hours: int, minimum: int, maximum: int) -> int:
    return max(minimum, min(maximum, int(ttl_hours)))


def compute_expire_at(created_at: datetime, ttl_hours: int) -> datetime:
    return created_at + timedelta(seconds=ttl_hours * SECONDS_PER_HOUR)


def is_expired(expire_at: datetime, now: datetime) -> bool:
    # Unreadable at or after the expiry instant
    return expire_at <= now
