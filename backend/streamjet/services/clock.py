"""Time helpers shared by the tracking and analytics services."""

import math
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite hands them back without tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def round_half_up(value: float) -> int:
    """Round halves away from zero for non-negative values, like JavaScript's Math.round."""
    return int(math.floor(value + 0.5))
