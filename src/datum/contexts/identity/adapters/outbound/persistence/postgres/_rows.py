from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def to_utc(value: Any) -> datetime:
    """
    Normalize driver `timestamptz` value to UTC datetime.

    Args:
        value: Value returned by psycopg for a `TIMESTAMPTZ` column.
    Returns:
        datetime: Same instant with `timezone.utc` tzinfo.
    Assumptions:
        Driver returns timezone-aware values in the session time zone.
    Raises:
        TypeError: If value is not a datetime.
        ValueError: If value is naive.
    Side Effects:
        None.
    """
    if not isinstance(value, datetime):
        raise TypeError(f"expected datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        raise ValueError("timestamptz column returned naive datetime")
    return value.astimezone(timezone.utc)


def to_optional_utc(value: Any) -> datetime | None:
    if value is None:
        return None
    return to_utc(value)
