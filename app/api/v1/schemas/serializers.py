"""Datetime serialization for API payloads."""

from datetime import datetime, timezone


def to_utc_iso(dt: datetime | None) -> str | None:
    """Render `dt` in UTC with a `Z` suffix, e.g. 2025-03-01T12:00:00Z.

    Naive datetimes are taken to be UTC already.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
