"""Datetime coercion shared by the live queue documents."""

from datetime import datetime
from typing import Any

from app.domain.utils.clock import ensure_utc


def coerce_utc_datetime(v: Any) -> Any:
    """Normalize a stored timestamp to an aware UTC datetime.

    Accepts datetimes (naive ones are read as UTC) and the Extended JSON
    shape `{"$date": "2025-03-01T12:00:00Z"}` left behind by mongoimport.
    Anything else is returned untouched for pydantic to reject.
    """
    if isinstance(v, dict) and "$date" in v:
        v = datetime.fromisoformat(str(v["$date"]).replace("Z", "+00:00"))
    if isinstance(v, datetime):
        return ensure_utc(v)
    return v
