"""Live session ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import field_validator
from pymongo import IndexModel

from app.domain.live.live_models import LiveSession

from .live_queue_state import LiveSessionStatus
from .schema_utils import coerce_utc_datetime


class LiveSessionDocument(Document):
    """Live session document model."""

    session_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    reviewer_id: str
    status: LiveSessionStatus = LiveSessionStatus.ACTIVE

    duration_minutes: int
    max_queue_size: int
    current_queue_size: int = 0
    next_position: int = 0

    # Timestamps
    started_at: datetime
    ends_at: datetime
    created_at: datetime
    updated_at: datetime
    ended_at: datetime | None = None

    @field_validator("started_at", "ends_at", "created_at", "updated_at", "ended_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Accept Extended JSON dates and naive UTC values."""
        return coerce_utc_datetime(v)

    @classmethod
    def from_model(cls, session: LiveSession) -> "LiveSessionDocument":
        return cls(**session.model_dump())

    def to_model(self) -> LiveSession:
        return LiveSession.model_validate(self.model_dump(exclude={"id", "revision_id"}))

    class Settings:
        name = "live_sessions"
        indexes = [
            IndexModel(
                [("reviewer_id", 1)],
                partialFilterExpression={"status": LiveSessionStatus.ACTIVE.value},
                unique=True,
                name="reviewer_id_active_unique",
            ),
            IndexModel(
                [("status", 1), ("ends_at", 1)],
                name="status_ends_at",
            ),
        ]
