"""Queue entry ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import field_validator
from pymongo import IndexModel

from app.domain.live.live_models import QueueEntry

from .live_queue_state import QueueEntryStatus
from .schema_utils import coerce_utc_datetime

ACTIVE_ENTRY_STATUSES = [s.value for s in QueueEntryStatus.active_states()]


class QueueEntryDocument(Document):
    """Queue entry document model."""

    entry_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    session_id: str
    applicant_id: str
    position: int
    status: QueueEntryStatus = QueueEntryStatus.WAITING

    meeting_id: str | None = None

    # Timestamps
    created_at: datetime
    notified_at: datetime | None = None
    joined_at: datetime | None = None
    completed_at: datetime | None = None
    skipped_at: datetime | None = None

    @field_validator(
        "created_at", "notified_at", "joined_at", "completed_at", "skipped_at", mode="before"
    )
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Accept Extended JSON dates and naive UTC values."""
        return coerce_utc_datetime(v)

    @classmethod
    def from_model(cls, entry: QueueEntry) -> "QueueEntryDocument":
        return cls(**entry.model_dump())

    def to_model(self) -> QueueEntry:
        return QueueEntry.model_validate(self.model_dump(exclude={"id", "revision_id"}))

    class Settings:
        name = "queue_entries"
        indexes = [
            IndexModel(
                [("session_id", 1), ("applicant_id", 1)],
                partialFilterExpression={"status": {"$in": ACTIVE_ENTRY_STATUSES}},
                unique=True,
                name="session_applicant_active_unique",
            ),
            IndexModel(
                [("session_id", 1), ("status", 1), ("position", 1)],
                name="session_status_position",
            ),
            IndexModel(
                [("notified_at", 1)],
                partialFilterExpression={"status": QueueEntryStatus.YOUR_TURN.value},
                name="notified_at_your_turn_partial",
            ),
        ]
