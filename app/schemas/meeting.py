"""Meeting ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import field_validator

from app.domain.live.live_models import Meeting

from .live_queue_state import MeetingStatus, RoastType
from .schema_utils import coerce_utc_datetime


class MeetingDocument(Document):
    """Meeting document model."""

    meeting_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    applicant_id: Indexed(str)  # type: ignore[valid-type]
    reviewer_id: Indexed(str)  # type: ignore[valid-type]
    roast_type: RoastType = RoastType.PITCH
    status: MeetingStatus = MeetingStatus.REQUESTED
    meeting_link: str | None = None
    source_entry_id: str | None = None

    # Timestamps
    requested_at: datetime
    accepted_at: datetime | None = None
    expires_at: datetime | None = None
    scheduled_for: datetime | None = None
    completed_at: datetime | None = None

    @field_validator(
        "requested_at", "accepted_at", "expires_at", "scheduled_for", "completed_at", mode="before"
    )
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Accept Extended JSON dates and naive UTC values."""
        return coerce_utc_datetime(v)

    @classmethod
    def from_model(cls, meeting: Meeting) -> "MeetingDocument":
        return cls(**meeting.model_dump())

    def to_model(self) -> Meeting:
        return Meeting.model_validate(self.model_dump(exclude={"id", "revision_id"}))

    class Settings:
        name = "meetings"
