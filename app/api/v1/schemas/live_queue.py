from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from .serializers import to_utc_iso


class _CamelIn(BaseModel):
    """Request bodies accept camelCase (web client) and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GoLiveIn(_CamelIn):
    reviewer_id: str = Field(min_length=1, description="Reviewer going live")
    duration_minutes: int = Field(description="Session length in minutes (1-1440)")


class EndSessionIn(_CamelIn):
    session_id: str = Field(min_length=1)
    reviewer_id: str = Field(min_length=1)


class JoinQueueIn(_CamelIn):
    session_id: str = Field(min_length=1)
    applicant_id: str = Field(min_length=1)


class ProcessNextIn(_CamelIn):
    # Optional so a missing field is reported as 400, not a schema error
    session_id: str | None = None
    reviewer_id: str | None = None


class ConfirmJoinIn(_CamelIn):
    entry_id: str = Field(min_length=1)
    applicant_id: str = Field(min_length=1)


class CompleteEntryIn(_CamelIn):
    entry_id: str = Field(min_length=1)
    reviewer_id: str | None = Field(default=None, description="Checked against the session owner when set")


class SkipEntryIn(_CamelIn):
    entry_id: str = Field(min_length=1)
    reviewer_id: str = Field(min_length=1)


class LiveSessionOut(BaseModel):
    session_id: str
    reviewer_id: str
    status: str
    duration_minutes: int
    max_queue_size: int
    current_queue_size: int
    started_at: datetime
    ends_at: datetime
    created_at: datetime
    ended_at: datetime | None = None

    @field_serializer("started_at", "ends_at", "created_at", "ended_at")
    def serialize_dt(self, dt: datetime | None) -> str | None:
        return to_utc_iso(dt)


class QueueEntryOut(BaseModel):
    entry_id: str
    session_id: str
    applicant_id: str
    position: int
    status: str
    meeting_id: str | None = None
    created_at: datetime
    notified_at: datetime | None = None
    joined_at: datetime | None = None
    completed_at: datetime | None = None
    skipped_at: datetime | None = None

    @field_serializer("created_at", "notified_at", "joined_at", "completed_at", "skipped_at")
    def serialize_dt(self, dt: datetime | None) -> str | None:
        return to_utc_iso(dt)


class MeetingOut(BaseModel):
    meeting_id: str
    applicant_id: str
    reviewer_id: str
    roast_type: str
    status: str
    meeting_link: str | None = None
    requested_at: datetime
    accepted_at: datetime | None = None
    expires_at: datetime | None = None
    completed_at: datetime | None = None

    @field_serializer("requested_at", "accepted_at", "expires_at", "completed_at")
    def serialize_dt(self, dt: datetime | None) -> str | None:
        return to_utc_iso(dt)


class ProfileOut(BaseModel):
    user_id: str
    name: str | None = None
    company: str | None = None
    yc_batch: str | None = None
    industry: str | None = None
    role: str | None = None


class EndSessionOut(BaseModel):
    session: LiveSessionOut
    flushed_count: int


class CurrentSessionOut(BaseModel):
    session: LiveSessionOut | None = None
    is_expired: bool = False


class ActiveRoasterOut(BaseModel):
    session: LiveSessionOut
    reviewer: ProfileOut | None = None


class ActiveRoastersOut(BaseModel):
    roasters: list[ActiveRoasterOut]


class JoinQueueOut(BaseModel):
    entry: QueueEntryOut
    position: int


class QueuePositionOut(BaseModel):
    entry: QueueEntryOut
    position: int
    total_in_queue: int


class QueueEntryViewOut(BaseModel):
    entry: QueueEntryOut
    position: int
    applicant: ProfileOut | None = None
    meeting: MeetingOut | None = None


class SessionQueueOut(BaseModel):
    entries: list[QueueEntryViewOut]


class ProcessNextOut(BaseModel):
    entry: QueueEntryOut
    meeting: MeetingOut
    meeting_link: str
    notified: bool


class SkipEntryOut(BaseModel):
    entry: QueueEntryOut
    changed: bool


class AutoSkipOut(BaseModel):
    skipped_count: int
