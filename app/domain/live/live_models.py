"""Live queue entity models.

These are the typed rows the storage layer reads and writes. They are frozen;
every change goes through a store operation that returns a new instance.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from app.domain.utils.clock import ensure_utc
from app.schemas.live_queue_state import (
    LiveSessionStatus,
    MeetingStatus,
    QueueEntryStatus,
    RoastType,
)


class _Entity(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _normalize_datetime(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return ensure_utc(v)
        return v


class LiveSession(_Entity):
    """A reviewer's open availability window."""

    session_id: str
    reviewer_id: str
    status: LiveSessionStatus = LiveSessionStatus.ACTIVE

    duration_minutes: int
    max_queue_size: int
    current_queue_size: int = 0
    # Last position handed out; incremented together with current_queue_size
    next_position: int = 0

    started_at: datetime
    ends_at: datetime
    created_at: datetime
    updated_at: datetime
    ended_at: datetime | None = None

    @model_validator(mode="after")
    def _check_capacity(self) -> "LiveSession":
        if not 0 <= self.current_queue_size <= self.max_queue_size:
            raise ValueError(
                f"current_queue_size {self.current_queue_size} outside [0, {self.max_queue_size}]"
            )
        if self.ends_at <= self.started_at:
            raise ValueError("ends_at must be after started_at")
        return self

    def is_expired(self, now: datetime) -> bool:
        return now > self.ends_at

    def accepts_joins(self, now: datetime) -> bool:
        return self.status == LiveSessionStatus.ACTIVE and not self.is_expired(now)

    @property
    def is_full(self) -> bool:
        return self.current_queue_size >= self.max_queue_size


class QueueEntry(_Entity):
    """One applicant's ticket within a session's queue."""

    entry_id: str
    session_id: str
    applicant_id: str
    # Strictly increasing per session; used for ordering only
    position: int
    status: QueueEntryStatus = QueueEntryStatus.WAITING

    created_at: datetime
    notified_at: datetime | None = None
    joined_at: datetime | None = None
    completed_at: datetime | None = None
    skipped_at: datetime | None = None
    meeting_id: str | None = None

    @model_validator(mode="after")
    def _check_status_fields(self) -> "QueueEntry":
        if self.status in (QueueEntryStatus.YOUR_TURN, QueueEntryStatus.JOINED):
            if not self.meeting_id:
                raise ValueError(f"{self.status} entry requires meeting_id")
            if self.notified_at is None:
                raise ValueError(f"{self.status} entry requires notified_at")
        if self.status == QueueEntryStatus.JOINED and self.joined_at is None:
            raise ValueError("joined entry requires joined_at")
        if self.status == QueueEntryStatus.COMPLETED and self.completed_at is None:
            raise ValueError("completed entry requires completed_at")
        return self

    @property
    def is_active(self) -> bool:
        return self.status in QueueEntryStatus.active_states()


class Meeting(_Entity):
    """One scheduled conversation between an applicant and a reviewer."""

    meeting_id: str
    applicant_id: str
    reviewer_id: str
    roast_type: RoastType = RoastType.PITCH
    status: MeetingStatus = MeetingStatus.REQUESTED
    meeting_link: str | None = None
    source_entry_id: str | None = None

    requested_at: datetime
    accepted_at: datetime | None = None
    expires_at: datetime | None = None
    scheduled_for: datetime | None = None
    completed_at: datetime | None = None


class Profile(_Entity):
    """Read-only projection of a user profile."""

    user_id: str
    name: str | None = None
    email: str | None = None
    company: str | None = None
    yc_batch: str | None = None
    industry: str | None = None
    role: str | None = None


class LiveQueueRules(BaseModel):
    """Tunable limits of the live queue."""

    max_queue_size: int = 10
    max_session_duration_minutes: int = 1440
    turn_timeout_seconds: int = 120
    meeting_expiry_hours: int = 24
    meeting_duration_minutes: int = 10
    default_roast_type: RoastType = RoastType.PITCH

    @classmethod
    def from_config(cls, cfg: Any) -> "LiveQueueRules":
        return cls(
            max_queue_size=cfg.MAX_QUEUE_SIZE,
            max_session_duration_minutes=cfg.MAX_SESSION_DURATION_MINUTES,
            turn_timeout_seconds=cfg.TURN_TIMEOUT_SECONDS,
            meeting_expiry_hours=cfg.MEETING_EXPIRY_HOURS,
            meeting_duration_minutes=cfg.MEETING_DURATION_MINUTES,
            default_roast_type=RoastType(cfg.DEFAULT_ROAST_TYPE),
        )
