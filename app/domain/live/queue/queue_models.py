"""Queue domain models."""

from pydantic import BaseModel

from ..live_models import Meeting, Profile, QueueEntry


class JoinQueueResult(BaseModel):
    entry: QueueEntry
    # Display rank at enqueue time (1 = next up)
    position: int


class AdvanceQueueResult(BaseModel):
    entry: QueueEntry
    meeting: Meeting
    meeting_link: str
    notified: bool = False


class QueuePositionResult(BaseModel):
    entry: QueueEntry
    position: int
    total_in_queue: int


class SkipEntryResult(BaseModel):
    entry: QueueEntry
    # False when the entry was already skipped
    changed: bool


class AutoSkipResult(BaseModel):
    skipped_count: int
    skipped_entry_ids: list[str] = []
    failed_entry_ids: list[str] = []


class QueueEntryView(BaseModel):
    """Queue entry read model; joins that did not resolve stay None."""

    entry: QueueEntry
    position: int
    applicant: Profile | None = None
    meeting: Meeting | None = None
