"""Storage contract for the live queue.

The domain services only talk to a `LiveQueueStore`. Capacity counters are
changed exclusively through `reserve_capacity` / `release_capacity`, which
implementations must perform as single atomic conditional updates. Status
changes go through conditional updates guarded by the expected current status.
"""

from collections.abc import Collection, Mapping
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from app.domain.live.live_models import LiveSession, Meeting, Profile, QueueEntry
from app.schemas.live_queue_state import MeetingStatus, QueueEntryStatus


class DuplicateRecordError(Exception):
    """Insert rejected by a uniqueness rule (one active session / one active entry)."""


@runtime_checkable
class LiveQueueStore(Protocol):
    # ==================== LIVE SESSIONS ====================

    async def insert_session(self, session: LiveSession) -> LiveSession:
        """Insert a session. Raises DuplicateRecordError if the reviewer already has an active one."""
        ...

    async def get_session(self, session_id: str) -> LiveSession | None: ...

    async def find_active_session(self, reviewer_id: str) -> LiveSession | None: ...

    async def list_active_sessions(self, now: datetime) -> list[LiveSession]:
        """Active sessions with ends_at after `now`, newest first."""
        ...

    async def end_session(self, session_id: str, ended_at: datetime) -> LiveSession | None:
        """Flip an active/paused session to ended. Returns None if it was not in either state."""
        ...

    async def reserve_capacity(self, session_id: str, now: datetime) -> LiveSession | None:
        """Atomically take one unit of capacity and the next position.

        Applies only if the session is active, ends_at is after `now` and
        current_queue_size < max_queue_size. Returns the updated session or None.
        """
        ...

    async def release_capacity(self, session_id: str, now: datetime) -> LiveSession | None:
        """Atomically give back one unit of capacity, never going below zero."""
        ...

    # ==================== QUEUE ENTRIES ====================

    async def insert_entry(self, entry: QueueEntry) -> QueueEntry:
        """Insert an entry. Raises DuplicateRecordError if the applicant already holds an active one."""
        ...

    async def get_entry(self, entry_id: str) -> QueueEntry | None: ...

    async def find_active_entry(self, session_id: str, applicant_id: str) -> QueueEntry | None: ...

    async def count_active_entries(
        self, session_id: str, *, before_position: int | None = None
    ) -> int: ...

    async def next_waiting_entry(self, session_id: str) -> QueueEntry | None:
        """The waiting entry with the lowest position."""
        ...

    async def list_entries(
        self, session_id: str, statuses: Collection[QueueEntryStatus]
    ) -> list[QueueEntry]:
        """Entries in the given statuses ordered by position."""
        ...

    async def list_expired_turns(self, notified_before: datetime) -> list[QueueEntry]:
        """your_turn entries notified strictly before `notified_before`."""
        ...

    async def transition_entry(
        self,
        entry_id: str,
        from_statuses: Collection[QueueEntryStatus],
        to_status: QueueEntryStatus,
        updates: Mapping[str, Any] | None = None,
        *,
        applicant_id: str | None = None,
    ) -> QueueEntry | None:
        """Conditionally move an entry to `to_status`. Returns None if the guard did not match."""
        ...

    # ==================== MEETINGS ====================

    async def insert_meeting(self, meeting: Meeting) -> Meeting: ...

    async def get_meeting(self, meeting_id: str) -> Meeting | None: ...

    async def get_meetings(self, meeting_ids: Collection[str]) -> dict[str, Meeting]: ...

    async def transition_meeting(
        self,
        meeting_id: str,
        from_statuses: Collection[MeetingStatus],
        to_status: MeetingStatus,
        updates: Mapping[str, Any] | None = None,
    ) -> Meeting | None: ...

    # ==================== PROFILES ====================

    async def get_profile(self, user_id: str) -> Profile | None: ...

    async def get_profiles(self, user_ids: Collection[str]) -> dict[str, Profile]: ...

    async def save_profile(self, profile: Profile) -> Profile: ...


__all__ = ["DuplicateRecordError", "LiveQueueStore"]
