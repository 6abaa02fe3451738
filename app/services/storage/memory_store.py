"""In-process implementation of LiveQueueStore.

Used for DEMO_MODE runs (STORE_BACKEND=memory) and as the test double for the
domain services. Every operation yields to the event loop once before taking
the lock so concurrent callers interleave the way they would against a real
database, and the whole read-check-write of an operation happens under the lock.
"""

import asyncio
from collections.abc import Collection, Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel

from app.domain.live.live_models import LiveSession, Meeting, Profile, QueueEntry
from app.domain.live.session.session_state_machine import LiveSessionStateMachine
from app.schemas.live_queue_state import LiveSessionStatus, MeetingStatus, QueueEntryStatus

from .store import DuplicateRecordError

ModelT = TypeVar("ModelT", bound=BaseModel)

_ENDABLE_STATES = LiveSessionStateMachine.get_valid_sources(LiveSessionStatus.ENDED)


def _apply(model: ModelT, updates: Mapping[str, Any]) -> ModelT:
    """Return a re-validated copy with `updates` applied."""
    return type(model).model_validate({**model.model_dump(), **updates})


class MemoryLiveQueueStore:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._sessions: dict[str, LiveSession] = {}
        self._entries: dict[str, QueueEntry] = {}
        self._meetings: dict[str, Meeting] = {}
        self._profiles: dict[str, Profile] = {}

    async def _yield(self) -> None:
        await asyncio.sleep(0)

    # ==================== LIVE SESSIONS ====================

    async def insert_session(self, session: LiveSession) -> LiveSession:
        await self._yield()
        async with self._lock:
            if session.status == LiveSessionStatus.ACTIVE and any(
                s.reviewer_id == session.reviewer_id and s.status == LiveSessionStatus.ACTIVE
                for s in self._sessions.values()
            ):
                raise DuplicateRecordError(
                    f"Reviewer {session.reviewer_id} already has an active session"
                )
            if session.session_id in self._sessions:
                raise DuplicateRecordError(f"Session {session.session_id} already exists")
            self._sessions[session.session_id] = session
            return session

    async def get_session(self, session_id: str) -> LiveSession | None:
        await self._yield()
        return self._sessions.get(session_id)

    async def find_active_session(self, reviewer_id: str) -> LiveSession | None:
        await self._yield()
        for session in self._sessions.values():
            if session.reviewer_id == reviewer_id and session.status == LiveSessionStatus.ACTIVE:
                return session
        return None

    async def list_active_sessions(self, now: datetime) -> list[LiveSession]:
        await self._yield()
        sessions = [
            s
            for s in self._sessions.values()
            if s.status == LiveSessionStatus.ACTIVE and s.ends_at > now
        ]
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    async def end_session(self, session_id: str, ended_at: datetime) -> LiveSession | None:
        await self._yield()
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.status not in _ENDABLE_STATES:
                return None
            updated = _apply(
                session,
                {"status": LiveSessionStatus.ENDED, "ended_at": ended_at, "updated_at": ended_at},
            )
            self._sessions[session_id] = updated
            return updated

    async def reserve_capacity(self, session_id: str, now: datetime) -> LiveSession | None:
        await self._yield()
        async with self._lock:
            session = self._sessions.get(session_id)
            if (
                session is None
                or session.status != LiveSessionStatus.ACTIVE
                or session.ends_at <= now
                or session.current_queue_size >= session.max_queue_size
            ):
                return None
            updated = _apply(
                session,
                {
                    "current_queue_size": session.current_queue_size + 1,
                    "next_position": session.next_position + 1,
                    "updated_at": now,
                },
            )
            self._sessions[session_id] = updated
            return updated

    async def release_capacity(self, session_id: str, now: datetime) -> LiveSession | None:
        await self._yield()
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.current_queue_size <= 0:
                return None
            updated = _apply(
                session,
                {"current_queue_size": session.current_queue_size - 1, "updated_at": now},
            )
            self._sessions[session_id] = updated
            return updated

    # ==================== QUEUE ENTRIES ====================

    async def insert_entry(self, entry: QueueEntry) -> QueueEntry:
        await self._yield()
        async with self._lock:
            if entry.is_active and any(
                e.session_id == entry.session_id
                and e.applicant_id == entry.applicant_id
                and e.is_active
                for e in self._entries.values()
            ):
                raise DuplicateRecordError(
                    f"Applicant {entry.applicant_id} already queued in {entry.session_id}"
                )
            if entry.entry_id in self._entries:
                raise DuplicateRecordError(f"Queue entry {entry.entry_id} already exists")
            self._entries[entry.entry_id] = entry
            return entry

    async def get_entry(self, entry_id: str) -> QueueEntry | None:
        await self._yield()
        return self._entries.get(entry_id)

    async def find_active_entry(self, session_id: str, applicant_id: str) -> QueueEntry | None:
        await self._yield()
        for entry in self._entries.values():
            if entry.session_id == session_id and entry.applicant_id == applicant_id and entry.is_active:
                return entry
        return None

    async def count_active_entries(
        self, session_id: str, *, before_position: int | None = None
    ) -> int:
        await self._yield()
        return sum(
            1
            for e in self._entries.values()
            if e.session_id == session_id
            and e.is_active
            and (before_position is None or e.position < before_position)
        )

    async def next_waiting_entry(self, session_id: str) -> QueueEntry | None:
        waiting = await self.list_entries(session_id, [QueueEntryStatus.WAITING])
        return waiting[0] if waiting else None

    async def list_entries(
        self, session_id: str, statuses: Collection[QueueEntryStatus]
    ) -> list[QueueEntry]:
        await self._yield()
        wanted = set(statuses)
        entries = [
            e for e in self._entries.values() if e.session_id == session_id and e.status in wanted
        ]
        return sorted(entries, key=lambda e: e.position)

    async def list_expired_turns(self, notified_before: datetime) -> list[QueueEntry]:
        await self._yield()
        return [
            e
            for e in self._entries.values()
            if e.status == QueueEntryStatus.YOUR_TURN
            and e.notified_at is not None
            and e.notified_at < notified_before
        ]

    async def transition_entry(
        self,
        entry_id: str,
        from_statuses: Collection[QueueEntryStatus],
        to_status: QueueEntryStatus,
        updates: Mapping[str, Any] | None = None,
        *,
        applicant_id: str | None = None,
    ) -> QueueEntry | None:
        await self._yield()
        async with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None or entry.status not in set(from_statuses):
                return None
            if applicant_id is not None and entry.applicant_id != applicant_id:
                return None
            updated = _apply(entry, {**(updates or {}), "status": to_status})
            self._entries[entry_id] = updated
            return updated

    # ==================== MEETINGS ====================

    async def insert_meeting(self, meeting: Meeting) -> Meeting:
        await self._yield()
        async with self._lock:
            if meeting.meeting_id in self._meetings:
                raise DuplicateRecordError(f"Meeting {meeting.meeting_id} already exists")
            self._meetings[meeting.meeting_id] = meeting
            return meeting

    async def get_meeting(self, meeting_id: str) -> Meeting | None:
        await self._yield()
        return self._meetings.get(meeting_id)

    async def get_meetings(self, meeting_ids: Collection[str]) -> dict[str, Meeting]:
        await self._yield()
        return {mid: self._meetings[mid] for mid in meeting_ids if mid in self._meetings}

    async def transition_meeting(
        self,
        meeting_id: str,
        from_statuses: Collection[MeetingStatus],
        to_status: MeetingStatus,
        updates: Mapping[str, Any] | None = None,
    ) -> Meeting | None:
        await self._yield()
        async with self._lock:
            meeting = self._meetings.get(meeting_id)
            if meeting is None or meeting.status not in set(from_statuses):
                return None
            updated = _apply(meeting, {**(updates or {}), "status": to_status})
            self._meetings[meeting_id] = updated
            return updated

    # ==================== PROFILES ====================

    async def get_profile(self, user_id: str) -> Profile | None:
        await self._yield()
        return self._profiles.get(user_id)

    async def get_profiles(self, user_ids: Collection[str]) -> dict[str, Profile]:
        await self._yield()
        return {uid: self._profiles[uid] for uid in user_ids if uid in self._profiles}

    async def save_profile(self, profile: Profile) -> Profile:
        await self._yield()
        self._profiles[profile.user_id] = profile
        return profile


__all__ = ["MemoryLiveQueueStore"]
