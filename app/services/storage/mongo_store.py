"""MongoDB implementation of LiveQueueStore.

Reads and inserts go through the Beanie documents. Every guarded mutation is a
single `find_one_and_update` on the underlying pymongo collection so the guard
and the write are atomic on the server.
"""

from collections.abc import Collection, Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from beanie.operators import In
from loguru import logger
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.domain.live.live_models import LiveSession, Meeting, Profile, QueueEntry
from app.domain.live.session.session_state_machine import LiveSessionStateMachine
from app.schemas.live_queue_state import LiveSessionStatus, MeetingStatus, QueueEntryStatus
from app.schemas.live_session import LiveSessionDocument
from app.schemas.meeting import MeetingDocument
from app.schemas.profile import ProfileDocument
from app.schemas.queue_entry import ACTIVE_ENTRY_STATUSES, QueueEntryDocument

from .store import DuplicateRecordError


def _bson_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _bson_set(updates: Mapping[str, Any]) -> dict[str, Any]:
    return {key: _bson_value(value) for key, value in updates.items()}


def _status_values(statuses: Collection[Enum]) -> list[str]:
    return [_bson_value(s) for s in statuses]


class MongoLiveQueueStore:
    """Requires `init_beanie_odm` to have run against the target database."""

    # ==================== LIVE SESSIONS ====================

    async def insert_session(self, session: LiveSession) -> LiveSession:
        try:
            await LiveSessionDocument.from_model(session).insert()
        except DuplicateKeyError as e:
            logger.info(f"Duplicate live session insert for reviewer {session.reviewer_id}: {e}")
            raise DuplicateRecordError(str(e)) from e
        return session

    async def get_session(self, session_id: str) -> LiveSession | None:
        doc = await LiveSessionDocument.find_one(LiveSessionDocument.session_id == session_id)
        return doc.to_model() if doc else None

    async def find_active_session(self, reviewer_id: str) -> LiveSession | None:
        doc = await LiveSessionDocument.find_one(
            LiveSessionDocument.reviewer_id == reviewer_id,
            LiveSessionDocument.status == LiveSessionStatus.ACTIVE,
        )
        return doc.to_model() if doc else None

    async def list_active_sessions(self, now: datetime) -> list[LiveSession]:
        docs = (
            await LiveSessionDocument.find(
                LiveSessionDocument.status == LiveSessionStatus.ACTIVE,
                LiveSessionDocument.ends_at > now,
            )
            .sort("-created_at")
            .to_list()
        )
        return [doc.to_model() for doc in docs]

    async def _update_session(
        self, query: dict[str, Any], update: dict[str, Any]
    ) -> LiveSession | None:
        raw = await LiveSessionDocument.get_pymongo_collection().find_one_and_update(
            query, update, return_document=ReturnDocument.AFTER
        )
        return LiveSession.model_validate(raw) if raw else None

    async def end_session(self, session_id: str, ended_at: datetime) -> LiveSession | None:
        return await self._update_session(
            {
                "session_id": session_id,
                "status": {
                    "$in": _status_values(
                        LiveSessionStateMachine.get_valid_sources(LiveSessionStatus.ENDED)
                    )
                },
            },
            {
                "$set": {
                    "status": LiveSessionStatus.ENDED.value,
                    "ended_at": ended_at,
                    "updated_at": ended_at,
                }
            },
        )

    async def reserve_capacity(self, session_id: str, now: datetime) -> LiveSession | None:
        return await self._update_session(
            {
                "session_id": session_id,
                "status": LiveSessionStatus.ACTIVE.value,
                "ends_at": {"$gt": now},
                "$expr": {"$lt": ["$current_queue_size", "$max_queue_size"]},
            },
            {
                "$inc": {"current_queue_size": 1, "next_position": 1},
                "$set": {"updated_at": now},
            },
        )

    async def release_capacity(self, session_id: str, now: datetime) -> LiveSession | None:
        return await self._update_session(
            {"session_id": session_id, "current_queue_size": {"$gt": 0}},
            {"$inc": {"current_queue_size": -1}, "$set": {"updated_at": now}},
        )

    # ==================== QUEUE ENTRIES ====================

    async def insert_entry(self, entry: QueueEntry) -> QueueEntry:
        try:
            await QueueEntryDocument.from_model(entry).insert()
        except DuplicateKeyError as e:
            logger.info(
                f"Duplicate queue entry insert for applicant {entry.applicant_id} "
                f"in session {entry.session_id}: {e}"
            )
            raise DuplicateRecordError(str(e)) from e
        return entry

    async def get_entry(self, entry_id: str) -> QueueEntry | None:
        doc = await QueueEntryDocument.find_one(QueueEntryDocument.entry_id == entry_id)
        return doc.to_model() if doc else None

    async def find_active_entry(self, session_id: str, applicant_id: str) -> QueueEntry | None:
        doc = await QueueEntryDocument.find_one(
            QueueEntryDocument.session_id == session_id,
            QueueEntryDocument.applicant_id == applicant_id,
            In(QueueEntryDocument.status, ACTIVE_ENTRY_STATUSES),
        )
        return doc.to_model() if doc else None

    async def count_active_entries(
        self, session_id: str, *, before_position: int | None = None
    ) -> int:
        query = QueueEntryDocument.find(
            QueueEntryDocument.session_id == session_id,
            In(QueueEntryDocument.status, ACTIVE_ENTRY_STATUSES),
        )
        if before_position is not None:
            query = query.find(QueueEntryDocument.position < before_position)
        return await query.count()

    async def next_waiting_entry(self, session_id: str) -> QueueEntry | None:
        docs = (
            await QueueEntryDocument.find(
                QueueEntryDocument.session_id == session_id,
                QueueEntryDocument.status == QueueEntryStatus.WAITING,
            )
            .sort("+position")
            .limit(1)
            .to_list()
        )
        return docs[0].to_model() if docs else None

    async def list_entries(
        self, session_id: str, statuses: Collection[QueueEntryStatus]
    ) -> list[QueueEntry]:
        docs = (
            await QueueEntryDocument.find(
                QueueEntryDocument.session_id == session_id,
                In(QueueEntryDocument.status, _status_values(statuses)),
            )
            .sort("+position")
            .to_list()
        )
        return [doc.to_model() for doc in docs]

    async def list_expired_turns(self, notified_before: datetime) -> list[QueueEntry]:
        docs = await QueueEntryDocument.find(
            QueueEntryDocument.status == QueueEntryStatus.YOUR_TURN,
            QueueEntryDocument.notified_at < notified_before,
        ).to_list()
        return [doc.to_model() for doc in docs]

    async def transition_entry(
        self,
        entry_id: str,
        from_statuses: Collection[QueueEntryStatus],
        to_status: QueueEntryStatus,
        updates: Mapping[str, Any] | None = None,
        *,
        applicant_id: str | None = None,
    ) -> QueueEntry | None:
        query: dict[str, Any] = {
            "entry_id": entry_id,
            "status": {"$in": _status_values(from_statuses)},
        }
        if applicant_id is not None:
            query["applicant_id"] = applicant_id

        raw = await QueueEntryDocument.get_pymongo_collection().find_one_and_update(
            query,
            {"$set": {**_bson_set(updates or {}), "status": to_status.value}},
            return_document=ReturnDocument.AFTER,
        )
        return QueueEntry.model_validate(raw) if raw else None

    # ==================== MEETINGS ====================

    async def insert_meeting(self, meeting: Meeting) -> Meeting:
        try:
            await MeetingDocument.from_model(meeting).insert()
        except DuplicateKeyError as e:
            raise DuplicateRecordError(str(e)) from e
        return meeting

    async def get_meeting(self, meeting_id: str) -> Meeting | None:
        doc = await MeetingDocument.find_one(MeetingDocument.meeting_id == meeting_id)
        return doc.to_model() if doc else None

    async def get_meetings(self, meeting_ids: Collection[str]) -> dict[str, Meeting]:
        if not meeting_ids:
            return {}
        docs = await MeetingDocument.find(In(MeetingDocument.meeting_id, list(meeting_ids))).to_list()
        return {doc.meeting_id: doc.to_model() for doc in docs}

    async def transition_meeting(
        self,
        meeting_id: str,
        from_statuses: Collection[MeetingStatus],
        to_status: MeetingStatus,
        updates: Mapping[str, Any] | None = None,
    ) -> Meeting | None:
        raw = await MeetingDocument.get_pymongo_collection().find_one_and_update(
            {"meeting_id": meeting_id, "status": {"$in": _status_values(from_statuses)}},
            {"$set": {**_bson_set(updates or {}), "status": to_status.value}},
            return_document=ReturnDocument.AFTER,
        )
        return Meeting.model_validate(raw) if raw else None

    # ==================== PROFILES ====================

    async def get_profile(self, user_id: str) -> Profile | None:
        doc = await ProfileDocument.find_one(ProfileDocument.user_id == user_id)
        return doc.to_model() if doc else None

    async def get_profiles(self, user_ids: Collection[str]) -> dict[str, Profile]:
        if not user_ids:
            return {}
        docs = await ProfileDocument.find(In(ProfileDocument.user_id, list(user_ids))).to_list()
        return {doc.user_id: doc.to_model() for doc in docs}

    async def save_profile(self, profile: Profile) -> Profile:
        await ProfileDocument.get_pymongo_collection().update_one(
            {"user_id": profile.user_id},
            {"$set": profile.model_dump()},
            upsert=True,
        )
        return profile


__all__ = ["MongoLiveQueueStore"]
