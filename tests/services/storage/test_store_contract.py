"""Behavior shared by every LiveQueueStore backend.

The mongo variant runs only when MONGO_URL_TEST is set.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.domain.live.live_models import LiveSession, Meeting, Profile, QueueEntry
from app.schemas.live_queue_state import LiveSessionStatus, MeetingStatus, QueueEntryStatus
from app.services.storage import DuplicateRecordError, LiveQueueStore
from app.services.storage.memory_store import MemoryLiveQueueStore

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "mongo"])
def live_store(request) -> LiveQueueStore:
    if request.param == "memory":
        return MemoryLiveQueueStore()

    request.getfixturevalue("clear_collections")
    from app.services.storage.mongo_store import MongoLiveQueueStore

    return MongoLiveQueueStore()


def _session(session_id: str = "ls_1", reviewer_id: str = "u.r", max_queue_size: int = 2):
    return LiveSession(
        session_id=session_id,
        reviewer_id=reviewer_id,
        duration_minutes=60,
        max_queue_size=max_queue_size,
        started_at=NOW,
        ends_at=NOW + timedelta(minutes=60),
        created_at=NOW,
        updated_at=NOW,
    )


def _entry(entry_id: str, applicant_id: str, position: int, session_id: str = "ls_1"):
    return QueueEntry(
        entry_id=entry_id,
        session_id=session_id,
        applicant_id=applicant_id,
        position=position,
        created_at=NOW,
    )


class TestSessions:
    async def test_insert_and_get(self, live_store):
        await live_store.insert_session(_session())

        fetched = await live_store.get_session("ls_1")

        assert fetched == _session()
        assert fetched.ends_at.tzinfo is not None

    async def test_one_active_session_per_reviewer(self, live_store):
        await live_store.insert_session(_session("ls_1"))

        with pytest.raises(DuplicateRecordError):
            await live_store.insert_session(_session("ls_2"))

    async def test_new_session_allowed_after_end(self, live_store):
        await live_store.insert_session(_session("ls_1"))
        await live_store.end_session("ls_1", NOW)

        await live_store.insert_session(_session("ls_2"))

        active = await live_store.find_active_session("u.r")
        assert active is not None
        assert active.session_id == "ls_2"

    async def test_end_session_once(self, live_store):
        await live_store.insert_session(_session())

        ended = await live_store.end_session("ls_1", NOW + timedelta(minutes=5))
        again = await live_store.end_session("ls_1", NOW + timedelta(minutes=6))

        assert ended is not None
        assert ended.status == LiveSessionStatus.ENDED
        assert ended.ended_at == NOW + timedelta(minutes=5)
        assert again is None

    async def test_end_paused_session(self, live_store):
        paused = _session().model_copy(update={"status": LiveSessionStatus.PAUSED})
        await live_store.insert_session(paused)

        ended = await live_store.end_session("ls_1", NOW + timedelta(minutes=5))

        assert ended is not None
        assert ended.status == LiveSessionStatus.ENDED

    async def test_list_active_sessions(self, live_store):
        await live_store.insert_session(_session("ls_1", "u.r1"))
        later = _session("ls_2", "u.r2").model_copy(
            update={"created_at": NOW + timedelta(minutes=1)}
        )
        await live_store.insert_session(later)
        await live_store.insert_session(_session("ls_3", "u.r3"))
        await live_store.end_session("ls_3", NOW)

        sessions = await live_store.list_active_sessions(NOW + timedelta(minutes=2))
        expired = await live_store.list_active_sessions(NOW + timedelta(hours=2))

        assert [s.session_id for s in sessions] == ["ls_2", "ls_1"]
        assert expired == []


class TestCapacity:
    async def test_reserve_until_full(self, live_store):
        await live_store.insert_session(_session(max_queue_size=2))

        first = await live_store.reserve_capacity("ls_1", NOW)
        second = await live_store.reserve_capacity("ls_1", NOW)
        third = await live_store.reserve_capacity("ls_1", NOW)

        assert first is not None and first.current_queue_size == 1
        assert second is not None and second.current_queue_size == 2
        assert second.next_position == 2
        assert third is None

    async def test_reserve_refused_when_ended_or_expired(self, live_store):
        await live_store.insert_session(_session())

        assert await live_store.reserve_capacity("ls_1", NOW + timedelta(hours=2)) is None
        await live_store.end_session("ls_1", NOW)
        assert await live_store.reserve_capacity("ls_1", NOW) is None

    async def test_release_floors_at_zero(self, live_store):
        await live_store.insert_session(_session())
        await live_store.reserve_capacity("ls_1", NOW)

        released = await live_store.release_capacity("ls_1", NOW)
        floored = await live_store.release_capacity("ls_1", NOW)

        assert released is not None and released.current_queue_size == 0
        assert floored is None
        session = await live_store.get_session("ls_1")
        assert session.current_queue_size == 0
        # Positions never go backwards
        assert session.next_position == 1


class TestEntries:
    async def test_one_active_entry_per_applicant(self, live_store):
        await live_store.insert_entry(_entry("qe_1", "u.a", 1))

        with pytest.raises(DuplicateRecordError):
            await live_store.insert_entry(_entry("qe_2", "u.a", 2))

    async def test_rejoin_after_terminal_entry(self, live_store):
        await live_store.insert_entry(_entry("qe_1", "u.a", 1))
        await live_store.transition_entry(
            "qe_1", [QueueEntryStatus.WAITING], QueueEntryStatus.SKIPPED, {"skipped_at": NOW}
        )

        await live_store.insert_entry(_entry("qe_2", "u.a", 2))

        active = await live_store.find_active_entry("ls_1", "u.a")
        assert active is not None
        assert active.entry_id == "qe_2"

    async def test_ordering_and_counts(self, live_store):
        await live_store.insert_entry(_entry("qe_3", "u.c", 3))
        await live_store.insert_entry(_entry("qe_1", "u.a", 1))
        await live_store.insert_entry(_entry("qe_2", "u.b", 2))
        await live_store.transition_entry(
            "qe_1", [QueueEntryStatus.WAITING], QueueEntryStatus.SKIPPED, {"skipped_at": NOW}
        )

        waiting = await live_store.list_entries("ls_1", [QueueEntryStatus.WAITING])
        head = await live_store.next_waiting_entry("ls_1")

        assert [e.entry_id for e in waiting] == ["qe_2", "qe_3"]
        assert head is not None and head.entry_id == "qe_2"
        assert await live_store.count_active_entries("ls_1") == 2
        assert await live_store.count_active_entries("ls_1", before_position=3) == 1

    async def test_transition_guarded_by_status(self, live_store):
        await live_store.insert_entry(_entry("qe_1", "u.a", 1))
        updates = {"notified_at": NOW, "meeting_id": "mt_1"}

        moved = await live_store.transition_entry(
            "qe_1", [QueueEntryStatus.WAITING], QueueEntryStatus.YOUR_TURN, updates
        )
        lost = await live_store.transition_entry(
            "qe_1", [QueueEntryStatus.WAITING], QueueEntryStatus.YOUR_TURN, updates
        )

        assert moved is not None
        assert moved.status == QueueEntryStatus.YOUR_TURN
        assert moved.meeting_id == "mt_1"
        assert lost is None

    async def test_transition_guarded_by_applicant(self, live_store):
        await live_store.insert_entry(_entry("qe_1", "u.a", 1))
        await live_store.transition_entry(
            "qe_1",
            [QueueEntryStatus.WAITING],
            QueueEntryStatus.YOUR_TURN,
            {"notified_at": NOW, "meeting_id": "mt_1"},
        )

        wrong = await live_store.transition_entry(
            "qe_1",
            [QueueEntryStatus.YOUR_TURN],
            QueueEntryStatus.JOINED,
            {"joined_at": NOW},
            applicant_id="u.other",
        )

        assert wrong is None

    async def test_list_expired_turns(self, live_store):
        await live_store.insert_entry(_entry("qe_1", "u.a", 1))
        await live_store.insert_entry(_entry("qe_2", "u.b", 2))
        await live_store.transition_entry(
            "qe_1",
            [QueueEntryStatus.WAITING],
            QueueEntryStatus.YOUR_TURN,
            {"notified_at": NOW, "meeting_id": "mt_1"},
        )

        assert await live_store.list_expired_turns(NOW) == []
        expired = await live_store.list_expired_turns(NOW + timedelta(seconds=121))
        assert [e.entry_id for e in expired] == ["qe_1"]


class TestMeetingsAndProfiles:
    async def test_meeting_transition(self, live_store):
        meeting = Meeting(
            meeting_id="mt_1",
            applicant_id="u.a",
            reviewer_id="u.r",
            status=MeetingStatus.ACCEPTED,
            meeting_link="https://meet.test/1",
            requested_at=NOW,
        )
        await live_store.insert_meeting(meeting)

        cancelled = await live_store.transition_meeting(
            "mt_1", [MeetingStatus.ACCEPTED], MeetingStatus.CANCELLED
        )
        again = await live_store.transition_meeting(
            "mt_1", [MeetingStatus.ACCEPTED], MeetingStatus.CANCELLED
        )

        assert cancelled is not None and cancelled.status == MeetingStatus.CANCELLED
        assert again is None
        assert (await live_store.get_meetings({"mt_1", "mt_missing"})).keys() == {"mt_1"}

    async def test_profiles(self, live_store):
        await live_store.save_profile(Profile(user_id="u.a", name="A"))
        await live_store.save_profile(Profile(user_id="u.a", name="A2"))

        profiles = await live_store.get_profiles({"u.a", "u.b"})

        assert list(profiles) == ["u.a"]
        assert profiles["u.a"].name == "A2"
        assert await live_store.get_profile("u.b") is None
