"""Tests for AdvanceQueueOperations domain logic."""

from datetime import timedelta

import pytest

from app.domain.live.queue._advance import AdvanceQueueOperations
from app.domain.live.queue._outcomes import OutcomeOperations
from app.domain.live.queue._queue import QueueOperations
from app.schemas.live_queue_state import MeetingStatus, QueueEntryStatus
from app.services.storage.memory_store import MemoryLiveQueueStore
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode
from tests.fixtures.live_queue_fixtures import REVIEWER_ID, make_context, save_applicant, seed_session


async def _fill(ctx, *applicant_ids: str) -> list:
    ops = QueueOperations(ctx)
    return [(await ops.join_queue("ls_test", a)).entry for a in applicant_ids]


class TestAdvanceQueue:
    """Tests for AdvanceQueueOperations.advance_queue method."""

    async def test_advance_picks_lowest_position(self, ctx, store, clock, email):
        # Arrange
        await seed_session(store, clock)
        await save_applicant(store, "u.alice")
        alice, bob = await _fill(ctx, "u.alice", "u.bob")
        ops = AdvanceQueueOperations(ctx)

        # Act
        result = await ops.advance_queue("ls_test", REVIEWER_ID)

        # Assert
        assert result.entry.entry_id == alice.entry_id
        assert result.entry.status == QueueEntryStatus.YOUR_TURN
        assert result.entry.notified_at == clock()
        assert result.entry.meeting_id == result.meeting.meeting_id
        assert result.meeting_link == "https://meet.test/room-1"
        assert result.notified is True

        email.send_turn_notification.assert_awaited_once()
        kwargs = email.send_turn_notification.await_args.kwargs
        assert kwargs["to_email"] == "u.alice@example.com"
        assert kwargs["meeting_link"] == "https://meet.test/room-1"

        untouched = await store.get_entry(bob.entry_id)
        assert untouched is not None
        assert untouched.status == QueueEntryStatus.WAITING

    async def test_advance_creates_accepted_meeting(self, ctx, store, clock):
        await seed_session(store, clock)
        await _fill(ctx, "u.alice")

        result = await AdvanceQueueOperations(ctx).advance_queue("ls_test", REVIEWER_ID)

        meeting = await store.get_meeting(result.meeting.meeting_id)
        assert meeting is not None
        assert meeting.status == MeetingStatus.ACCEPTED
        assert meeting.applicant_id == "u.alice"
        assert meeting.reviewer_id == REVIEWER_ID
        assert meeting.source_entry_id == result.entry.entry_id
        assert meeting.expires_at == clock() + timedelta(hours=24)

    async def test_advance_twice_follows_fifo(self, ctx, store, clock):
        await seed_session(store, clock)
        alice, bob = await _fill(ctx, "u.alice", "u.bob")
        ops = AdvanceQueueOperations(ctx)

        first = await ops.advance_queue("ls_test", REVIEWER_ID)
        second = await ops.advance_queue("ls_test", REVIEWER_ID)

        assert first.entry.entry_id == alice.entry_id
        assert second.entry.entry_id == bob.entry_id

    async def test_advance_does_not_change_capacity(self, ctx, store, clock):
        await seed_session(store, clock)
        await _fill(ctx, "u.alice", "u.bob")

        await AdvanceQueueOperations(ctx).advance_queue("ls_test", REVIEWER_ID)

        session = await store.get_session("ls_test")
        assert session is not None
        assert session.current_queue_size == 2

    async def test_advance_empty_queue(self, ctx, store, clock):
        await seed_session(store, clock)

        with pytest.raises(AppError) as exc_info:
            await AdvanceQueueOperations(ctx).advance_queue("ls_test", REVIEWER_ID)

        assert exc_info.value.errcode == AppErrorCode.E_QUEUE_EMPTY.value
        assert exc_info.value.status_code == HttpStatusCode.BAD_REQUEST

    async def test_advance_skips_over_non_waiting_entries(self, ctx, store, clock):
        await seed_session(store, clock)
        alice, bob = await _fill(ctx, "u.alice", "u.bob")
        await OutcomeOperations(ctx).skip_entry(alice.entry_id, REVIEWER_ID)

        result = await AdvanceQueueOperations(ctx).advance_queue("ls_test", REVIEWER_ID)

        assert result.entry.entry_id == bob.entry_id

    async def test_advance_by_other_reviewer_forbidden(self, ctx, store, clock):
        await seed_session(store, clock)
        await _fill(ctx, "u.alice")

        with pytest.raises(AppError) as exc_info:
            await AdvanceQueueOperations(ctx).advance_queue("ls_test", "u.intruder")

        assert exc_info.value.errcode == AppErrorCode.E_UNAUTHORIZED.value
        assert exc_info.value.status_code == HttpStatusCode.FORBIDDEN

    async def test_link_failure_leaves_entry_waiting(self, ctx, store, clock, link_provider):
        """Test a meeting link failure writes nothing."""
        # Arrange
        await seed_session(store, clock)
        (alice,) = await _fill(ctx, "u.alice")
        link_provider.fail = True

        # Act
        with pytest.raises(AppError) as exc_info:
            await AdvanceQueueOperations(ctx).advance_queue("ls_test", REVIEWER_ID)

        # Assert
        assert exc_info.value.errcode == AppErrorCode.E_MEETING_CREATION_FAILED.value
        assert exc_info.value.status_code == HttpStatusCode.INTERNAL_SERVER_ERROR
        entry = await store.get_entry(alice.entry_id)
        assert entry is not None
        assert entry.status == QueueEntryStatus.WAITING
        assert entry.meeting_id is None

    async def test_meeting_insert_failure_leaves_entry_waiting(self, clock, link_provider, email):
        class BrokenMeetingStore(MemoryLiveQueueStore):
            async def insert_meeting(self, meeting):
                raise RuntimeError("write concern timeout")

        store = BrokenMeetingStore()
        ctx = make_context(store, clock, link_provider, email)
        await seed_session(store, clock)
        (alice,) = await _fill(ctx, "u.alice")

        with pytest.raises(AppError) as exc_info:
            await AdvanceQueueOperations(ctx).advance_queue("ls_test", REVIEWER_ID)

        assert exc_info.value.errcode == AppErrorCode.E_MEETING_CREATION_FAILED.value
        entry = await store.get_entry(alice.entry_id)
        assert entry is not None
        assert entry.status == QueueEntryStatus.WAITING

    async def test_lost_race_cancels_meeting(self, clock, link_provider, email):
        """Test the entry moving during advancement cancels the new meeting."""

        class SkipDuringLinkStore(MemoryLiveQueueStore):
            async def insert_meeting(self, meeting):
                await self.transition_entry(
                    meeting.source_entry_id,
                    [QueueEntryStatus.WAITING],
                    QueueEntryStatus.SKIPPED,
                    {"skipped_at": meeting.requested_at},
                )
                return await super().insert_meeting(meeting)

        # Arrange
        store = SkipDuringLinkStore()
        ctx = make_context(store, clock, link_provider, email)
        await seed_session(store, clock)
        await _fill(ctx, "u.alice")

        # Act
        with pytest.raises(AppError) as exc_info:
            await AdvanceQueueOperations(ctx).advance_queue("ls_test", REVIEWER_ID)

        # Assert
        assert exc_info.value.errcode == AppErrorCode.E_QUEUE_CHANGED.value
        meetings = list(store._meetings.values())
        assert len(meetings) == 1
        assert meetings[0].status == MeetingStatus.CANCELLED
        email.send_turn_notification.assert_not_awaited()

    async def test_flip_failure_cancels_meeting(self, clock, link_provider, email):
        """Test a store error on the turn flip leaves no accepted meeting behind."""

        class FlipOutageStore(MemoryLiveQueueStore):
            async def transition_entry(self, entry_id, from_statuses, to_status, *args, **kwargs):
                if to_status == QueueEntryStatus.YOUR_TURN:
                    raise ConnectionError("store unreachable")
                return await super().transition_entry(
                    entry_id, from_statuses, to_status, *args, **kwargs
                )

        # Arrange
        store = FlipOutageStore()
        ctx = make_context(store, clock, link_provider, email)
        await seed_session(store, clock)
        (alice,) = await _fill(ctx, "u.alice")

        # Act
        with pytest.raises(ConnectionError):
            await AdvanceQueueOperations(ctx).advance_queue("ls_test", REVIEWER_ID)

        # Assert
        meetings = list(store._meetings.values())
        assert len(meetings) == 1
        assert meetings[0].status == MeetingStatus.CANCELLED
        entry = await store.get_entry(alice.entry_id)
        assert entry is not None
        assert entry.status == QueueEntryStatus.WAITING
        assert entry.meeting_id is None
        email.send_turn_notification.assert_not_awaited()

    async def test_flip_failure_surfaces_even_if_cancel_fails(self, clock, link_provider, email):
        class FullOutageStore(MemoryLiveQueueStore):
            async def transition_entry(self, entry_id, from_statuses, to_status, *args, **kwargs):
                if to_status == QueueEntryStatus.YOUR_TURN:
                    raise ConnectionError("store unreachable")
                return await super().transition_entry(
                    entry_id, from_statuses, to_status, *args, **kwargs
                )

            async def transition_meeting(self, *args, **kwargs):
                raise ConnectionError("store unreachable")

        store = FullOutageStore()
        ctx = make_context(store, clock, link_provider, email)
        await seed_session(store, clock)
        await _fill(ctx, "u.alice")

        with pytest.raises(ConnectionError):
            await AdvanceQueueOperations(ctx).advance_queue("ls_test", REVIEWER_ID)

    async def test_notification_failure_does_not_fail_advance(self, ctx, store, clock, email):
        await seed_session(store, clock)
        await save_applicant(store, "u.alice")
        await _fill(ctx, "u.alice")
        email.send_turn_notification.side_effect = RuntimeError("smtp down")

        result = await AdvanceQueueOperations(ctx).advance_queue("ls_test", REVIEWER_ID)

        assert result.entry.status == QueueEntryStatus.YOUR_TURN
        assert result.notified is False

    async def test_applicant_without_email_is_not_notified(self, ctx, store, clock, email):
        await seed_session(store, clock)
        await save_applicant(store, "u.alice", email=False)
        await _fill(ctx, "u.alice")

        result = await AdvanceQueueOperations(ctx).advance_queue("ls_test", REVIEWER_ID)

        assert result.notified is False
        email.send_turn_notification.assert_not_awaited()
