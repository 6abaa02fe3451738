"""Turn outcome operations: confirm join, complete, skip."""

from loguru import logger

from app.schemas.live_queue_state import MeetingStatus, QueueEntryStatus
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .._base import BaseService
from ..live_models import QueueEntry
from .queue_models import SkipEntryResult
from .queue_state_machine import QueueEntryStateMachine


def _invalid_transition(entry: QueueEntry, target: QueueEntryStatus) -> AppError:
    return AppError(
        errcode=AppErrorCode.E_INVALID_TRANSITION,
        errmesg=f"Invalid queue entry transition: {entry.status} -> {target}",
        status_code=HttpStatusCode.BAD_REQUEST,
    )


class OutcomeOperations(BaseService):
    """Operations that resolve a queue entry's turn."""

    async def confirm_join(self, entry_id: str, applicant_id: str) -> QueueEntry:
        """Applicant confirms they entered the meeting (YOUR_TURN -> JOINED).

        Any mismatch (unknown entry, other applicant, not in YOUR_TURN) is
        reported as E_QUEUE_ENTRY_NOT_FOUND.
        """
        joined = await self.store.transition_entry(
            entry_id,
            QueueEntryStateMachine.get_valid_sources(QueueEntryStatus.JOINED),
            QueueEntryStatus.JOINED,
            {"joined_at": self.now()},
            applicant_id=applicant_id,
        )
        if joined is None:
            raise AppError(
                errcode=AppErrorCode.E_QUEUE_ENTRY_NOT_FOUND,
                errmesg=f"No turn to join for entry {entry_id} and applicant {applicant_id}",
                status_code=HttpStatusCode.NOT_FOUND,
            )

        logger.info(f"Applicant {applicant_id} joined meeting for entry {entry_id}")
        return joined

    async def complete_entry(self, entry_id: str, reviewer_id: str | None = None) -> QueueEntry:
        """Mark a turn finished (YOUR_TURN or JOINED -> COMPLETED) and free capacity.

        Completing straight from YOUR_TURN is allowed. When `reviewer_id` is
        given the entry's session must belong to that reviewer.
        """
        entry = await self._require_entry(entry_id)
        if reviewer_id is not None:
            await self._require_owned_session(entry.session_id, reviewer_id)

        sources = QueueEntryStateMachine.get_valid_sources(QueueEntryStatus.COMPLETED)
        if entry.status not in sources:
            raise _invalid_transition(entry, QueueEntryStatus.COMPLETED)

        now = self.now()
        completed = await self.store.transition_entry(
            entry_id, sources, QueueEntryStatus.COMPLETED, {"completed_at": now}
        )
        if completed is None:
            fresh = await self._require_entry(entry_id)
            raise _invalid_transition(fresh, QueueEntryStatus.COMPLETED)

        await self._release_capacity(entry.session_id, now)

        if completed.meeting_id:
            try:
                await self.store.transition_meeting(
                    completed.meeting_id,
                    [MeetingStatus.REQUESTED, MeetingStatus.ACCEPTED],
                    MeetingStatus.COMPLETED,
                    {"completed_at": now},
                )
            except Exception as e:
                logger.warning(f"Failed to complete meeting {completed.meeting_id}: {e!s}")

        logger.info(f"Queue entry {entry_id} completed")
        return completed

    async def skip_entry(self, entry_id: str, reviewer_id: str) -> SkipEntryResult:
        """Skip a WAITING or YOUR_TURN entry and free its capacity.

        Skipping an entry that is already SKIPPED succeeds with changed=False,
        so a manual skip racing the sweep never frees capacity twice.
        """
        entry = await self._require_entry(entry_id)
        await self._require_owned_session(entry.session_id, reviewer_id)

        if entry.status == QueueEntryStatus.SKIPPED:
            return SkipEntryResult(entry=entry, changed=False)
        if not QueueEntryStateMachine.can_transition(entry.status, QueueEntryStatus.SKIPPED):
            raise _invalid_transition(entry, QueueEntryStatus.SKIPPED)

        skipped = await self._skip_and_release(entry, reason=f"skipped by reviewer {reviewer_id}")
        if skipped:
            return SkipEntryResult(entry=skipped, changed=True)

        fresh = await self._require_entry(entry_id)
        if fresh.status == QueueEntryStatus.SKIPPED:
            return SkipEntryResult(entry=fresh, changed=False)
        raise _invalid_transition(fresh, QueueEntryStatus.SKIPPED)
