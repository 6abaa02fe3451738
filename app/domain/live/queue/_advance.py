"""Queue advancement: hand the head of the queue a turn and a meeting."""

from datetime import timedelta

from loguru import logger

from app.schemas.live_queue_state import MeetingStatus, QueueEntryStatus
from app.services.integrations.meeting_links import MeetingLinkDetails
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from ...utils.idgen import new_meeting_id
from .._base import BaseService
from ..live_models import LiveSession, Meeting, QueueEntry
from .queue_models import AdvanceQueueResult
from .queue_state_machine import QueueEntryStateMachine


class AdvanceQueueOperations(BaseService):
    """Reviewer-paced queue advancement."""

    async def advance_queue(self, session_id: str, reviewer_id: str) -> AdvanceQueueResult:
        """Give the lowest-position WAITING entry its turn.

        Writes happen in this order: meeting link, meeting row, then the
        conditional WAITING -> YOUR_TURN flip. A failure before the flip
        leaves the entry untouched. If the flip loses a race or raises, the
        fresh meeting is cancelled so no accepted meeting outlives a failed
        advancement.

        Raises:
            AppError: E_SESSION_NOT_FOUND, E_UNAUTHORIZED, E_QUEUE_EMPTY,
                E_MEETING_CREATION_FAILED or E_QUEUE_CHANGED.
        """
        session = await self._require_owned_session(session_id, reviewer_id)

        entry = await self.store.next_waiting_entry(session_id)
        if not entry:
            raise AppError(
                errcode=AppErrorCode.E_QUEUE_EMPTY,
                errmesg=f"No one is waiting in session {session_id}",
                status_code=HttpStatusCode.BAD_REQUEST,
            )

        profiles = await self.store.get_profiles({entry.applicant_id, session.reviewer_id})
        applicant = profiles.get(entry.applicant_id)
        reviewer = profiles.get(session.reviewer_id)

        details = MeetingLinkDetails(
            applicant_id=entry.applicant_id,
            reviewer_id=session.reviewer_id,
            applicant_name=applicant.name if applicant else None,
            applicant_email=applicant.email if applicant else None,
            reviewer_name=reviewer.name if reviewer else None,
            reviewer_email=reviewer.email if reviewer else None,
            roast_type=self.rules.default_roast_type.value,
            duration_minutes=self.rules.meeting_duration_minutes,
        )
        meeting = await self._create_meeting(session, entry, details)

        now = self.now()
        try:
            advanced = await self.store.transition_entry(
                entry.entry_id,
                QueueEntryStateMachine.get_valid_sources(QueueEntryStatus.YOUR_TURN),
                QueueEntryStatus.YOUR_TURN,
                {"notified_at": now, "meeting_id": meeting.meeting_id},
            )
        except Exception as e:
            logger.error(f"Turn flip failed for entry {entry.entry_id}: {e!s}")
            await self._withdraw_meeting(meeting.meeting_id, "turn flip failed")
            raise
        if advanced is None:
            logger.warning(
                f"Queue entry {entry.entry_id} changed while advancing session {session_id}"
            )
            await self._withdraw_meeting(meeting.meeting_id, "queue changed during advancement")
            raise AppError(
                errcode=AppErrorCode.E_QUEUE_CHANGED,
                errmesg="The queue changed while advancing, please try again",
                status_code=HttpStatusCode.BAD_REQUEST,
            )

        logger.info(
            f"Advanced session {session_id}: entry {entry.entry_id} (applicant "
            f"{entry.applicant_id}) is up, meeting {meeting.meeting_id}"
        )

        notified = await self._notify_turn(advanced, meeting, applicant)
        return AdvanceQueueResult(
            entry=advanced,
            meeting=meeting,
            meeting_link=meeting.meeting_link or "",
            notified=notified,
        )

    async def _create_meeting(
        self, session: LiveSession, entry: QueueEntry, details: MeetingLinkDetails
    ) -> Meeting:
        try:
            meeting_link = await self.ctx.link_provider.create_meeting_link(details)
        except Exception as e:
            logger.error(f"Meeting link creation failed for entry {entry.entry_id}: {e!s}")
            raise AppError(
                errcode=AppErrorCode.E_MEETING_CREATION_FAILED,
                errmesg=f"Failed to create meeting link: {e!s}",
                status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
            ) from e

        now = self.now()
        meeting = Meeting(
            meeting_id=new_meeting_id(),
            applicant_id=entry.applicant_id,
            reviewer_id=session.reviewer_id,
            roast_type=self.rules.default_roast_type,
            status=MeetingStatus.ACCEPTED,
            meeting_link=meeting_link,
            source_entry_id=entry.entry_id,
            requested_at=now,
            accepted_at=now,
            expires_at=now + timedelta(hours=self.rules.meeting_expiry_hours),
            scheduled_for=now,
        )

        try:
            await self.store.insert_meeting(meeting)
        except Exception as e:
            logger.error(f"Meeting insert failed for entry {entry.entry_id}: {e!s}")
            raise AppError(
                errcode=AppErrorCode.E_MEETING_CREATION_FAILED,
                errmesg=f"Failed to create meeting: {e!s}",
                status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
            ) from e

        return meeting

    async def _withdraw_meeting(self, meeting_id: str, reason: str) -> None:
        """Cancel a meeting whose entry never reached YOUR_TURN.

        A cancel failure is logged; the caller's outcome takes precedence.
        """
        try:
            await self._cancel_meeting(meeting_id, reason)
        except Exception as e:
            logger.error(f"Could not cancel orphaned meeting {meeting_id}: {e!s}")

    async def _notify_turn(self, entry: QueueEntry, meeting: Meeting, applicant) -> bool:
        if not applicant or not applicant.email:
            logger.info(f"No email on file for applicant {entry.applicant_id}, skip notification")
            return False
        try:
            return await self.ctx.email.send_turn_notification(
                to_email=applicant.email,
                applicant_name=applicant.name,
                meeting_link=meeting.meeting_link or "",
                join_window_minutes=max(1, self.rules.turn_timeout_seconds // 60),
            )
        except Exception as e:
            logger.warning(f"Failed to notify applicant {entry.applicant_id}: {e!s}")
            return False
