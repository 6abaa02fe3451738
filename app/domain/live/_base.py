"""Base service shared by live session and queue operations."""

from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from app.domain.utils.clock import Clock, utc_now
from app.schemas.live_queue_state import MeetingStatus, QueueEntryStatus
from app.services.integrations.email_service import EmailService
from app.services.integrations.meeting_links import MeetingLinkProvider
from app.services.storage.store import LiveQueueStore
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .live_models import LiveQueueRules, LiveSession, QueueEntry
from .queue.queue_state_machine import QueueEntryStateMachine


@dataclass
class LiveQueueContext:
    """Collaborators injected into every operation class."""

    store: LiveQueueStore
    link_provider: MeetingLinkProvider
    email: EmailService
    rules: LiveQueueRules = field(default_factory=LiveQueueRules)
    clock: Clock = utc_now


class BaseService:
    """Base service with shared live queue operation methods."""

    def __init__(self, ctx: LiveQueueContext):
        self.ctx = ctx
        self.store = ctx.store
        self.rules = ctx.rules

    def now(self) -> datetime:
        return self.ctx.clock()

    async def _require_session(self, session_id: str) -> LiveSession:
        session = await self.store.get_session(session_id)
        if not session:
            raise AppError(
                errcode=AppErrorCode.E_SESSION_NOT_FOUND,
                errmesg=f"Live session not found: {session_id}",
                status_code=HttpStatusCode.NOT_FOUND,
            )
        return session

    async def _require_owned_session(self, session_id: str, reviewer_id: str) -> LiveSession:
        session = await self._require_session(session_id)
        if session.reviewer_id != reviewer_id:
            raise AppError(
                errcode=AppErrorCode.E_UNAUTHORIZED,
                errmesg=f"Live session {session_id} does not belong to reviewer {reviewer_id}",
                status_code=HttpStatusCode.FORBIDDEN,
            )
        return session

    async def _require_entry(self, entry_id: str) -> QueueEntry:
        entry = await self.store.get_entry(entry_id)
        if not entry:
            raise AppError(
                errcode=AppErrorCode.E_QUEUE_ENTRY_NOT_FOUND,
                errmesg=f"Queue entry not found: {entry_id}",
                status_code=HttpStatusCode.NOT_FOUND,
            )
        return entry

    async def _release_capacity(self, session_id: str, now: datetime) -> None:
        released = await self.store.release_capacity(session_id, now)
        if released is None:
            # Counter already at zero; the floor held
            logger.warning(f"Capacity release on session {session_id} hit the zero floor")
        else:
            logger.debug(
                f"Released capacity on session {session_id} "
                f"(size={released.current_queue_size}/{released.max_queue_size})"
            )

    async def _cancel_meeting(self, meeting_id: str, reason: str) -> None:
        cancelled = await self.store.transition_meeting(
            meeting_id,
            [MeetingStatus.REQUESTED, MeetingStatus.ACCEPTED],
            MeetingStatus.CANCELLED,
        )
        if cancelled:
            logger.info(f"Meeting {meeting_id} cancelled ({reason})")

    async def _skip_and_release(self, entry: QueueEntry, reason: str) -> QueueEntry | None:
        """Conditionally move `entry` to SKIPPED and free its capacity.

        Returns the updated entry, or None if another actor moved it first. Only
        the caller that wins the conditional update releases capacity.
        """
        now = self.now()
        skipped = await self.store.transition_entry(
            entry.entry_id,
            QueueEntryStateMachine.get_valid_sources(QueueEntryStatus.SKIPPED),
            QueueEntryStatus.SKIPPED,
            {"skipped_at": now},
        )
        if skipped is None:
            logger.debug(f"Queue entry {entry.entry_id} already moved, skip is a no-op")
            return None

        await self._release_capacity(entry.session_id, now)
        if skipped.meeting_id:
            await self._cancel_meeting(skipped.meeting_id, reason)

        logger.info(f"Queue entry {entry.entry_id} skipped ({reason})")
        return skipped
