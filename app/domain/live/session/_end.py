"""Live session ending operations."""

from loguru import logger

from app.schemas.live_queue_state import QueueEntryStatus

from .._base import BaseService
from .session_models import EndSessionResult
from .session_state_machine import LiveSessionStateMachine


class EndSessionOperations(BaseService):
    """Operations for ending live sessions."""

    async def end_session(self, session_id: str, reviewer_id: str) -> EndSessionResult:
        """End a session and flush its queue.

        Every WAITING / YOUR_TURN entry is moved to SKIPPED and frees its
        capacity; meetings of flushed turns are cancelled. JOINED and COMPLETED
        entries are left for the reviewer to finish. Calling this on an ended
        session is a no-op apart from flushing any stragglers.

        Raises:
            AppError: If the session is not found (E_SESSION_NOT_FOUND) or
                belongs to another reviewer (E_UNAUTHORIZED).
        """
        session = await self._require_owned_session(session_id, reviewer_id)
        logger.info(f"Ending live session {session_id} (current state: {session.status})")

        already_ended = LiveSessionStateMachine.is_terminal(session.status)
        ended = None
        if not already_ended:
            ended = await self.store.end_session(session_id, self.now())
        if ended is None:
            already_ended = True
            logger.info(f"Live session {session_id} already ended")
            ended = await self._require_session(session_id)

        flushed_count = await self._flush_queue(session_id)
        if flushed_count:
            ended = await self._require_session(session_id)
        logger.info(
            f"Live session {session_id} ended, flushed {flushed_count} queue entries "
            f"(queue size {ended.current_queue_size})"
        )

        return EndSessionResult(session=ended, flushed_count=flushed_count, already_ended=already_ended)

    async def _flush_queue(self, session_id: str) -> int:
        entries = await self.store.list_entries(
            session_id, [QueueEntryStatus.WAITING, QueueEntryStatus.YOUR_TURN]
        )
        flushed = 0
        for entry in entries:
            if await self._skip_and_release(entry, reason="session ended"):
                flushed += 1
        return flushed
