"""Queue admission and read operations."""

from loguru import logger

from app.schemas.live_queue_state import LiveSessionStatus, QueueEntryStatus
from app.services.storage.store import DuplicateRecordError
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from ...utils.idgen import new_queue_entry_id
from .._base import BaseService
from ..live_models import LiveSession, QueueEntry
from .queue_models import JoinQueueResult, QueueEntryView, QueuePositionResult


def _session_inactive(session_id: str) -> AppError:
    return AppError(
        errcode=AppErrorCode.E_SESSION_INACTIVE,
        errmesg=f"Live session {session_id} is not accepting new entries",
        status_code=HttpStatusCode.BAD_REQUEST,
    )


def _queue_full(session: LiveSession) -> AppError:
    return AppError(
        errcode=AppErrorCode.E_QUEUE_FULL,
        errmesg=f"Queue is full ({session.current_queue_size}/{session.max_queue_size})",
        status_code=HttpStatusCode.BAD_REQUEST,
    )


def _already_queued(applicant_id: str, session_id: str) -> AppError:
    return AppError(
        errcode=AppErrorCode.E_ALREADY_QUEUED,
        errmesg=f"Applicant {applicant_id} is already in the queue of session {session_id}",
        status_code=HttpStatusCode.BAD_REQUEST,
    )


class QueueOperations(BaseService):
    """Queue admission, position and listing operations."""

    async def _display_rank(self, entry: QueueEntry) -> int:
        ahead = await self.store.count_active_entries(
            entry.session_id, before_position=entry.position
        )
        return ahead + 1

    async def join_queue(self, session_id: str, applicant_id: str) -> JoinQueueResult:
        """
        Add an applicant to the end of a session's queue.

        Checks, in order: session exists; session is active and not expired;
        queue has room; applicant holds no active entry. Capacity and the
        position counter are then taken in one atomic conditional update.

        Raises AppError with E_SESSION_NOT_FOUND, E_SESSION_INACTIVE,
        E_QUEUE_FULL or E_ALREADY_QUEUED.
        """
        if not applicant_id:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_PARAMS,
                errmesg="applicant_id is required",
                status_code=HttpStatusCode.BAD_REQUEST,
            )

        session = await self._require_session(session_id)
        if not session.accepts_joins(self.now()):
            raise _session_inactive(session_id)
        if session.is_full:
            raise _queue_full(session)
        if await self.store.find_active_entry(session_id, applicant_id):
            raise _already_queued(applicant_id, session_id)

        reserved = await self.store.reserve_capacity(session_id, self.now())
        if reserved is None:
            # Lost a race; report whichever guard failed
            fresh = await self._require_session(session_id)
            if not fresh.accepts_joins(self.now()):
                raise _session_inactive(session_id)
            raise _queue_full(fresh)

        entry = QueueEntry(
            entry_id=new_queue_entry_id(),
            session_id=session_id,
            applicant_id=applicant_id,
            position=reserved.next_position,
            status=QueueEntryStatus.WAITING,
            created_at=self.now(),
        )

        try:
            await self.store.insert_entry(entry)
        except DuplicateRecordError as e:
            logger.info(f"Concurrent join for applicant {applicant_id} in {session_id}: {e}")
            await self._release_capacity(session_id, self.now())
            raise _already_queued(applicant_id, session_id) from e
        except Exception:
            logger.error(
                f"Failed to insert queue entry for applicant {applicant_id} in {session_id}, "
                "releasing reserved capacity"
            )
            await self._release_capacity(session_id, self.now())
            raise

        # The session may have ended between the reservation and the insert
        current = await self.store.get_session(session_id)
        if current is None or current.status == LiveSessionStatus.ENDED:
            await self._skip_and_release(entry, reason="session ended during join")
            raise _session_inactive(session_id)

        position = await self._display_rank(entry)
        logger.info(
            f"Applicant {applicant_id} joined session {session_id}: entry {entry.entry_id} "
            f"position {position} (size {reserved.current_queue_size}/{reserved.max_queue_size})"
        )
        return JoinQueueResult(entry=entry, position=position)

    async def get_queue_position(self, session_id: str, applicant_id: str) -> QueuePositionResult:
        """Current rank of the applicant's active entry; shrinks as entries ahead leave."""
        entry = await self.store.find_active_entry(session_id, applicant_id)
        if not entry:
            raise AppError(
                errcode=AppErrorCode.E_NOT_IN_QUEUE,
                errmesg=f"Applicant {applicant_id} is not in the queue of session {session_id}",
                status_code=HttpStatusCode.NOT_FOUND,
            )

        return QueuePositionResult(
            entry=entry,
            position=await self._display_rank(entry),
            total_in_queue=await self.store.count_active_entries(session_id),
        )

    async def get_session_queue(self, session_id: str) -> list[QueueEntryView]:
        """Active entries in position order with applicant and meeting projections."""
        await self._require_session(session_id)

        entries = await self.store.list_entries(session_id, QueueEntryStatus.active_states())
        profiles = await self.store.get_profiles({e.applicant_id for e in entries})
        meetings = await self.store.get_meetings({e.meeting_id for e in entries if e.meeting_id})

        return [
            QueueEntryView(
                entry=entry,
                position=rank,
                applicant=profiles.get(entry.applicant_id),
                meeting=meetings.get(entry.meeting_id) if entry.meeting_id else None,
            )
            for rank, entry in enumerate(entries, start=1)
        ]
