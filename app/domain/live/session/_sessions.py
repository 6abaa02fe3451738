"""Live session operations."""

from datetime import timedelta

from loguru import logger

from app.schemas.live_queue_state import LiveSessionStatus
from app.services.storage.store import DuplicateRecordError
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from ...utils.idgen import new_live_session_id
from .._base import BaseService, LiveQueueContext
from ..live_models import LiveSession
from ._end import EndSessionOperations
from .session_models import ActiveRoasterView


class SessionOperations(BaseService):
    """Live session lifecycle operations."""

    def __init__(self, ctx: LiveQueueContext):
        super().__init__(ctx)
        self._end = EndSessionOperations(ctx)

    def _validate_duration(self, duration_minutes: int) -> None:
        limit = self.rules.max_session_duration_minutes
        if not 1 <= duration_minutes <= limit:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_PARAMS,
                errmesg=f"duration_minutes must be between 1 and {limit}, got {duration_minutes}",
                status_code=HttpStatusCode.BAD_REQUEST,
            )

    async def go_live(self, reviewer_id: str, duration_minutes: int) -> LiveSession:
        """
        Open a live session for the reviewer.

        An active session that has already run past ends_at is ended first so
        the reviewer is not locked out by a window nobody closed.

        Raises AppError E_ALREADY_LIVE if an unexpired active session exists.
        """
        if not reviewer_id:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_PARAMS,
                errmesg="reviewer_id is required",
                status_code=HttpStatusCode.BAD_REQUEST,
            )
        self._validate_duration(duration_minutes)

        existing = await self.store.find_active_session(reviewer_id)
        if existing:
            if existing.is_expired(self.now()):
                logger.info(
                    f"Ending expired live session {existing.session_id} before going live again"
                )
                await self._end.end_session(existing.session_id, reviewer_id)
            else:
                raise AppError(
                    errcode=AppErrorCode.E_ALREADY_LIVE,
                    errmesg=f"Reviewer {reviewer_id} already has an active session: {existing.session_id}",
                    status_code=HttpStatusCode.BAD_REQUEST,
                )

        now = self.now()
        session = LiveSession(
            session_id=new_live_session_id(),
            reviewer_id=reviewer_id,
            status=LiveSessionStatus.ACTIVE,
            duration_minutes=duration_minutes,
            max_queue_size=self.rules.max_queue_size,
            current_queue_size=0,
            next_position=0,
            started_at=now,
            ends_at=now + timedelta(minutes=duration_minutes),
            created_at=now,
            updated_at=now,
        )

        try:
            await self.store.insert_session(session)
        except DuplicateRecordError as e:
            # Race: a concurrent go_live for the same reviewer won the unique index
            logger.warning(f"Duplicate active session for reviewer {reviewer_id}: {e}")
            raise AppError(
                errcode=AppErrorCode.E_ALREADY_LIVE,
                errmesg=f"Reviewer {reviewer_id} already has an active session",
                status_code=HttpStatusCode.BAD_REQUEST,
            ) from e

        logger.info(
            f"Reviewer {reviewer_id} went live: session {session.session_id} "
            f"for {duration_minutes} min (ends {session.ends_at.isoformat()})"
        )

        await self._notify_went_live(session)
        return session

    async def _notify_went_live(self, session: LiveSession) -> None:
        try:
            profile = await self.store.get_profile(session.reviewer_id)
            await self.ctx.email.send_live_session_notification(
                reviewer_name=(profile.name if profile else None) or "A reviewer",
                reviewer_email=profile.email if profile else None,
                reviewer_company=profile.company if profile else None,
                reviewer_yc_batch=profile.yc_batch if profile else None,
                duration_minutes=session.duration_minutes,
                industry=profile.industry if profile else None,
                ends_at=session.ends_at,
            )
        except Exception as e:
            logger.warning(
                f"Failed to send live session notification for {session.session_id}: {e!s}"
            )

    async def end_session(self, session_id: str, reviewer_id: str):
        return await self._end.end_session(session_id, reviewer_id)

    async def get_current_session(self, reviewer_id: str) -> LiveSession | None:
        """The reviewer's active session, or None. No session is not an error."""
        return await self.store.find_active_session(reviewer_id)

    def is_expired(self, session: LiveSession) -> bool:
        return session.is_expired(self.now())

    async def get_active_roasters(self) -> list[ActiveRoasterView]:
        """Active, unexpired sessions newest first, with reviewer profiles where known."""
        sessions = await self.store.list_active_sessions(self.now())
        profiles = await self.store.get_profiles({s.reviewer_id for s in sessions})
        return [
            ActiveRoasterView(session=session, reviewer=profiles.get(session.reviewer_id))
            for session in sessions
        ]
