"""Live queue domain service.

Public boundary of the live queue. Every operation returns a LiveQueueResult;
AppError and unexpected exceptions raised by the operation classes are caught
here and turned into failure results.
"""

from collections.abc import Awaitable
from typing import Generic, TypeVar

from loguru import logger
from pydantic import BaseModel

from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from ._base import LiveQueueContext
from .live_models import LiveSession, QueueEntry
from .queue._advance import AdvanceQueueOperations
from .queue._expiry import ExpiryOperations
from .queue._outcomes import OutcomeOperations
from .queue._queue import QueueOperations
from .queue.queue_models import (
    AdvanceQueueResult,
    AutoSkipResult,
    JoinQueueResult,
    QueueEntryView,
    QueuePositionResult,
    SkipEntryResult,
)
from .session._sessions import SessionOperations
from .session.session_models import ActiveRoasterView, EndSessionResult

T = TypeVar("T")


class LiveQueueResult(BaseModel, Generic[T]):
    success: bool
    results: T | None = None
    errcode: str | None = None
    error: str | None = None
    status_code: int = 200

    @classmethod
    def ok(cls, results: T) -> "LiveQueueResult[T]":
        return cls(success=True, results=results)

    @classmethod
    def fail(cls, errcode: str, error: str, status_code: int) -> "LiveQueueResult[T]":
        return cls(success=False, errcode=errcode, error=error, status_code=status_code)


class LiveQueueService:
    """Live session and queue operations behind a result-returning facade."""

    def __init__(self, ctx: LiveQueueContext):
        self.ctx = ctx
        self._sessions = SessionOperations(ctx)
        self._queue = QueueOperations(ctx)
        self._advance = AdvanceQueueOperations(ctx)
        self._outcomes = OutcomeOperations(ctx)
        self._expiry = ExpiryOperations(ctx)

    async def _run(self, operation: str, coro: Awaitable[T]) -> LiveQueueResult[T]:
        try:
            return LiveQueueResult.ok(await coro)
        except AppError as e:
            log = logger.error if e.status_code >= HttpStatusCode.INTERNAL_SERVER_ERROR else logger.info
            log(f"{operation} failed: {e.errcode} {e.errmesg} caller={e.caller_info}")
            return LiveQueueResult.fail(e.errcode, e.errmesg, e.status_code)
        except Exception as e:
            logger.exception(f"{operation} failed unexpectedly")
            return LiveQueueResult.fail(
                AppErrorCode.E_INTERNAL_ERROR.value,
                f"Unexpected error in {operation}: {e!s}",
                HttpStatusCode.INTERNAL_SERVER_ERROR,
            )

    # ==================== SESSIONS ====================

    async def go_live(self, reviewer_id: str, duration_minutes: int) -> LiveQueueResult[LiveSession]:
        return await self._run(
            "go_live", self._sessions.go_live(reviewer_id, duration_minutes)
        )

    async def end_session(
        self, session_id: str, reviewer_id: str
    ) -> LiveQueueResult[EndSessionResult]:
        return await self._run(
            "end_session", self._sessions.end_session(session_id, reviewer_id)
        )

    async def get_current_session(self, reviewer_id: str) -> LiveQueueResult[LiveSession | None]:
        return await self._run(
            "get_current_session", self._sessions.get_current_session(reviewer_id)
        )

    def is_expired(self, session: LiveSession) -> bool:
        return self._sessions.is_expired(session)

    async def get_active_roasters(self) -> LiveQueueResult[list[ActiveRoasterView]]:
        return await self._run("get_active_roasters", self._sessions.get_active_roasters())

    # ==================== QUEUE ====================

    async def join_queue(
        self, session_id: str, applicant_id: str
    ) -> LiveQueueResult[JoinQueueResult]:
        return await self._run("join_queue", self._queue.join_queue(session_id, applicant_id))

    async def get_queue_position(
        self, session_id: str, applicant_id: str
    ) -> LiveQueueResult[QueuePositionResult]:
        return await self._run(
            "get_queue_position", self._queue.get_queue_position(session_id, applicant_id)
        )

    async def get_session_queue(self, session_id: str) -> LiveQueueResult[list[QueueEntryView]]:
        return await self._run("get_session_queue", self._queue.get_session_queue(session_id))

    async def advance_queue(
        self, session_id: str, reviewer_id: str
    ) -> LiveQueueResult[AdvanceQueueResult]:
        return await self._run(
            "advance_queue", self._advance.advance_queue(session_id, reviewer_id)
        )

    # ==================== TURN OUTCOMES ====================

    async def confirm_join(self, entry_id: str, applicant_id: str) -> LiveQueueResult[QueueEntry]:
        return await self._run("confirm_join", self._outcomes.confirm_join(entry_id, applicant_id))

    async def complete_entry(
        self, entry_id: str, reviewer_id: str | None = None
    ) -> LiveQueueResult[QueueEntry]:
        return await self._run(
            "complete_entry", self._outcomes.complete_entry(entry_id, reviewer_id)
        )

    async def skip_entry(self, entry_id: str, reviewer_id: str) -> LiveQueueResult[SkipEntryResult]:
        return await self._run("skip_entry", self._outcomes.skip_entry(entry_id, reviewer_id))

    async def auto_skip_expired(self) -> LiveQueueResult[AutoSkipResult]:
        return await self._run("auto_skip_expired", self._expiry.auto_skip_expired())


__all__ = ["LiveQueueResult", "LiveQueueService"]
