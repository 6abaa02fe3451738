"""Endpoints driven by cron jobs and the reviewer's "start next" button."""

from fastapi import APIRouter, Depends

from app.api.v1.dependency import get_live_queue_service, unwrap, verify_cron_secret
from app.api.v1.schemas.base import ApiOut
from app.api.v1.schemas.live_queue import (
    AutoSkipOut,
    MeetingOut,
    ProcessNextIn,
    ProcessNextOut,
    QueueEntryOut,
)
from app.domain.live.live_queue_domain import LiveQueueService
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

router = APIRouter(prefix="/live-queue")


async def _auto_skip(service: LiveQueueService) -> ApiOut[AutoSkipOut]:
    result = unwrap(await service.auto_skip_expired())
    return ApiOut[AutoSkipOut](results=AutoSkipOut(skipped_count=result.skipped_count))


@router.post("/auto-skip", dependencies=[Depends(verify_cron_secret)])
async def auto_skip(
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[AutoSkipOut]:
    """Skip turns that were not joined within the turn timeout."""
    return await _auto_skip(service)


@router.get("/auto-skip", dependencies=[Depends(verify_cron_secret)])
async def auto_skip_get(
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[AutoSkipOut]:
    """GET alias of POST /auto-skip for schedulers that only issue GETs."""
    return await _auto_skip(service)


@router.post("/process-next")
async def process_next(
    body: ProcessNextIn,
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[ProcessNextOut]:
    """Advance the session's queue and notify the applicant whose turn it is."""
    if not body.session_id or not body.reviewer_id:
        raise AppError(
            errcode=AppErrorCode.E_INVALID_REQUEST,
            errmesg="Missing sessionId or reviewerId",
            status_code=HttpStatusCode.BAD_REQUEST,
        )

    result = unwrap(await service.advance_queue(body.session_id, body.reviewer_id))
    return ApiOut[ProcessNextOut](
        results=ProcessNextOut(
            entry=QueueEntryOut.model_validate(result.entry.model_dump(mode="json")),
            meeting=MeetingOut.model_validate(result.meeting.model_dump(mode="json")),
            meeting_link=result.meeting_link,
            notified=result.notified,
        )
    )
