from fastapi import APIRouter, Depends, Query

from app.api.v1.dependency import get_live_queue_service, unwrap
from app.api.v1.schemas.base import ApiOut
from app.api.v1.schemas.live_queue import (
    ActiveRoasterOut,
    ActiveRoastersOut,
    CompleteEntryIn,
    ConfirmJoinIn,
    CurrentSessionOut,
    EndSessionIn,
    EndSessionOut,
    GoLiveIn,
    JoinQueueIn,
    JoinQueueOut,
    LiveSessionOut,
    MeetingOut,
    ProfileOut,
    QueueEntryOut,
    QueueEntryViewOut,
    QueuePositionOut,
    SessionQueueOut,
    SkipEntryIn,
    SkipEntryOut,
)
from app.domain.live.live_models import LiveSession, Meeting, Profile, QueueEntry
from app.domain.live.live_queue_domain import LiveQueueService

router = APIRouter(prefix="/live-queue")


def _session_out(session: LiveSession) -> LiveSessionOut:
    return LiveSessionOut.model_validate(session.model_dump(mode="json"))


def _entry_out(entry: QueueEntry) -> QueueEntryOut:
    return QueueEntryOut.model_validate(entry.model_dump(mode="json"))


def _meeting_out(meeting: Meeting | None) -> MeetingOut | None:
    return MeetingOut.model_validate(meeting.model_dump(mode="json")) if meeting else None


def _profile_out(profile: Profile | None) -> ProfileOut | None:
    return ProfileOut.model_validate(profile.model_dump(mode="json")) if profile else None


@router.post("/go-live")
async def go_live(
    body: GoLiveIn,
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[LiveSessionOut]:
    """Open a live session for the reviewer."""
    session = unwrap(await service.go_live(body.reviewer_id, body.duration_minutes))
    return ApiOut[LiveSessionOut](results=_session_out(session))


@router.post("/end-session")
async def end_session(
    body: EndSessionIn,
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[EndSessionOut]:
    """End a live session and flush its waiting entries."""
    result = unwrap(await service.end_session(body.session_id, body.reviewer_id))
    return ApiOut[EndSessionOut](
        results=EndSessionOut(
            session=_session_out(result.session),
            flushed_count=result.flushed_count,
        )
    )


@router.get("/current-session")
async def current_session(
    reviewer_id: str = Query(..., min_length=1, alias="reviewerId"),
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[CurrentSessionOut]:
    session = unwrap(await service.get_current_session(reviewer_id))
    if session is None:
        return ApiOut[CurrentSessionOut](results=CurrentSessionOut())
    return ApiOut[CurrentSessionOut](
        results=CurrentSessionOut(
            session=_session_out(session),
            is_expired=service.is_expired(session),
        )
    )


@router.get("/active-roasters")
async def active_roasters(
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[ActiveRoastersOut]:
    """Reviewers currently live, newest first."""
    views = unwrap(await service.get_active_roasters())
    return ApiOut[ActiveRoastersOut](
        results=ActiveRoastersOut(
            roasters=[
                ActiveRoasterOut(session=_session_out(v.session), reviewer=_profile_out(v.reviewer))
                for v in views
            ]
        )
    )


@router.post("/join")
async def join_queue(
    body: JoinQueueIn,
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[JoinQueueOut]:
    result = unwrap(await service.join_queue(body.session_id, body.applicant_id))
    return ApiOut[JoinQueueOut](
        results=JoinQueueOut(entry=_entry_out(result.entry), position=result.position)
    )


@router.get("/position")
async def queue_position(
    session_id: str = Query(..., min_length=1, alias="sessionId"),
    applicant_id: str = Query(..., min_length=1, alias="applicantId"),
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[QueuePositionOut]:
    result = unwrap(await service.get_queue_position(session_id, applicant_id))
    return ApiOut[QueuePositionOut](
        results=QueuePositionOut(
            entry=_entry_out(result.entry),
            position=result.position,
            total_in_queue=result.total_in_queue,
        )
    )


@router.get("/sessions/{session_id}/queue")
async def session_queue(
    session_id: str,
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[SessionQueueOut]:
    """Active entries of a session in queue order."""
    views = unwrap(await service.get_session_queue(session_id))
    return ApiOut[SessionQueueOut](
        results=SessionQueueOut(
            entries=[
                QueueEntryViewOut(
                    entry=_entry_out(v.entry),
                    position=v.position,
                    applicant=_profile_out(v.applicant),
                    meeting=_meeting_out(v.meeting),
                )
                for v in views
            ]
        )
    )


@router.post("/confirm-join")
async def confirm_join(
    body: ConfirmJoinIn,
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[QueueEntryOut]:
    entry = unwrap(await service.confirm_join(body.entry_id, body.applicant_id))
    return ApiOut[QueueEntryOut](results=_entry_out(entry))


@router.post("/complete")
async def complete_entry(
    body: CompleteEntryIn,
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[QueueEntryOut]:
    entry = unwrap(await service.complete_entry(body.entry_id, body.reviewer_id))
    return ApiOut[QueueEntryOut](results=_entry_out(entry))


@router.post("/skip")
async def skip_entry(
    body: SkipEntryIn,
    service: LiveQueueService = Depends(get_live_queue_service),
) -> ApiOut[SkipEntryOut]:
    result = unwrap(await service.skip_entry(body.entry_id, body.reviewer_id))
    return ApiOut[SkipEntryOut](
        results=SkipEntryOut(entry=_entry_out(result.entry), changed=result.changed)
    )
