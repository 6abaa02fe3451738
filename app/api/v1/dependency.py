import hmac
from typing import TypeVar

from fastapi import Header
from loguru import logger

from app.app_config import get_app_environ_config
from app.domain.live._base import LiveQueueContext
from app.domain.live.live_models import LiveQueueRules
from app.domain.live.live_queue_domain import LiveQueueResult, LiveQueueService
from app.services.integrations.email_service import EmailService
from app.services.integrations.meeting_links import create_meeting_link_provider
from app.services.storage import LiveQueueStore, create_live_queue_store
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

T = TypeVar("T")

_live_queue_service: LiveQueueService | None = None


def build_live_queue_service(store: LiveQueueStore | None = None) -> LiveQueueService:
    cfg = get_app_environ_config()
    ctx = LiveQueueContext(
        store=store or create_live_queue_store(),
        link_provider=create_meeting_link_provider(cfg),
        email=EmailService.from_config(cfg),
        rules=LiveQueueRules.from_config(cfg),
    )
    return LiveQueueService(ctx)


def get_live_queue_service() -> LiveQueueService:
    """Get the singleton LiveQueueService instance."""
    global _live_queue_service
    if _live_queue_service is None:
        _live_queue_service = build_live_queue_service()
    return _live_queue_service


def set_live_queue_service(service: LiveQueueService | None) -> None:
    global _live_queue_service
    _live_queue_service = service


async def verify_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """Require `Authorization: Bearer <CRON_SECRET>` when CRON_SECRET is configured."""
    secret = get_app_environ_config().CRON_SECRET
    if not secret:
        return

    expected = f"Bearer {secret}"
    if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
        logger.warning("Rejected cron request with missing or invalid bearer token")
        raise AppError(
            errcode=AppErrorCode.E_BAD_TOKEN,
            errmesg="Unauthorized",
            status_code=HttpStatusCode.UNAUTHORIZED,
        )


def unwrap(result: LiveQueueResult[T]) -> T:
    """Return the results of a successful LiveQueueResult or raise it as AppError."""
    if not result.success:
        raise AppError(
            errcode=result.errcode or AppErrorCode.E_INTERNAL_ERROR.value,
            errmesg=result.error or "Live queue operation failed",
            status_code=result.status_code,
        )
    return result.results  # type: ignore[return-value]
