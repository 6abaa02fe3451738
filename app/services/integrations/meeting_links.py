"""Meeting link providers.

The queue only needs a URL string back. Providers are interchangeable:

- jitsi: public meet.jit.si room, no API key.
- daily: Daily.co room created through the REST API, needs DAILY_API_KEY.
- daily_with_fallback: Daily.co first, Jitsi if Daily fails.
"""

from datetime import timedelta
from typing import Protocol

import httpx
from loguru import logger
from pydantic import BaseModel

from app.app_config import AppEnvironConfig, get_app_environ_config
from app.domain.utils.clock import utc_now
from app.domain.utils.idgen import new_ulid


class MeetingLinkError(Exception):
    """Raised when a provider cannot produce a meeting link."""


class MeetingLinkDetails(BaseModel):
    applicant_id: str
    reviewer_id: str
    applicant_name: str | None = None
    applicant_email: str | None = None
    reviewer_name: str | None = None
    reviewer_email: str | None = None
    roast_type: str | None = None
    duration_minutes: int = 10


class MeetingLinkProvider(Protocol):
    async def create_meeting_link(self, details: MeetingLinkDetails) -> str: ...


ROOM_NAME_PREFIX = "myc-roast-"


def new_room_name() -> str:
    """Unique room name used by every provider: myc-roast-<lowercase ulid>."""
    return f"{ROOM_NAME_PREFIX}{new_ulid()}"


class JitsiMeetingLinkProvider:
    def __init__(self, base_url: str = "https://meet.jit.si"):
        self.base_url = base_url.rstrip("/")

    async def create_meeting_link(self, details: MeetingLinkDetails) -> str:
        link = f"{self.base_url}/{new_room_name()}"
        logger.debug(f"Generated Jitsi link for applicant {details.applicant_id}: {link}")
        return link


class DailyMeetingLinkProvider:
    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.daily.co/v1",
        expiry_hours: int = 24,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.expiry_hours = expiry_hours
        self._transport = transport

    def _build_room_body(self) -> dict:
        expires_at = utc_now() + timedelta(hours=self.expiry_hours)
        return {
            "name": new_room_name(),
            "privacy": "public",
            "properties": {
                "enable_prejoin_ui": False,
                "enable_network_ui": False,
                "enable_screenshare": True,
                "enable_chat": True,
                "start_video_off": False,
                "start_audio_off": False,
                "exp": int(expires_at.timestamp()),
            },
        }

    async def create_meeting_link(self, details: MeetingLinkDetails) -> str:
        """Create a temporary public Daily.co room and return its URL."""
        if not self.api_key:
            raise MeetingLinkError("DAILY_API_KEY not configured")

        url = f"{self.base_url}/rooms"
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    url,
                    json=self._build_room_body(),
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    timeout=15,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise MeetingLinkError(
                f"Daily.co API error {e.response.status_code}: {e.response.text}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise MeetingLinkError(f"Daily.co request failed: {e!s}") from e

        room_url = data.get("url") if isinstance(data, dict) else None
        if not room_url:
            raise MeetingLinkError(f"Daily.co response missing url: {data}")

        logger.info(f"Created Daily.co room for applicant {details.applicant_id}: {room_url}")
        return room_url


class FallbackMeetingLinkProvider:
    """Try `primary`, fall back to `fallback` when it raises MeetingLinkError."""

    def __init__(self, primary: MeetingLinkProvider, fallback: MeetingLinkProvider):
        self.primary = primary
        self.fallback = fallback

    async def create_meeting_link(self, details: MeetingLinkDetails) -> str:
        try:
            return await self.primary.create_meeting_link(details)
        except MeetingLinkError as e:
            logger.warning(f"Primary meeting link provider failed, using fallback: {e!s}")
            return await self.fallback.create_meeting_link(details)


def create_meeting_link_provider(cfg: AppEnvironConfig | None = None) -> MeetingLinkProvider:
    cfg = cfg or get_app_environ_config()
    jitsi = JitsiMeetingLinkProvider(cfg.JITSI_BASE_URL)

    if cfg.DEMO_MODE:
        logger.info("Meeting links DEMO_MODE=true: using Jitsi provider")
        return jitsi

    daily = DailyMeetingLinkProvider(
        api_key=cfg.DAILY_API_KEY,
        base_url=cfg.DAILY_API_BASE_URL,
        expiry_hours=cfg.MEETING_EXPIRY_HOURS,
    )
    if cfg.MEETING_LINK_PROVIDER == "jitsi":
        return jitsi
    if cfg.MEETING_LINK_PROVIDER == "daily":
        return daily
    if cfg.MEETING_LINK_PROVIDER == "daily_with_fallback":
        return FallbackMeetingLinkProvider(daily, jitsi)
    raise ValueError(f"Unknown MEETING_LINK_PROVIDER '{cfg.MEETING_LINK_PROVIDER}'")


__all__ = [
    "DailyMeetingLinkProvider",
    "FallbackMeetingLinkProvider",
    "JitsiMeetingLinkProvider",
    "MeetingLinkDetails",
    "MeetingLinkError",
    "MeetingLinkProvider",
    "create_meeting_link_provider",
]
