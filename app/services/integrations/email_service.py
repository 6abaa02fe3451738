"""Transactional email over the Resend HTTP API.

Sends are best-effort from the caller's point of view: errors propagate from
here and callers log and drop them. With DEMO_MODE on or no RESEND_API_KEY,
sends are logged and skipped.
"""

from datetime import datetime
from html import escape

import httpx
from loguru import logger

from app.app_config import AppEnvironConfig, get_app_environ_config


class EmailService:
    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.resend.com",
        email_from: str = "MYC <noreply@myc-roast.com>",
        alerts_from: str = "MYC Alerts <hello@myc-roast.com>",
        team_email: str = "hello@myc-roast.com",
        demo_mode: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.email_from = email_from
        self.alerts_from = alerts_from
        self.team_email = team_email
        self.demo_mode = demo_mode
        self._transport = transport

    @classmethod
    def from_config(cls, cfg: AppEnvironConfig | None = None) -> "EmailService":
        cfg = cfg or get_app_environ_config()
        return cls(
            api_key=cfg.RESEND_API_KEY,
            base_url=cfg.RESEND_API_BASE_URL,
            email_from=cfg.EMAIL_FROM,
            alerts_from=cfg.EMAIL_ALERTS_FROM,
            team_email=cfg.TEAM_NOTIFICATION_EMAIL,
            demo_mode=cfg.DEMO_MODE,
        )

    async def _send(self, *, sender: str, to: str, subject: str, html: str) -> bool:
        """POST one email. Returns False when sending is disabled."""
        if self.demo_mode or not self.api_key:
            logger.info(f"Email disabled (demo_mode={self.demo_mode}): skip '{subject}' to {to}")
            return False

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/emails",
                json={"from": sender, "to": [to], "subject": subject, "html": html},
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=15,
            )
            response.raise_for_status()

        logger.info(f"Sent email '{subject}' to {to}")
        return True

    async def send_turn_notification(
        self,
        to_email: str,
        applicant_name: str | None,
        meeting_link: str,
        join_window_minutes: int = 2,
    ) -> bool:
        """Tell an applicant their turn started and how long they have to join."""
        name = escape(applicant_name or "there")
        link = escape(meeting_link, quote=True)
        html = (
            "<div>"
            "<h1>It's Your Turn!</h1>"
            f"<p>Hi {name},</p>"
            "<p>It's your turn in the queue. You have "
            f"<strong>{join_window_minutes} minutes</strong> to join the roast session.</p>"
            f'<p><a href="{link}">Join Roast Now</a></p>'
            f"<p>If you don't join within {join_window_minutes} minutes, you'll be automatically "
            "skipped and the next person will get their turn.</p>"
            "</div>"
        )
        return await self._send(
            sender=self.email_from,
            to=to_email,
            subject="It's your turn! Join your roast now",
            html=html,
        )

    async def send_live_session_notification(
        self,
        reviewer_name: str,
        reviewer_email: str | None,
        reviewer_company: str | None,
        reviewer_yc_batch: str | None,
        duration_minutes: int,
        industry: str | None,
        ends_at: datetime,
    ) -> bool:
        """Alert the team inbox that a reviewer went live."""
        rows = [
            ("Reviewer", reviewer_name),
            ("Email", reviewer_email),
            ("Company", reviewer_company),
            ("YC Batch", reviewer_yc_batch),
            ("Industry", industry),
            ("Duration", f"{duration_minutes} minutes"),
            ("Ends at", ends_at.strftime("%Y-%m-%d %H:%M UTC")),
        ]
        details = "".join(
            f"<p><strong>{label}:</strong> {escape(value)}</p>" for label, value in rows if value
        )
        return await self._send(
            sender=self.alerts_from,
            to=self.team_email,
            subject=f"LIVE NOW: {reviewer_name} is roasting!",
            html=f"<div><h1>{escape(reviewer_name)} is live</h1>{details}</div>",
        )


__all__ = ["EmailService"]
