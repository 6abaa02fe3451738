from pydantic import BaseModel

from app.shared.config import config


def _get_str(key: str, default: str = "") -> str:
    return (config.get(key) or default).strip()


def _get_optional_str(key: str) -> str | None:
    return (config.get(key) or "").strip() or None


def _get_int(key: str, default: int) -> int:
    return int((config.get(key) or "").strip() or default)


def _get_bool(key: str, default: str) -> bool:
    return (config.get(key) or default).strip().lower() == "true"


class AppEnvironConfig(BaseModel):
    DEBUG: bool = _get_bool("DEBUG", "false")
    # When enabled, external integrations use stubs and avoid network calls.
    DEMO_MODE: bool = _get_bool("DEMO_MODE", "true")

    # API server
    API_HOST: str = _get_str("API_HOST", "0.0.0.0")
    API_PORT: int = _get_int("API_PORT", 8000)
    API_WORKERS: int = _get_int("API_WORKERS", 1)
    API_CORS_ORIGINS: list[str] = [
        origin.strip()
        for origin in _get_str("API_CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ]

    # Storage: "mongo" or "memory"
    STORE_BACKEND: str = _get_str("STORE_BACKEND", "mongo").lower()
    MONGO_URL: str = _get_str("MONGO_URL", "mongodb://localhost:27017")
    MONGO_DB_NAME: str = _get_str("MONGO_DB_NAME", "myc_live_queue")

    # Sweep worker queue
    REDIS_URL: str = _get_str("REDIS_URL", "redis://localhost:6379")

    # Shared secret for cron-triggered endpoints; unset disables the check
    CRON_SECRET: str | None = _get_optional_str("CRON_SECRET")

    # Live queue rules
    MAX_QUEUE_SIZE: int = _get_int("MAX_QUEUE_SIZE", 10)
    MAX_SESSION_DURATION_MINUTES: int = _get_int("MAX_SESSION_DURATION_MINUTES", 1440)
    TURN_TIMEOUT_SECONDS: int = _get_int("TURN_TIMEOUT_SECONDS", 120)
    SWEEP_INTERVAL_SECONDS: int = _get_int("SWEEP_INTERVAL_SECONDS", 30)

    # Meetings
    MEETING_EXPIRY_HOURS: int = _get_int("MEETING_EXPIRY_HOURS", 24)
    MEETING_DURATION_MINUTES: int = _get_int("MEETING_DURATION_MINUTES", 10)
    DEFAULT_ROAST_TYPE: str = _get_str("DEFAULT_ROAST_TYPE", "pitch")
    # "jitsi", "daily" or "daily_with_fallback"
    MEETING_LINK_PROVIDER: str = _get_str("MEETING_LINK_PROVIDER", "daily_with_fallback").lower()
    DAILY_API_KEY: str | None = _get_optional_str("DAILY_API_KEY")
    DAILY_API_BASE_URL: str = _get_str("DAILY_API_BASE_URL", "https://api.daily.co/v1")
    JITSI_BASE_URL: str = _get_str("JITSI_BASE_URL", "https://meet.jit.si")

    # Email
    RESEND_API_KEY: str | None = _get_optional_str("RESEND_API_KEY")
    RESEND_API_BASE_URL: str = _get_str("RESEND_API_BASE_URL", "https://api.resend.com")
    EMAIL_FROM: str = _get_str("EMAIL_FROM", "MYC <noreply@myc-roast.com>")
    EMAIL_ALERTS_FROM: str = _get_str("EMAIL_ALERTS_FROM", "MYC Alerts <hello@myc-roast.com>")
    TEAM_NOTIFICATION_EMAIL: str = _get_str("TEAM_NOTIFICATION_EMAIL", "hello@myc-roast.com")


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
