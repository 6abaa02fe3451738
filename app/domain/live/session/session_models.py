"""Live session domain models."""

from pydantic import BaseModel

from ..live_models import LiveSession, Profile


class ActiveRoasterView(BaseModel):
    """An active session with its reviewer profile, when one exists."""

    session: LiveSession
    reviewer: Profile | None = None


class EndSessionResult(BaseModel):
    session: LiveSession
    # Entries moved to skipped by this call
    flushed_count: int = 0
    already_ended: bool = False
