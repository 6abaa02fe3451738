"""Profile ODM schema (read-only projection of the user profile table)."""

from beanie import Document, Indexed

from app.domain.live.live_models import Profile


class ProfileDocument(Document):
    user_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    name: str | None = None
    email: str | None = None
    company: str | None = None
    yc_batch: str | None = None
    industry: str | None = None
    role: str | None = None

    @classmethod
    def from_model(cls, profile: Profile) -> "ProfileDocument":
        return cls(**profile.model_dump())

    def to_model(self) -> Profile:
        return Profile.model_validate(self.model_dump(exclude={"id", "revision_id"}))

    class Settings:
        name = "profiles"
