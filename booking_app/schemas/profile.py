# booking_app/schemas/profile.py
from typing import Any

from pydantic import BaseModel, ConfigDict, Field as PydanticField, field_validator
from sqlmodel import SQLModel, Field


class MigratedToOrgFrom(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    team_slug: str | None = PydanticField(default=None, alias="teamSlug")
    last_migration_time: str | None = PydanticField(default=None, alias="lastMigrationTime")
    reverted: bool | None = None
    last_revert_time: str | None = PydanticField(default=None, alias="lastRevertTime")


class TeamMetadata(BaseModel):
    """
    Structured form of `teams.metadata`.

    Every key is optional. Unknown keys are dropped; a known key with the
    wrong type raises ValidationError.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    requested_slug: str | None = PydanticField(default=None, alias="requestedSlug")
    payment_id: str | None = PydanticField(default=None, alias="paymentId")
    subscription_id: str | None = PydanticField(default=None, alias="subscriptionId")
    subscription_item_id: str | None = PydanticField(default=None, alias="subscriptionItemId")
    is_organization: bool | None = PydanticField(default=None, alias="isOrganization")
    is_platform: bool | None = PydanticField(default=None, alias="isPlatform")
    org_seats: int | None = PydanticField(default=None, alias="orgSeats")
    org_price_per_seat: float | None = PydanticField(default=None, alias="orgPricePerSeat")
    migrated_to_org_from: MigratedToOrgFrom | None = PydanticField(
        default=None, alias="migratedToOrgFrom"
    )


class MemberSummary(BaseModel):
    """Membership row as exposed alongside an organization."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    team_id: int
    role: str
    accepted: bool


class OrganizationSummary(BaseModel):
    """
    Parsed organization attached to a profile.

    `slug` keeps three states apart: set, explicitly None (unpublished),
    and not loaded at all (absent from `model_fields_set`).
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int | None = None
    name: str | None = None
    slug: str | None = None
    metadata: TeamMetadata | None = None
    requested_slug: str | None = None
    members: list[MemberSummary] | None = None


class UserProfile(BaseModel):
    """
    Canonical identity record leaving the profile repository.

    Organization profiles carry their row id and `up_id == str(id)`.
    The personal profile has `id=None` and `up_id == "usr-<user_id>"`.

    The inherited fields (name, avatar, avatar_url, start_time, end_time,
    buffer_time) are only filled by lookups that overlay the owning user.
    """

    model_config = ConfigDict(extra="ignore")

    id: int | None
    up_id: str
    uid: str | None = None
    user_id: int | None = None
    username: str | None = None
    organization_id: int | None = None
    organization: OrganizationSummary | None = None
    moved_from_user_id: int | None = None

    created_at: str | None = None
    updated_at: str | None = None

    # Inherited from the user
    name: str | None = None
    avatar: str | None = None
    avatar_url: str | None = None
    start_time: int | None = None
    end_time: int | None = None
    buffer_time: int | None = None

    # Owning User row, passed through as is; never serialized
    user: Any = PydanticField(default=None, exclude=True)


# ---------- Write payloads ----------


class _EmailFallback(SQLModel):
    """Username is optional; the email local part stands in for it."""

    model_config = ConfigDict(extra="forbid")

    username: str | None = None
    email: str

    @field_validator("email")
    @classmethod
    def require_local_part(cls, v: str) -> str:
        v = v.strip()
        if not v.split("@")[0]:
            raise ValueError("email must have a local part")
        return v

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    def resolved_username(self) -> str:
        return self.username or self.email.split("@")[0]


class ProfileCreate(_EmailFallback):
    """Payload for creating an organization profile."""

    user_id: int
    organization_id: int
    moved_from_user_id: int | None = None


class ProfileUpdate(_EmailFallback):
    """Upsert update branch: only the username can change."""


class ProfileKey(SQLModel):
    """Natural key of a profile."""

    model_config = ConfigDict(extra="forbid")

    user_id: int
    organization_id: int


class ProfileUserSeed(SQLModel):
    """A user being added to an organization in bulk."""

    id: int
    username: str | None = None
    email: str = Field(min_length=3)



class MemberAdd(SQLModel):
    """Payload for adding a user to an organization."""

    model_config = ConfigDict(extra="forbid")

    user_id: int
    username: str | None = None
    role: str = Field(default="member", min_length=1)
