# booking_app/models/profile.py
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(SQLModel, table=True):
    """
    Binds a User to an Organization.

    Invariants:
      - at most one profile per (user_id, organization_id)
      - username is unique inside an organization
      - uid is generated once and never changes
    """

    __tablename__ = "profiles"
    __table_args__ = (
        UniqueConstraint("user_id", "organization_id"),
        UniqueConstraint("organization_id", "username"),
    )

    id: int | None = Field(default=None, primary_key=True)

    uid: str = Field(
        unique=True,
        index=True,
        description="Opaque external identifier",
    )

    user_id: int = Field(
        foreign_key="users.id",
        index=True,
    )

    organization_id: int = Field(
        foreign_key="teams.id",
        index=True,
    )

    username: str = Field(
        index=True,
        description="Organization-scoped username",
    )

    # Set when a standalone user account was merged into this organization
    moved_from_user_id: int | None = Field(
        default=None,
        foreign_key="users.id",
    )

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(
        default_factory=_utcnow,
        sa_column_kwargs={"onupdate": _utcnow},
    )
