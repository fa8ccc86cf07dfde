# booking_app/models/organization.py
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import SQLModel, Field


class Organization(SQLModel, table=True):
    """
    Tenant (stored in the `teams` table).

    slug:
      - set   -> published, reachable as <slug>.<root domain>
      - None  -> unpublished; metadata["requestedSlug"] holds the slug the
                 organization asked for until it gets finalized
    """

    __tablename__ = "teams"

    id: int | None = Field(default=None, primary_key=True)

    name: str = Field(max_length=100)

    slug: str | None = Field(
        default=None,
        unique=True,
        index=True,
    )

    # `metadata` is reserved on declarative classes, hence the attribute name
    org_metadata: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column("metadata", JSON),
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class Membership(SQLModel, table=True):
    """
    User <-> Organization membership.

    Removing a membership does not cascade to the Profile row; see
    ProfileService.remove_membership.
    """

    __tablename__ = "memberships"
    __table_args__ = (UniqueConstraint("user_id", "team_id"),)

    id: int | None = Field(default=None, primary_key=True)

    user_id: int = Field(
        foreign_key="users.id",
        index=True,
    )

    team_id: int = Field(
        foreign_key="teams.id",
        index=True,
    )

    # member | admin | owner
    role: str = Field(default="member")

    accepted: bool = Field(default=False)
