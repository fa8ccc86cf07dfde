# booking_app/models/event_type.py
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class EventType(SQLModel, table=True):
    """
    A bookable offering.

    Personal event types have team_id = None. The booking page lists them
    ordered by position (desc) then id (asc).

    `meta` is stored raw and validated on read; a row with broken
    metadata is skipped by the page instead of failing it.
    """

    __tablename__ = "event_types"

    id: int | None = Field(default=None, primary_key=True)

    title: str = Field(max_length=255)
    slug: str = Field(index=True)
    description: str | None = Field(default=None)

    # Duration in minutes
    length: int = Field(default=30, gt=0)

    hidden: bool = Field(default=False)
    position: int = Field(default=0)

    user_id: int | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )
    team_id: int | None = Field(
        default=None,
        foreign_key="teams.id",
        index=True,
    )

    requires_confirmation: bool = Field(default=False)
    requires_booker_email_verification: bool = Field(default=False)
    lock_time_zone_toggle_on_booking_page: bool = Field(default=False)

    # Smallest currency unit (cents)
    price: int = Field(default=0, ge=0)
    currency: str = Field(default="usd", max_length=3)

    recurring_event: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column("recurring_event", JSON),
    )

    meta: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column("metadata", JSON),
    )
