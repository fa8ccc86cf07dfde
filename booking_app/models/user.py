# booking_app/models/user.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Legacy identity root.

    A user always has a personal identity (addressed as `usr-<id>`), and
    may additionally belong to organizations through Profile rows.

    Display fields (name, avatar, scheduling defaults) live here only;
    profiles inherit them instead of duplicating them.
    """

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)

    # Global username; organization members get a per-org one on Profile
    username: str | None = Field(
        default=None,
        unique=True,
        index=True,
        description="Global booking-page username",
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    name: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(
        default=None,
        description="Markdown bio shown on the booking page",
    )

    away: bool = Field(default=False)
    verified: bool = Field(default=False)

    avatar: str | None = Field(
        default=None,
        description="Storage reference of the uploaded avatar",
    )
    avatar_url: str | None = Field(default=None)

    brand_color: str | None = Field(default=None, max_length=10)
    dark_brand_color: str | None = Field(default=None, max_length=10)
    theme: str | None = Field(default=None, max_length=20)

    # Scheduling defaults, minutes from midnight in `time_zone`
    time_zone: str = Field(default="Europe/London")
    start_time: int = Field(default=0, ge=0)
    end_time: int = Field(default=1440, ge=0)
    buffer_time: int = Field(default=0, ge=0)

    # None means "never set" and is treated as allowed
    allow_seo_indexing: bool | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
