# booking_app/models/redirect.py
from uuid import uuid4
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class OutOfOfficeEntry(SQLModel, table=True):
    """
    A period during which a user is away.

    If to_user_id is set, visitors of the user's page are forwarded to
    that user while the entry is active; otherwise the page shows an
    "away" banner.
    """

    __tablename__ = "out_of_office_entries"

    id: int | None = Field(default=None, primary_key=True)

    uuid: str = Field(
        default_factory=lambda: str(uuid4()),
        unique=True,
    )

    user_id: int = Field(
        foreign_key="users.id",
        index=True,
    )

    start: datetime = Field(index=True)
    end: datetime = Field(index=True)

    to_user_id: int | None = Field(
        default=None,
        foreign_key="users.id",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class TempOrgRedirect(SQLModel, table=True):
    """
    Redirect left behind when a user/team was migrated into an organization.

    from_slug + from_org_id identify the old address (from_org_id = 0 is
    the global, non-organization namespace); to_url is the absolute new
    address inside the organization domain.
    """

    __tablename__ = "temp_org_redirects"

    id: int | None = Field(default=None, primary_key=True)

    from_slug: str = Field(index=True)
    from_org_id: int = Field(default=0, index=True)

    # user | team
    type: str = Field(default="user", index=True)

    to_url: str

    enabled: bool = Field(default=True)
