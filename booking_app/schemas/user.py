# booking_app/schemas/user.py
from pydantic import BaseModel, ConfigDict

from booking_app.models.user import User
from booking_app.schemas.profile import UserProfile


class UserWithProfile(BaseModel):
    """
    A user as resolved from a booking-page address.

    `username` is the one the user was addressed by: the organization
    username for organization lookups, the global one otherwise.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    user: User
    username: str | None
    profile: UserProfile

    @property
    def is_org_member(self) -> bool:
        return self.profile.organization is not None
