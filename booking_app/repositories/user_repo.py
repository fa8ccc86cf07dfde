# booking_app/repositories/user_repo.py
from sqlmodel import Session, col, select

from booking_app.models.organization import Organization
from booking_app.models.profile import Profile
from booking_app.models.user import User
from booking_app.repositories.profile_repo import ProfileRepository, enrich_profile
from booking_app.schemas.user import UserWithProfile


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (queries)
      - No FastAPI, no HTTP, no business logic
    """

    def __init__(self, profile_repo: ProfileRepository | None = None):
        self.profile_repo = profile_repo or ProfileRepository()

    def get_by_id(self, session: Session, user_id: int) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_by_username(self, session: Session, username: str) -> User | None:
        """Return a User by global username, or None if not found."""
        stmt = select(User).where(User.username == username)
        return session.exec(stmt).first()

    def find_users_by_username(
        self,
        session: Session,
        username_list: list[str],
        org_slug: str | None,
    ) -> list[UserWithProfile]:
        """
        Resolve booking-page usernames to users, each paired with the
        profile they were found through. One query for the whole list.

        With `org_slug`, usernames are organization-scoped: the match is on
        Profile.username and the returned username is the profile's.

        Without it, usernames are global. A user with organization profiles
        is paired with the first of them; a user with none gets the
        personal profile.
        """
        if org_slug:
            return [
                UserWithProfile(user=profile.user, username=profile.username, profile=profile)
                for profile in self.profile_repo.find_many_by_slugs(session, username_list, org_slug)
            ]

        stmt = (
            select(User, Profile, Organization)
            .outerjoin(Profile, Profile.user_id == User.id)
            .outerjoin(Organization, Organization.id == Profile.organization_id)
            .where(col(User.username).in_(username_list))
            .order_by(User.id, Profile.id)
        )

        resolved: dict[int, UserWithProfile] = {}
        for user, profile, organization in session.exec(stmt).all():
            if user.id in resolved:
                continue
            if profile is None:
                user_profile = self.profile_repo.build_personal_profile_from_user(user)
            else:
                user_profile = enrich_profile(profile, user=user, organization=organization)
            resolved[user.id] = UserWithProfile(
                user=user,
                username=user.username,
                profile=user_profile,
            )
        return list(resolved.values())
