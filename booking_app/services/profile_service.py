# booking_app/services/profile_service.py
from fastapi import HTTPException, status
from sqlmodel import Session, select

from booking_app.models.organization import Membership, Organization
from booking_app.repositories.profile_repo import (
    ProfileAlreadyExistsError,
    ProfileRepository,
    ProfileUsernameTakenError,
)
from booking_app.repositories.user_repo import UserRepository
from booking_app.schemas.profile import MemberAdd, ProfileCreate, ProfileKey, ProfileUpdate, UserProfile


class ProfileService:
    """
    Business logic around profiles.

    Responsibilities:
      - map repository lookups to HTTP errors
      - keep memberships and profiles in step (no implicit cascades)
    """

    def __init__(self, repo: ProfileRepository, user_repo: UserRepository):
        self.repo = repo
        self.user_repo = user_repo

    def get_by_up_id(self, session: Session, up_id: str) -> UserProfile:
        """
        Raises:
            HTTPException(400): malformed up_id.
            HTTPException(404): no such user / profile.
        """
        try:
            profile = self.repo.find_by_up_id(session, up_id)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid profile id",
            )
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Profile not found",
            )
        return profile

    def list_for_user(self, session: Session, user_id: int) -> list[UserProfile]:
        """Every identity of a user; the personal one if no organization."""
        user = self.user_repo.get_by_id(session, user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return self.repo.find_all_profiles_for_user_including_moved_user(session, user)

    def add_member(
        self,
        session: Session,
        organization_id: int,
        payload: MemberAdd,
    ) -> UserProfile:
        """
        Add a user to an organization, creating or renaming their profile.

        Membership and profile are written in one transaction. Without a
        username the email local part is used.

        Raises:
            HTTPException(404): unknown user or organization.
            HTTPException(409): the username is taken in the organization.
        """
        user = self.user_repo.get_by_id(session, payload.user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        if session.get(Organization, organization_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Organization not found",
            )

        if self._get_membership(session, user.id, organization_id) is None:
            session.add(
                Membership(
                    user_id=user.id,
                    team_id=organization_id,
                    role=payload.role,
                    accepted=True,
                )
            )

        try:
            self.repo.upsert(
                session,
                create=ProfileCreate(
                    user_id=user.id,
                    organization_id=organization_id,
                    username=payload.username,
                    email=user.email,
                ),
                update=ProfileUpdate(username=payload.username, email=user.email),
                update_where=ProfileKey(user_id=user.id, organization_id=organization_id),
                commit=False,
            )
        except (ProfileAlreadyExistsError, ProfileUsernameTakenError) as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=str(exc),
            )
        session.commit()

        return self.repo.find_by_user_id_and_org_id(session, user.id, organization_id)

    def remove_membership(self, session: Session, user_id: int, organization_id: int) -> None:
        """
        Remove a user from an organization together with their profile
        there, in one transaction. Missing rows are ignored.
        """
        membership = self._get_membership(session, user_id, organization_id)
        if membership is not None:
            session.delete(membership)

        self.repo.delete(session, user_id, organization_id, commit=False)
        session.commit()

    @staticmethod
    def _get_membership(session: Session, user_id: int, organization_id: int) -> Membership | None:
        stmt = select(Membership).where(
            Membership.user_id == user_id,
            Membership.team_id == organization_id,
        )
        return session.exec(stmt).first()
