# booking_app/routers/profiles.py
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from booking_app.database import get_session
from booking_app.repositories.profile_repo import ProfileRepository
from booking_app.repositories.user_repo import UserRepository
from booking_app.schemas.profile import MemberAdd, UserProfile
from booking_app.services.profile_service import ProfileService

router = APIRouter(tags=["Profiles"])

repo = ProfileRepository()
service = ProfileService(repo, UserRepository(repo))


@router.get("/profiles/{up_id}", response_model=UserProfile)
def get_profile(
    up_id: str,
    session: Session = Depends(get_session),
):
    """
    Get a profile by unified profile id.

    - `usr-<user id>`: the user's personal identity
    - `<profile id>`: an organization profile

    Name, avatar and scheduling defaults always come from the user.
    """
    return service.get_by_up_id(session, up_id)


@router.get("/users/{user_id}/profiles", response_model=list[UserProfile])
def list_user_profiles(
    user_id: int,
    session: Session = Depends(get_session),
):
    """
    List every identity of a user.

    Users outside any organization get a single personal profile.
    """
    return service.list_for_user(session, user_id)


@router.post(
    "/organizations/{organization_id}/members",
    response_model=UserProfile,
    status_code=status.HTTP_201_CREATED,
)
def add_organization_member(
    organization_id: int,
    payload: MemberAdd,
    session: Session = Depends(get_session),
):
    """
    Add a user to an organization.

    Creates the membership if needed and creates or renames the user's
    profile there. Returns the organization profile.
    """
    return service.add_member(session, organization_id, payload)


@router.delete(
    "/organizations/{organization_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def remove_organization_member(
    organization_id: int,
    user_id: int,
    session: Session = Depends(get_session),
):
    """Remove a user and their profile from an organization."""
    service.remove_membership(session, user_id, organization_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
