# booking_app/routers/user_page.py
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlmodel import Session

from booking_app.core.org_domains import org_domain_config
from booking_app.database import get_session
from booking_app.repositories.event_type_repo import EventTypeRepository
from booking_app.repositories.redirect_repo import RedirectRepository
from booking_app.repositories.user_repo import UserRepository
from booking_app.schemas.user_page import (
    NotFoundOutcome,
    RedirectOutcome,
    UserPageProps,
    UserPageRequest,
)
from booking_app.services.user_page_service import UserPageService

router = APIRouter(tags=["Booking pages"])

service = UserPageService(UserRepository(), EventTypeRepository(), RedirectRepository())

FORCED_ORG_SLUG_HEADER = "x-force-org-slug"


def _render(
    session: Session,
    request: Request,
    response: Response,
    user: str,
    org_slug: str | None = None,
):
    """
    Resolve the page and turn the outcome into an HTTP response.

      - redirect  -> 307 (never permanent)
      - not found -> 404
      - rendered  -> page data
    """
    page_request = UserPageRequest(
        user=user,
        org_domain=org_domain_config(
            request.headers.get("host", ""),
            fallback_org_slug=org_slug,
            forced_slug=request.headers.get(FORCED_ORG_SLUG_HEADER),
        ),
        query=request.query_params.multi_items(),
    )
    outcome = service.resolve(session, page_request)

    if isinstance(outcome, NotFoundOutcome):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    if isinstance(outcome, RedirectOutcome):
        redirect = RedirectResponse(
            outcome.destination,
            status_code=(
                status.HTTP_308_PERMANENT_REDIRECT
                if outcome.permanent
                else status.HTTP_307_TEMPORARY_REDIRECT
            ),
        )
        redirect.headers.update(outcome.headers)
        return redirect

    response.headers.update(outcome.headers)
    return outcome.props


@router.get("/org/{org_slug}/{user}", response_model=UserPageProps)
def org_user_page(
    org_slug: str,
    user: str,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
):
    """
    Booking page of an organization member, with the organization named
    in the path instead of the host.
    """
    return _render(session, request, response, user, org_slug=org_slug)


@router.get("/{user}", response_model=UserPageProps)
def user_page(
    user: str,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
):
    """
    Public booking page for one user, or several joined with "+".

    Query params:
      - redirect=false: list the single event type instead of opening it
      - log=1: report fetch time in X-Data-Fetch-Time
      - redirected / username: "you were redirected" banner
      - anything else is forwarded to redirect destinations
    """
    return _render(session, request, response, user)
