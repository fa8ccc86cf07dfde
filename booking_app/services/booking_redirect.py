# booking_app/services/booking_redirect.py
"""
Redirect rules consulted before a booking page is resolved.

  - handle_user_redirection: a single user that is out of office, and
    possibly forwarding visitors to a colleague
  - get_temporary_org_redirect: usernames that moved into an organization
"""

import logging
from datetime import datetime, timezone
from urllib.parse import urlencode, urlsplit

from pydantic import BaseModel
from sqlmodel import Session

from booking_app.repositories.redirect_repo import RedirectRepository
from booking_app.schemas.user_page import RedirectOutcome

logger = logging.getLogger(__name__)

REDIRECT_TYPE_USER = "user"


class UserRedirection(BaseModel):
    """Result of the out-of-office check for one username."""

    out_of_office: bool = False
    redirect: RedirectOutcome | None = None


def handle_user_redirection(
    session: Session,
    username: str,
    repo: RedirectRepository | None = None,
    now: datetime | None = None,
) -> UserRedirection:
    """
    Check whether `username` is currently out of office.

    Forwarding to another user produces a redirect to that user's page,
    tagged so the target page can explain why the visitor landed there.
    """
    repo = repo or RedirectRepository()
    now = now or datetime.now(timezone.utc)
    logger.debug("handle_user_redirection username=%s", username)

    found = repo.get_active_out_of_office(session, username, now)
    if found is None:
        return UserRedirection()

    _entry, forward_to = found
    if forward_to is not None and forward_to.username:
        query = urlencode({"redirected": "true", "username": username})
        return UserRedirection(
            out_of_office=True,
            redirect=RedirectOutcome(destination=f"/{forward_to.username}?{query}"),
        )
    return UserRedirection(out_of_office=True)


def get_temporary_org_redirect(
    session: Session,
    slugs: list[str],
    redirect_type: str,
    event_type_slug: str | None,
    current_query: list[tuple[str, str]],
    repo: RedirectRepository | None = None,
) -> RedirectOutcome | None:
    """
    Redirect for slugs that moved into an organization, or None.

    Redirects are kept in the order of `slugs` (the first user's settings
    drive dynamic group pages), their new slugs joined with "+" under the
    origin of the first redirect's target.
    """
    repo = repo or RedirectRepository()
    logger.debug(
        "get_temporary_org_redirect slugs=%s type=%s event_type_slug=%s",
        slugs,
        redirect_type,
        event_type_slug,
    )
    redirects = repo.list_temp_org_redirects(session, slugs, redirect_type)
    if not redirects:
        return None

    redirects.sort(key=lambda r: slugs.index(r.from_slug))

    query_string = urlencode(current_query)
    query = f"?{query_string}&orgRedirection=true" if query_string else "?orgRedirection=true"

    new_slug = "+".join(r.to_url.rstrip("/").split("/")[-1] for r in redirects)
    event_type_part = f"/{event_type_slug}" if event_type_slug else ""
    target = urlsplit(redirects[0].to_url)
    org_origin = f"{target.scheme}://{target.netloc}"

    return RedirectOutcome(destination=f"{org_origin}/{new_slug}{event_type_part}{query}")
