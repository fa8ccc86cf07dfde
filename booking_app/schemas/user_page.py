# booking_app/schemas/user_page.py
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from booking_app.core.org_domains import OrgDomainContext
from booking_app.schemas.event_type import EventTypePublic
from booking_app.schemas.profile import OrganizationSummary, UserProfile


class UserPageRequest(BaseModel):
    """
    Everything the booking page needs from the incoming request.

    `query` keeps repeated keys and their order so it can be forwarded
    verbatim.
    """

    user: str
    org_domain: OrgDomainContext = Field(default_factory=OrgDomainContext)
    query: list[tuple[str, str]] = []

    def query_value(self, key: str) -> str | None:
        """First value of `key` in the query string, if present."""
        return next((value for k, value in self.query if k == key), None)


# ---------- Page data ----------


class PageProfile(BaseModel):
    """Display profile of the page owner, defaults already applied."""

    name: str
    image: str
    theme: str | None
    brand_color: str
    dark_brand_color: str
    avatar_url: str | None
    allow_seo_indexing: bool
    username: str | None
    organization: OrganizationSummary | None


class PageUser(BaseModel):
    name: str | None
    username: str | None
    bio: str | None
    avatar_url: str | None
    away: bool
    verified: bool
    profile: UserProfile


class PageEntity(BaseModel):
    """Who owns the page, for the "not published yet" placeholder."""

    is_unpublished: bool = False
    org_slug: str | None = None
    name: str | None = None


class UserPageProps(BaseModel):
    users: list[PageUser]
    profile: PageProfile
    event_types: list[EventTypePublic]
    safe_bio: str
    markdown_stripped_bio: str
    # Dynamic groups have no theme preference; single users theme by username
    theme_basis: str | None
    is_redirect: bool = False
    from_username_redirected: str = ""
    entity: PageEntity


# ---------- Outcomes ----------


class RedirectOutcome(BaseModel):
    """
    Send the visitor elsewhere. Never permanent.

    rewrite=True means the destination should be served under the
    current URL (proxy-style) instead of a visible navigation.
    """

    kind: Literal["redirect"] = "redirect"
    destination: str
    permanent: bool = False
    rewrite: bool = False
    headers: dict[str, str] = {}


class NotFoundOutcome(BaseModel):
    kind: Literal["not_found"] = "not_found"
    headers: dict[str, str] = {}


class RenderedOutcome(BaseModel):
    kind: Literal["rendered"] = "rendered"
    props: UserPageProps
    headers: dict[str, str] = {}


PageOutcome = Annotated[
    Union[RedirectOutcome, NotFoundOutcome, RenderedOutcome],
    Field(discriminator="kind"),
]
