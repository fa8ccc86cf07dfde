# booking_app/services/user_page_service.py
import logging
import re
import time
from urllib.parse import urlencode

from sqlmodel import Session

from booking_app.core.config import Settings, get_settings
from booking_app.core.markdown import markdown_to_safe_html, strip_markdown
from booking_app.models.event_type import EventType
from booking_app.repositories.event_type_repo import EventTypeRepository
from booking_app.repositories.redirect_repo import RedirectRepository
from booking_app.repositories.user_repo import UserRepository
from booking_app.schemas.event_type import (
    EventTypeMetadata,
    EventTypePublic,
    parse_event_type_metadata,
)
from booking_app.schemas.profile import OrganizationSummary
from booking_app.schemas.user import UserWithProfile
from booking_app.schemas.user_page import (
    NotFoundOutcome,
    PageEntity,
    PageOutcome,
    PageProfile,
    PageUser,
    RedirectOutcome,
    RenderedOutcome,
    UserPageProps,
    UserPageRequest,
)
from booking_app.services.booking_redirect import (
    REDIRECT_TYPE_USER,
    get_temporary_org_redirect,
    handle_user_redirection,
)

logger = logging.getLogger(__name__)

# "alice+bob", "alice bob", "alice,bob" and their url-encoded forms
USERNAME_SEPARATOR = re.compile(r"\+| |,|%20|%2b|%2c")


def get_username_list(users: str | list[str] | None) -> list[str]:
    """
    Split a booking-page path segment into usernames.

    Usernames are lowercased and trimmed, empty ones dropped. Order is
    kept: the first username drives dynamic group pages.
    """
    if not users:
        return []
    if isinstance(users, str):
        users = [users]

    usernames: list[str] = []
    for raw in users:
        for part in USERNAME_SEPARATOR.split(raw.lower()):
            part = part.strip()
            if part:
                usernames.append(part)
    return usernames


def is_unpublished(organization: OrganizationSummary | None) -> bool:
    """
    True only for an organization whose slug is known to be None.

    No organization, a set slug, and a slug that was never loaded are
    all "published" as far as the page is concerned.
    """
    if organization is None:
        return False
    return "slug" in organization.model_fields_set and organization.slug is None


class UserPageService:
    """
    Resolves a public booking page address into a page outcome.

    Rules, in order (first terminal one wins):
      1. parse usernames
      2. single user out of office -> forward, or remember "away"
      3. outside an organization domain -> organization migration redirect
      4. bulk user lookup (organization-scoped when on an org domain)
      5. several users -> dynamic group page
      6. nobody, or only organization members outside their domain -> 404
      7. display profile with defaults
      8. visible, valid personal event types
      9. exactly one event type -> straight to it
     10. page data, flagging unpublished organizations
    """

    def __init__(
        self,
        user_repo: UserRepository,
        event_type_repo: EventTypeRepository,
        redirect_repo: RedirectRepository,
        settings: Settings | None = None,
    ):
        self.user_repo = user_repo
        self.event_type_repo = event_type_repo
        self.redirect_repo = redirect_repo
        self.settings = settings or get_settings()

    # ----- Helpers -----

    def _get_event_types_with_hidden(
        self,
        session: Session,
        user_id: int,
    ) -> list[tuple[EventType, EventTypeMetadata | None]]:
        """
        Personal event types paired with their decoded metadata.

        An event type with invalid metadata is logged and left out; the
        rest of the page still renders.
        """
        event_types = []
        for event_type in self.event_type_repo.list_personal_with_hidden(session, user_id):
            result = parse_event_type_metadata(event_type.meta)
            if not result.success:
                logger.error(
                    "Skipping event type %s with invalid metadata: %s",
                    event_type.id,
                    result.error,
                )
                continue
            event_types.append((event_type, result.data))
        return event_types

    def _build_page_profile(self, resolved: UserWithProfile) -> PageProfile:
        user = resolved.user
        return PageProfile(
            name=user.name or resolved.username or "",
            image=f"/{resolved.username}/avatar.png",
            theme=user.theme,
            brand_color=user.brand_color or self.settings.DEFAULT_LIGHT_BRAND_COLOR,
            dark_brand_color=user.dark_brand_color or self.settings.DEFAULT_DARK_BRAND_COLOR,
            avatar_url=user.avatar_url,
            allow_seo_indexing=user.allow_seo_indexing if user.allow_seo_indexing is not None else True,
            username=resolved.username,
            organization=resolved.profile.organization,
        )

    @staticmethod
    def _to_public(event_type: EventType, metadata: EventTypeMetadata | None) -> EventTypePublic:
        return EventTypePublic(
            id=event_type.id,
            title=event_type.title,
            slug=event_type.slug,
            length=event_type.length,
            hidden=event_type.hidden,
            lock_time_zone_toggle_on_booking_page=event_type.lock_time_zone_toggle_on_booking_page,
            requires_confirmation=event_type.requires_confirmation,
            requires_booker_email_verification=event_type.requires_booker_email_verification,
            price=event_type.price,
            currency=event_type.currency,
            recurring_event=event_type.recurring_event,
            metadata=metadata or EventTypeMetadata(),
            description_as_safe_html=markdown_to_safe_html(event_type.description),
        )

    # ----- Resolution -----

    def resolve(self, session: Session, request: UserPageRequest) -> PageOutcome:
        org_domain = request.org_domain
        usernames = get_username_list(request.user)
        is_org_context = org_domain.is_valid_org_domain and bool(org_domain.current_org_domain)
        data_fetch_start = time.perf_counter()
        out_of_office = False

        if len(usernames) == 1:
            redirection = handle_user_redirection(session, usernames[0], repo=self.redirect_repo)
            out_of_office = redirection.out_of_office
            if redirection.redirect is not None:
                return redirection.redirect

        if not is_org_context:
            # Usernames may have moved into an organization
            redirect = get_temporary_org_redirect(
                session,
                slugs=usernames,
                redirect_type=REDIRECT_TYPE_USER,
                event_type_slug=None,
                current_query=request.query,
                repo=self.redirect_repo,
            )
            if redirect is not None:
                return redirect

        users = self.user_repo.find_users_by_username(
            session,
            usernames,
            org_domain.current_org_domain if org_domain.is_valid_org_domain else None,
        )

        is_dynamic_group = len(users) > 1
        logger.debug(
            "Resolved users=%s is_valid_org_domain=%s current_org_domain=%s is_dynamic_group=%s",
            [u.username for u in users],
            org_domain.is_valid_org_domain,
            org_domain.current_org_domain,
            is_dynamic_group,
        )

        if is_dynamic_group:
            return RedirectOutcome(destination=f"/{'+'.join(usernames)}/dynamic")

        is_there_any_non_org_user = any(not u.is_org_member for u in users)
        if not users or (not org_domain.is_valid_org_domain and not is_there_any_non_org_user):
            return NotFoundOutcome()

        resolved = users[0]
        user = resolved.user
        profile = self._build_page_profile(resolved)

        event_types_with_hidden = self._get_event_types_with_hidden(session, user.id)
        data_fetch_ms = int((time.perf_counter() - data_fetch_start) * 1000)
        headers = {}
        if request.query_value("log") == "1":
            headers["X-Data-Fetch-Time"] = f"{data_fetch_ms}ms"

        event_types = [
            self._to_public(event_type, metadata)
            for event_type, metadata in event_types_with_hidden
            if not event_type.hidden
        ]

        # Only one public event type: go straight to it, keeping the URL
        if len(event_types) == 1 and request.query_value("redirect") != "false" and not out_of_office:
            destination = f"/{resolved.profile.username}/{event_types[0].slug}"
            query = urlencode(request.query)
            if query:
                destination = f"{destination}?{query}"
            return RedirectOutcome(destination=destination, rewrite=True, headers=headers)

        organization = resolved.profile.organization
        props = UserPageProps(
            users=[
                PageUser(
                    name=user.name,
                    username=resolved.username,
                    bio=user.bio,
                    avatar_url=user.avatar_url,
                    away=out_of_office if len(usernames) == 1 else user.away,
                    verified=user.verified,
                    profile=resolved.profile,
                )
            ],
            profile=profile,
            event_types=event_types,
            safe_bio=markdown_to_safe_html(user.bio),
            markdown_stripped_bio=strip_markdown(user.bio),
            theme_basis=resolved.username,
            is_redirect=request.query_value("redirected") == "true",
            from_username_redirected=request.query_value("username") or "",
            entity=PageEntity(
                is_unpublished=is_unpublished(organization),
                org_slug=org_domain.current_org_domain,
                name=organization.name if organization else None,
            ),
        )
        return RenderedOutcome(props=props, headers=headers)
