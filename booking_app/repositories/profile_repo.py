# booking_app/repositories/profile_repo.py
import enum
import logging
import re
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, NamedTuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from booking_app.models.organization import Membership, Organization
from booking_app.models.profile import Profile
from booking_app.models.user import User
from booking_app.schemas.profile import (
    MemberSummary,
    OrganizationSummary,
    ProfileCreate,
    ProfileKey,
    ProfileUpdate,
    ProfileUserSeed,
    TeamMetadata,
    UserProfile,
)

logger = logging.getLogger(__name__)

PERSONAL_UP_ID_PREFIX = "usr-"
UP_ID_PATTERN = re.compile(r"(usr-)?([0-9]+)")

# Row ids are 32-bit integers in the database
MAX_ROW_ID = 2**31 - 1


class ProfileAlreadyExistsError(Exception):
    """A profile for this (user_id, organization_id) pair already exists."""

    def __init__(self, user_id: int, organization_id: int):
        super().__init__(
            f"Profile conflicts with an existing one (user {user_id}, organization {organization_id})"
        )
        self.user_id = user_id
        self.organization_id = organization_id


class ProfileUsernameTakenError(Exception):
    """Another profile in the organization already uses this username."""

    def __init__(self, organization_id: int, username: str):
        super().__init__(f"Username '{username}' is already taken in organization {organization_id}")
        self.organization_id = organization_id
        self.username = username


class LookupTarget(enum.Enum):
    USER = "user"
    PROFILE = "profile"


class Lookup(NamedTuple):
    type: LookupTarget
    id: int


# ---------- Enrichment ----------


def _to_iso(value: datetime | str | None) -> str | None:
    if isinstance(value, datetime):
        # Stored timestamps are UTC; SQLite hands them back naive
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
    return value


def parse_team(
    organization: Organization | OrganizationSummary | Mapping[str, Any] | None,
    members: list[Membership] | None = None,
) -> OrganizationSummary | None:
    """
    Parse an organization into its structured form.

    Metadata is validated into TeamMetadata and `requested_slug` is
    projected out of it. Parsing an already parsed organization returns
    an equal one.
    """
    if organization is None:
        return None

    if isinstance(organization, OrganizationSummary):
        parsed = organization
    elif isinstance(organization, Organization):
        parsed = OrganizationSummary(
            id=organization.id,
            name=organization.name,
            slug=organization.slug,
            metadata=(
                TeamMetadata.model_validate(organization.org_metadata)
                if organization.org_metadata is not None
                else None
            ),
        )
    else:
        parsed = OrganizationSummary.model_validate(dict(organization))

    update: dict[str, Any] = {
        "requested_slug": parsed.metadata.requested_slug if parsed.metadata else None,
    }
    if members is not None:
        update["members"] = [MemberSummary.model_validate(m) for m in members]
    return parsed.model_copy(update=update)


def enrich_profile(
    profile: Profile | UserProfile,
    *,
    user: User | None = None,
    organization: Organization | OrganizationSummary | None = None,
    members: list[Membership] | None = None,
) -> UserProfile:
    """
    Turn a profile row into the UserProfile handed out to callers.

    This is the only place `up_id` is derived from a profile id. Timestamps
    become ISO-8601 strings and the organization is parsed. Enriching an
    already enriched profile yields the same record.
    """
    if isinstance(profile, UserProfile):
        data = {name: getattr(profile, name) for name in UserProfile.model_fields}
        user = user or profile.user
        organization = organization or profile.organization
    else:
        data = profile.model_dump()

    profile_id = data.get("id")
    data.update(
        up_id=str(profile_id) if profile_id is not None else data.get("up_id"),
        organization=parse_team(organization, members),
        created_at=_to_iso(data.get("created_at")),
        updated_at=_to_iso(data.get("updated_at")),
        user=user,
    )
    return UserProfile.model_validate(data)


# ---------- Repository ----------


class ProfileRepository:
    """
    Data access layer for Profile.

    Responsibilities:
      - CRUD on profiles keyed by (user_id, organization_id)
      - lookups by unified profile id (`usr-<id>` or a profile id)
      - every profile returned goes through enrich_profile()
    """

    # ----- Identifiers -----

    @staticmethod
    def generate_profile_uid() -> str:
        """Opaque, globally unique external identifier for a new profile."""
        return str(uuid.uuid4())

    @staticmethod
    def get_lookup_target(up_id: str) -> Lookup:
        """
        Decode a unified profile id.

        Raises:
            ValueError: if `up_id` is neither `usr-<id>` nor `<id>`, or the
                id is out of range.
        """
        match = UP_ID_PATTERN.fullmatch(up_id)
        if match is None:
            raise ValueError(f"Invalid profile id: {up_id!r}")

        row_id = int(match.group(2))
        if row_id > MAX_ROW_ID:
            raise ValueError(f"Profile id out of range: {up_id!r}")

        if match.group(1):
            return Lookup(LookupTarget.USER, row_id)
        return Lookup(LookupTarget.PROFILE, row_id)

    @staticmethod
    def _get_inherited_data_from_user(user: User) -> dict[str, Any]:
        """Fields a profile always takes from its user, never from its own row."""
        return {
            "name": user.name,
            "avatar": user.avatar,
            "avatar_url": user.avatar_url,
            "start_time": user.start_time,
            "end_time": user.end_time,
            "buffer_time": user.buffer_time,
        }

    @staticmethod
    def build_personal_profile_from_user(user: User) -> UserProfile:
        """The user's identity outside of any organization."""
        return UserProfile(
            id=None,
            up_id=f"{PERSONAL_UP_ID_PREFIX}{user.id}",
            username=user.username,
            organization_id=None,
            organization=None,
            user=user,
        )

    # ----- Writes -----
    #
    # Every write takes `commit`. With commit=False the rows are only
    # flushed and the caller owns the transaction. On IntegrityError the
    # whole transaction is rolled back before the error is re-raised, so
    # the session stays usable either way.

    @staticmethod
    def _finish(session: Session, commit: bool) -> None:
        if commit:
            session.commit()
        else:
            session.flush()

    def _conflict_error(
        self,
        session: Session,
        user_id: int,
        organization_id: int,
        username: str | None,
        check_pair: bool = True,
    ) -> Exception | None:
        """Name the profile unique key a failed write ran into, if any."""
        if check_pair and self._exists(
            session,
            Profile.user_id == user_id,
            Profile.organization_id == organization_id,
        ):
            return ProfileAlreadyExistsError(user_id, organization_id)
        if username is not None and self._exists(
            session,
            Profile.organization_id == organization_id,
            Profile.username == username,
        ):
            return ProfileUsernameTakenError(organization_id, username)
        return None

    @staticmethod
    def _exists(session: Session, *criteria) -> bool:
        return session.exec(select(Profile.id).where(*criteria)).first() is not None

    def _write_profile(
        self,
        session: Session,
        profile: Profile,
        commit: bool,
        check_pair: bool = True,
    ) -> Profile:
        user_id = profile.user_id
        organization_id = profile.organization_id
        username = profile.username
        session.add(profile)
        try:
            self._finish(session, commit)
        except IntegrityError as exc:
            session.rollback()
            error = self._conflict_error(
                session,
                user_id,
                organization_id,
                username,
                check_pair=check_pair,
            )
            if error is None:
                raise
            raise error from exc
        session.refresh(profile)
        return profile

    def create(self, session: Session, payload: ProfileCreate, commit: bool = True) -> Profile:
        """
        Insert a profile. Without a username, the email local part is used.

        Raises:
            ProfileAlreadyExistsError: the user already has a profile in
                this organization.
            ProfileUsernameTakenError: another profile in the organization
                already uses the username.
        """
        logger.debug(
            "Creating profile user_id=%s organization_id=%s username=%s",
            payload.user_id,
            payload.organization_id,
            payload.username,
        )
        profile = Profile(
            uid=self.generate_profile_uid(),
            user_id=payload.user_id,
            organization_id=payload.organization_id,
            username=payload.resolved_username(),
            moved_from_user_id=payload.moved_from_user_id,
        )
        return self._write_profile(session, profile, commit)

    def create_for_existing_user(
        self,
        session: Session,
        payload: ProfileCreate,
        moved_from_user_id: int,
        commit: bool = True,
    ) -> Profile:
        """Create a profile for a user account merged into an organization."""
        return self.create(
            session,
            payload.model_copy(update={"moved_from_user_id": moved_from_user_id}),
            commit=commit,
        )

    def create_many(
        self,
        session: Session,
        users: list[ProfileUserSeed],
        organization_id: int,
        commit: bool = True,
    ) -> int:
        """
        Bulk insert one profile per user; returns the number inserted.

        All or nothing: a conflicting row rolls the whole batch back and
        the IntegrityError is re-raised.
        """
        profiles = [
            Profile(
                uid=self.generate_profile_uid(),
                user_id=seed.id,
                organization_id=organization_id,
                username=seed.username or seed.email.split("@")[0],
            )
            for seed in users
        ]
        session.add_all(profiles)
        try:
            self._finish(session, commit)
        except IntegrityError:
            session.rollback()
            raise
        return len(profiles)

    def upsert(
        self,
        session: Session,
        create: ProfileCreate,
        update: ProfileUpdate,
        update_where: ProfileKey,
        commit: bool = True,
    ) -> Profile:
        """
        Insert a profile, or update the username of the one matching
        `update_where`. Username falls back to the email local part in
        both branches.

        Raises:
            ProfileUsernameTakenError: the username belongs to another
                profile of the organization.
        """
        stmt = select(Profile).where(
            Profile.user_id == update_where.user_id,
            Profile.organization_id == update_where.organization_id,
        )
        existing = session.exec(stmt).first()
        if existing is None:
            return self.create(session, create, commit=commit)

        existing.username = update.resolved_username()
        # The (user, organization) row is the one being updated
        return self._write_profile(session, existing, commit, check_pair=False)

    def delete(
        self,
        session: Session,
        user_id: int,
        organization_id: int,
        commit: bool = True,
    ) -> int:
        """Delete the profile of a user in an organization; no-op if absent."""
        stmt = select(Profile).where(
            Profile.user_id == user_id,
            Profile.organization_id == organization_id,
        )
        return self._delete_all(session, stmt, commit)

    def delete_many(self, session: Session, user_ids: list[int], commit: bool = True) -> int:
        """Delete every profile of the given users; no-op for unknown ids."""
        stmt = select(Profile).where(col(Profile.user_id).in_(user_ids))
        return self._delete_all(session, stmt, commit)

    def _delete_all(self, session: Session, stmt, commit: bool) -> int:
        profiles = session.exec(stmt).all()
        for profile in profiles:
            session.delete(profile)
        try:
            self._finish(session, commit)
        except IntegrityError:
            session.rollback()
            raise
        return len(profiles)

    # ----- Single lookups -----

    def find_by_up_id(self, session: Session, up_id: str) -> UserProfile | None:
        """
        Resolve a unified profile id.

        `usr-<id>` resolves through the user table; anything else is a
        profile id. Either way the inherited fields come from the user.
        """
        lookup = self.get_lookup_target(up_id)
        logger.debug("find_by_up_id up_id=%s lookup=%s", up_id, lookup)

        if lookup.type is LookupTarget.USER:
            user = session.get(User, lookup.id)
            if user is None:
                return None
            personal = self.build_personal_profile_from_user(user)
            return personal.model_copy(update=self._get_inherited_data_from_user(user))

        profile = self.find(session, lookup.id)
        if profile is None:
            return None
        return profile.model_copy(update=self._get_inherited_data_from_user(profile.user))

    def find(self, session: Session, profile_id: int | None) -> UserProfile | None:
        """Profile by id with its user, organization and members."""
        if not profile_id:
            return None

        stmt = (
            select(Profile, User, Organization)
            .join(User, User.id == Profile.user_id)
            .join(Organization, Organization.id == Profile.organization_id)
            .where(Profile.id == profile_id)
        )
        row = session.exec(stmt).first()
        if row is None:
            return None

        profile, user, organization = row
        members = session.exec(
            select(Membership).where(Membership.team_id == organization.id)
        ).all()
        return enrich_profile(profile, user=user, organization=organization, members=list(members))

    def _find_one(self, session: Session, *criteria) -> UserProfile | None:
        stmt = (
            select(Profile, User, Organization)
            .join(User, User.id == Profile.user_id)
            .join(Organization, Organization.id == Profile.organization_id)
            .where(*criteria)
        )
        row = session.exec(stmt).first()
        if row is None:
            return None
        profile, user, organization = row
        return enrich_profile(profile, user=user, organization=organization)

    def find_by_user_id_and_org_id(
        self,
        session: Session,
        user_id: int,
        organization_id: int | None,
    ) -> UserProfile | None:
        if not organization_id:
            return None
        return self._find_one(
            session,
            Profile.user_id == user_id,
            Profile.organization_id == organization_id,
        )

    def find_by_org_id_and_username(
        self,
        session: Session,
        organization_id: int,
        username: str,
    ) -> UserProfile | None:
        return self._find_one(
            session,
            Profile.organization_id == organization_id,
            Profile.username == username,
        )

    def find_by_user_id_and_profile_id(
        self,
        session: Session,
        user_id: int,
        profile_id: int,
    ) -> UserProfile | None:
        return self._find_one(
            session,
            Profile.user_id == user_id,
            Profile.id == profile_id,
        )

    # ----- Bulk lookups -----

    def find_many_by_slugs(
        self,
        session: Session,
        usernames: list[str],
        org_slug: str,
    ) -> list[UserProfile]:
        """
        Profiles with one of `usernames` inside the organization addressed
        by `org_slug`, in a single query.

        An organization matches on its slug, or on the slug it requested
        while still unpublished.
        """
        logger.debug("find_many_by_slugs usernames=%s org_slug=%s", usernames, org_slug)
        requested_slug = Organization.org_metadata["requestedSlug"].as_string()
        stmt = (
            select(Profile, User, Organization)
            .join(User, User.id == Profile.user_id)
            .join(Organization, Organization.id == Profile.organization_id)
            .where(
                col(Profile.username).in_(usernames),
                or_(Organization.slug == org_slug, requested_slug == org_slug),
            )
            .order_by(Profile.id)
        )
        return [
            enrich_profile(profile, user=user, organization=organization)
            for profile, user, organization in session.exec(stmt).all()
        ]

    def find_many_for_user(self, session: Session, user: User) -> list[UserProfile]:
        """All organization profiles of a user; `name` is the organization's."""
        stmt = (
            select(Profile, Organization)
            .join(Organization, Organization.id == Profile.organization_id)
            .where(Profile.user_id == user.id)
            .order_by(Profile.id)
        )
        profiles = []
        for profile, organization in session.exec(stmt).all():
            enriched = enrich_profile(profile, user=user, organization=organization)
            profiles.append(enriched.model_copy(update={"name": organization.name}))
        return profiles

    def find_many_for_org(self, session: Session, organization_id: int) -> list[UserProfile]:
        stmt = (
            select(Profile, User, Organization)
            .join(User, User.id == Profile.user_id)
            .join(Organization, Organization.id == Profile.organization_id)
            .where(Profile.organization_id == organization_id)
            .order_by(Profile.id)
        )
        return [
            enrich_profile(profile, user=user, organization=organization)
            for profile, user, organization in session.exec(stmt).all()
        ]

    def find_all_profiles_for_user_including_moved_user(
        self,
        session: Session,
        user: User,
    ) -> list[UserProfile]:
        """
        Organization profiles of a user, or just the personal profile when
        the user belongs to no organization. Never empty.
        """
        profiles = self.find_many_for_user(session, user)
        if not profiles:
            return [self.build_personal_profile_from_user(user)]
        return profiles
