from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from booking_app.models.profile import Profile
from booking_app.repositories.profile_repo import (
    LookupTarget,
    ProfileAlreadyExistsError,
    ProfileRepository,
    ProfileUsernameTakenError,
    _to_iso,
    enrich_profile,
    parse_team,
)
from booking_app.schemas.profile import (
    OrganizationSummary,
    ProfileCreate,
    ProfileKey,
    ProfileUpdate,
    ProfileUserSeed,
)

repo = ProfileRepository()


# ----- Identifiers -----


def test_generated_uids_are_unique():
    assert repo.generate_profile_uid() != repo.generate_profile_uid()


def test_lookup_target_for_user():
    assert repo.get_lookup_target("usr-42") == (LookupTarget.USER, 42)


def test_lookup_target_for_profile():
    assert repo.get_lookup_target("7") == (LookupTarget.PROFILE, 7)


def test_lookup_target_rejects_garbage():
    with pytest.raises(ValueError):
        repo.get_lookup_target("abc")


@pytest.mark.parametrize(
    "up_id",
    ["", "usr-", "1_000", " 7", "7 ", "-7", "usr--7", "usr-1.5", "99999999999999999999999", "usr-2147483648"],
)
def test_lookup_target_is_strict(up_id):
    with pytest.raises(ValueError):
        repo.get_lookup_target(up_id)


def test_lookup_target_upper_bound():
    assert repo.get_lookup_target("2147483647") == (LookupTarget.PROFILE, 2147483647)


# ----- Writes -----


def test_create_derives_username_from_email(session, make_user, make_org):
    user = make_user("jane", email="jane@example.com")
    org = make_org()

    profile = repo.create(
        session,
        ProfileCreate(user_id=user.id, organization_id=org.id, username=None, email=user.email),
    )

    assert profile.username == "jane"
    assert profile.uid
    assert profile.organization_id == org.id


def test_create_keeps_explicit_username(session, make_user, make_org):
    user = make_user("jane", email="jane@example.com")
    org = make_org()

    profile = repo.create(
        session,
        ProfileCreate(user_id=user.id, organization_id=org.id, username="j.doe", email=user.email),
    )

    assert profile.username == "j.doe"


def test_create_twice_for_same_org_fails(session, make_user, make_org):
    user = make_user("jane")
    org = make_org()
    payload = ProfileCreate(user_id=user.id, organization_id=org.id, email="jane@example.com")
    repo.create(session, payload)

    with pytest.raises(ProfileAlreadyExistsError):
        repo.create(session, payload)

    # Session is still usable after the failed insert
    assert len(session.exec(select(Profile)).all()) == 1


def test_create_with_taken_username_names_the_username(session, make_user, make_org):
    alice = make_user("alice")
    bob = make_user("bob")
    org = make_org()
    repo.create(session, ProfileCreate(user_id=alice.id, organization_id=org.id, username="x", email=alice.email))

    with pytest.raises(ProfileUsernameTakenError) as exc:
        repo.create(session, ProfileCreate(user_id=bob.id, organization_id=org.id, username="x", email=bob.email))

    assert exc.value.username == "x"
    assert exc.value.organization_id == org.id
    assert repo.find_by_user_id_and_org_id(session, bob.id, org.id) is None


def test_upsert_rename_to_taken_username_keeps_session_usable(session, make_user, make_org, make_profile):
    org = make_org()
    make_profile(make_user("alice"), org, username="x")
    bob = make_user("bob")
    make_profile(bob, org, username="bob")

    with pytest.raises(ProfileUsernameTakenError):
        repo.upsert(
            session,
            create=ProfileCreate(user_id=bob.id, organization_id=org.id, username="x", email=bob.email),
            update=ProfileUpdate(username="x", email=bob.email),
            update_where=ProfileKey(user_id=bob.id, organization_id=org.id),
        )

    assert sorted(p.username for p in session.exec(select(Profile)).all()) == ["bob", "x"]
    assert repo.find_by_user_id_and_org_id(session, bob.id, org.id).username == "bob"


def test_create_many_conflict_rolls_back_batch(session, make_user, make_org, make_profile):
    org = make_org()
    jane = make_user("jane")
    bob = make_user("bob")
    make_profile(jane, org)

    with pytest.raises(IntegrityError):
        repo.create_many(
            session,
            [
                ProfileUserSeed(id=bob.id, username="bob", email=bob.email),
                ProfileUserSeed(id=jane.id, username="jane2", email=jane.email),
            ],
            organization_id=org.id,
        )

    assert [p.user_id for p in session.exec(select(Profile)).all()] == [jane.id]


def test_uncommitted_write_is_rolled_back_with_caller(session, make_user, make_org):
    user = make_user("jane")
    org = make_org()

    repo.create(
        session,
        ProfileCreate(user_id=user.id, organization_id=org.id, email="jane@example.com"),
        commit=False,
    )
    session.rollback()

    assert session.exec(select(Profile)).all() == []


def test_create_for_existing_user_records_provenance(session, make_user, make_org):
    user = make_user("jane")
    old_account = make_user("jane-old")
    org = make_org()

    profile = repo.create_for_existing_user(
        session,
        ProfileCreate(user_id=user.id, organization_id=org.id, email="jane@example.com"),
        moved_from_user_id=old_account.id,
    )

    assert profile.moved_from_user_id == old_account.id


def test_create_many(session, make_user, make_org):
    jane = make_user("jane")
    bob = make_user(None, email="bob@example.com")
    org = make_org()

    created = repo.create_many(
        session,
        [
            ProfileUserSeed(id=jane.id, username="jane", email=jane.email),
            ProfileUserSeed(id=bob.id, username=None, email=bob.email),
        ],
        organization_id=org.id,
    )

    assert created == 2
    usernames = sorted(p.username for p in repo.find_many_for_org(session, org.id))
    assert usernames == ["bob", "jane"]


def test_upsert_inserts_then_updates_username_only(session, make_user, make_org):
    user = make_user("jane", email="jane@example.com")
    org = make_org()
    key = ProfileKey(user_id=user.id, organization_id=org.id)

    first = repo.upsert(
        session,
        create=ProfileCreate(user_id=user.id, organization_id=org.id, username="j1", email=user.email),
        update=ProfileUpdate(username="j1", email=user.email),
        update_where=key,
    )
    first_id, first_uid = first.id, first.uid
    assert first.username == "j1"

    second = repo.upsert(
        session,
        create=ProfileCreate(user_id=user.id, organization_id=org.id, username=None, email=user.email),
        update=ProfileUpdate(username=None, email=user.email),
        update_where=key,
    )

    assert second.id == first_id
    assert second.uid == first_uid
    assert second.username == "jane"


def test_delete_is_idempotent(session, make_user, make_org, make_profile):
    user = make_user("jane")
    org = make_org()
    make_profile(user, org)

    assert repo.delete(session, user.id, org.id) == 1
    assert repo.delete(session, user.id, org.id) == 0


def test_delete_many(session, make_user, make_org, make_profile):
    jane = make_user("jane")
    bob = make_user("bob")
    org = make_org()
    other = make_org("Other", "other")
    make_profile(jane, org)
    make_profile(jane, other)
    make_profile(bob, org)

    assert repo.delete_many(session, [jane.id, 999]) == 2
    assert repo.delete_many(session, [999]) == 0
    assert [p.user_id for p in session.exec(select(Profile)).all()] == [bob.id]


# ----- Lookups -----


def test_find_returns_none_for_missing_id(session):
    assert repo.find(session, None) is None
    assert repo.find(session, 0) is None
    assert repo.find(session, 999) is None


def test_find_includes_organization_members(session, make_user, make_org, make_profile):
    jane = make_user("jane")
    bob = make_user("bob")
    org = make_org()
    profile = make_profile(jane, org)
    make_profile(bob, org)

    found = repo.find(session, profile.id)

    assert found.up_id == str(profile.id)
    assert found.organization.slug == "acme"
    assert sorted(m.user_id for m in found.organization.members) == [jane.id, bob.id]
    assert found.created_at.endswith("+00:00")
    assert found.updated_at.endswith("+00:00")


def test_find_by_up_id_for_personal_identity(session, make_user):
    user = make_user("jane", name="Jane Doe", avatar_url="https://cdn/jane.png", start_time=540)

    found = repo.find_by_up_id(session, f"usr-{user.id}")

    assert found.id is None
    assert found.up_id == f"usr-{user.id}"
    assert found.organization_id is None
    assert found.organization is None
    assert found.username == "jane"
    assert found.name == "Jane Doe"
    assert found.avatar_url == "https://cdn/jane.png"
    assert found.start_time == 540


def test_find_by_up_id_for_profile_inherits_user_fields(session, make_user, make_org, make_profile):
    user = make_user("jane", name="Jane Doe", buffer_time=15, end_time=1020)
    org = make_org()
    profile = make_profile(user, org, username="jane-acme")

    found = repo.find_by_up_id(session, str(profile.id))

    assert found.id == profile.id
    assert found.organization_id == org.id
    assert found.username == "jane-acme"
    assert found.name == "Jane Doe"
    assert found.buffer_time == 15
    assert found.end_time == 1020


def test_find_by_up_id_missing(session):
    assert repo.find_by_up_id(session, "usr-999") is None
    assert repo.find_by_up_id(session, "999") is None


def test_find_by_user_id_and_org_id(session, make_user, make_org, make_profile):
    user = make_user("jane")
    org = make_org()
    other = make_org("Other", "other")
    make_profile(user, org)

    assert repo.find_by_user_id_and_org_id(session, user.id, None) is None
    assert repo.find_by_user_id_and_org_id(session, user.id, other.id) is None
    assert repo.find_by_user_id_and_org_id(session, user.id, org.id).organization_id == org.id


def test_find_by_org_id_and_username(session, make_user, make_org, make_profile):
    user = make_user("jane")
    org = make_org()
    make_profile(user, org, username="jane-acme")

    found = repo.find_by_org_id_and_username(session, org.id, "jane-acme")

    assert found.user_id == user.id
    assert repo.find_by_org_id_and_username(session, org.id, "jane") is None


def test_find_by_user_id_and_profile_id(session, make_user, make_org, make_profile):
    jane = make_user("jane")
    bob = make_user("bob")
    org = make_org()
    profile = make_profile(jane, org)

    assert repo.find_by_user_id_and_profile_id(session, jane.id, profile.id).id == profile.id
    assert repo.find_by_user_id_and_profile_id(session, bob.id, profile.id) is None


def test_find_many_by_slugs(session, make_user, make_org, make_profile):
    acme = make_org()
    other = make_org("Other", "other")
    jane = make_user("jane")
    bob = make_user("bob")
    carol = make_user("carol")
    make_profile(jane, acme)
    make_profile(bob, acme)
    make_profile(carol, other)

    found = repo.find_many_by_slugs(session, ["jane", "bob", "carol"], "acme")

    assert sorted(p.username for p in found) == ["bob", "jane"]
    assert all(p.organization.slug == "acme" for p in found)
    assert all(p.user is not None for p in found)


def test_find_many_by_slugs_matches_requested_slug(session, make_user, make_org, make_profile):
    pending = make_org("Pending", None, metadata={"requestedSlug": "pending"})
    jane = make_user("jane")
    make_profile(jane, pending)

    found = repo.find_many_by_slugs(session, ["jane"], "pending")

    assert [p.username for p in found] == ["jane"]
    assert found[0].organization.slug is None
    assert found[0].organization.requested_slug == "pending"


def test_find_many_for_user_projects_requested_slug(session, make_user, make_org, make_profile):
    user = make_user("jane")
    org = make_org("Acme", None, metadata={"requestedSlug": "acme", "orgSeats": 5})
    make_profile(user, org)

    (profile,) = repo.find_many_for_user(session, user)

    assert profile.name == "Acme"
    assert profile.organization.requested_slug == "acme"
    assert profile.organization.metadata.org_seats == 5


def test_all_profiles_for_user_without_org_is_personal(session, make_user):
    user = make_user("jane")

    profiles = repo.find_all_profiles_for_user_including_moved_user(session, user)

    assert len(profiles) == 1
    assert profiles[0].id is None
    assert profiles[0].organization_id is None
    assert profiles[0].up_id == f"usr-{user.id}"


def test_all_profiles_for_user_with_orgs(session, make_user, make_org, make_profile):
    user = make_user("jane")
    p1 = make_profile(user, make_org())
    p2 = make_profile(user, make_org("Other", "other"))

    profiles = repo.find_all_profiles_for_user_including_moved_user(session, user)

    assert [p.up_id for p in profiles] == [str(p1.id), str(p2.id)]


# ----- Enrichment -----


def test_enrichment_is_idempotent(session, make_user, make_org, make_profile):
    user = make_user("jane")
    org = make_org("Acme", "acme", metadata={"requestedSlug": "acme"})
    profile = make_profile(user, org)

    once = repo.find(session, profile.id)
    twice = enrich_profile(once)
    thrice = enrich_profile(twice)

    assert twice == once
    assert thrice == once
    assert thrice.up_id == str(profile.id)
    assert thrice.created_at == once.created_at


def test_parse_team_keeps_slug_states_apart():
    assert parse_team(None) is None
    assert "slug" in parse_team({"id": 1, "slug": None}).model_fields_set
    assert "slug" not in parse_team({"id": 1, "name": "Acme"}).model_fields_set


def test_parse_team_projects_requested_slug_from_mapping():
    parsed = parse_team({"id": 1, "slug": None, "metadata": {"requestedSlug": "acme"}})
    assert parsed.requested_slug == "acme"
    assert parse_team(parsed) == parsed
    assert isinstance(parsed, OrganizationSummary)


def test_timestamps_are_utc_iso_strings():
    naive = datetime(2024, 5, 15, 12, 0)
    offset = datetime(2024, 5, 15, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    assert _to_iso(naive) == "2024-05-15T12:00:00+00:00"
    assert _to_iso(offset) == "2024-05-15T12:00:00+00:00"
    assert _to_iso("2024-05-15T12:00:00+00:00") == "2024-05-15T12:00:00+00:00"
    assert _to_iso(None) is None
