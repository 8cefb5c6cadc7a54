"""Credential store persistence behaviour."""

from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from core import hash_password
from services import DuplicateUser, InternalError
from services.auth import CredentialStore, normalize_identifier


def build_fields(**overrides) -> dict[str, str]:
    suffix = uuid4().hex[:8]
    fields = {
        "username": f"store_{suffix}",
        "email": f"store_{suffix}@example.com",
        "fullname": "Store Tester",
        "password_hash": hash_password("Sup3rSecret!"),
    }
    fields.update(overrides)
    return fields


def test_normalize_identifier():
    assert normalize_identifier("  Alice@Example.COM ") == "alice@example.com"


@pytest.mark.asyncio
async def test_create_assigns_identity_and_timestamps(store: CredentialStore):
    user = await store.create(**build_fields())

    assert user.id
    assert user.created_at is not None
    assert user.updated_at is not None
    assert user.refresh_token is None


@pytest.mark.asyncio
async def test_find_one_is_case_insensitive(store: CredentialStore):
    fields = build_fields()
    created = await store.create(**fields)

    by_username = await store.find_one(username=fields["username"].upper())
    by_email = await store.find_one(email=f"  {fields['email'].upper()}  ")

    assert by_username is not None and by_username.id == created.id
    assert by_email is not None and by_email.id == created.id


@pytest.mark.asyncio
async def test_find_one_matches_either_identifier(store: CredentialStore):
    fields = build_fields()
    created = await store.create(**fields)

    match = await store.find_one(username="someone-else", email=fields["email"])
    assert match is not None and match.id == created.id

    assert await store.find_one(username="someone-else", email="nobody@example.com") is None
    assert await store.find_one() is None


@pytest.mark.asyncio
async def test_create_duplicate_username_raises(store: CredentialStore):
    fields = build_fields()
    await store.create(**fields)

    with pytest.raises(DuplicateUser):
        await store.create(**build_fields(username=fields["username"]))

    # The session is usable again after the rollback.
    assert await store.find_one(username=fields["username"]) is not None


@pytest.mark.asyncio
async def test_update_fields_returns_fresh_row(store: CredentialStore):
    user = await store.create(**build_fields())

    updated = await store.update_fields(user.id, fullname="Renamed", refresh_token="token-1")

    assert updated is not None
    assert updated.fullname == "Renamed"
    assert updated.refresh_token == "token-1"


@pytest.mark.asyncio
async def test_update_fields_unknown_user_returns_none(store: CredentialStore):
    assert await store.update_fields("missing-user", fullname="Ghost") is None


@pytest.mark.asyncio
async def test_update_fields_rejects_unknown_columns(store: CredentialStore):
    user = await store.create(**build_fields())

    with pytest.raises(ValueError):
        await store.update_fields(user.id, id="other-id")


@pytest.mark.asyncio
async def test_update_fields_to_taken_email_raises(store: CredentialStore):
    first = await store.create(**build_fields())
    second = await store.create(**build_fields())

    with pytest.raises(DuplicateUser) as exc_info:
        await store.update_fields(second.id, email=first.email)
    assert exc_info.value.message == "Email is already in use"


@pytest.mark.asyncio
async def test_profile_omits_secrets(store: CredentialStore):
    user = await store.create(**build_fields())
    await store.update_fields(user.id, refresh_token="secret-refresh")

    profile = await store.get_profile(user.id)

    assert profile is not None
    dumped = profile.model_dump()
    assert "password_hash" not in dumped
    assert "refresh_token" not in dumped
    assert dumped["avatar"] is None
    assert await store.get_profile("missing-user") is None


@pytest.mark.asyncio
async def test_compare_and_set_refresh_token(store: CredentialStore):
    user = await store.create(**build_fields())
    await store.update_fields(user.id, refresh_token="current")

    assert await store.compare_and_set_refresh_token(user.id, expected="stale", new="next") is False
    assert await store.compare_and_set_refresh_token(user.id, expected="current", new="next") is True
    assert await store.compare_and_set_refresh_token(user.id, expected="current", new="again") is False

    refreshed = await store.find_by_id(user.id)
    assert refreshed is not None
    assert refreshed.refresh_token == "next"


async def _failing_execute(*args, **kwargs):
    raise OperationalError("SELECT users", {}, Exception("database is unavailable"))


@pytest.mark.asyncio
async def test_read_failures_are_reported_as_internal_errors(
    store: CredentialStore, monkeypatch
):
    user = await store.create(**build_fields())
    monkeypatch.setattr(store.session, "execute", _failing_execute)

    with pytest.raises(InternalError):
        await store.find_by_id(user.id)
    with pytest.raises(InternalError):
        await store.find_one(username=user.username)
    with pytest.raises(InternalError):
        await store.get_profile(user.id)
