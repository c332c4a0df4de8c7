import asyncio

import pytest

from schema.users import NewUser
from security.credential_store import DuplicateIdentityError, InMemoryCredentialStore
from security.passwords import get_password_hash


def new_user(username: str = "abc", email: str = "a@b.com") -> NewUser:
    return NewUser(
        username=username,
        email=email,
        full_name="Abc Def",
        avatar="https://assets.test/avatar.png",
        password_hash=get_password_hash("pw1"),
    )


@pytest.fixture
async def user(store):
    return await store.create(new_user())


async def test_find_by_identifier_matches_username_or_email(store, user):
    assert (await store.find_by_identifier("abc")).id == user.id
    assert (await store.find_by_identifier("a@b.com")).id == user.id
    assert await store.find_by_identifier("someone") is None


async def test_create_rejects_taken_username(store, user):
    with pytest.raises(DuplicateIdentityError):
        await store.create(new_user(email="other@b.com"))


async def test_returned_records_are_copies(store, user):
    fetched = await store.find_by_id(user.id)
    fetched.refresh_token = "tampered"

    assert (await store.find_by_id(user.id)).refresh_token is None


async def test_swap_requires_current_value(store, user):
    await store.persist_refresh_token(user.id, "first")

    assert await store.swap_refresh_token(user.id, "stale", "second") is False
    assert await store.swap_refresh_token(user.id, "first", "second") is True
    assert await store.swap_refresh_token(user.id, "first", "third") is False
    assert (await store.find_by_id(user.id)).refresh_token == "second"


async def test_concurrent_swaps_with_same_expected_value(store, user):
    await store.persist_refresh_token(user.id, "first")

    outcomes = await asyncio.gather(
        store.swap_refresh_token(user.id, "first", "from-a"),
        store.swap_refresh_token(user.id, "first", "from-b"),
    )

    assert sorted(outcomes) == [False, True]


async def test_swap_for_unknown_user_fails(store):
    assert await store.swap_refresh_token("64b7f0c2a1b2c3d4e5f60718", "a", "b") is False


async def test_verify_password_uses_hash(store, user):
    stored = await store.find_by_id(user.id)

    assert await store.verify_password(stored.password_hash, "pw1")
    assert not await store.verify_password(stored.password_hash, "pw2")
    assert not await store.verify_password(stored.password_hash, "")


async def test_update_profile_rejects_email_of_another_user(store, user):
    other = await store.create(new_user(username="other", email="other@b.com"))

    with pytest.raises(DuplicateIdentityError):
        await store.update_profile(other.id, email="a@b.com")


async def test_update_profile_ignores_secret_fields(store, user):
    updated = await store.update_profile(user.id, full_name="New Name", refresh_token="forged")

    assert updated.full_name == "New Name"
    assert updated.refresh_token is None


async def test_new_store_is_empty():
    assert await InMemoryCredentialStore().find_by_identifier("abc") is None
