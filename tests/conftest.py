"""Shared fixtures: in-memory credential store, fake asset host, fixed clock."""

import logfire
import pytest

from datetime import datetime, timedelta, timezone

from typing import List, Optional

logfire.configure(send_to_logfire=False, console=False)

from config import AuthSettings
from controllers.asset_host import AssetFile, AssetHost
from schema.users import RegisterUserForm
from security.credential_store import InMemoryCredentialStore
from security.tokens import TokenCodec
from services.sessions import SessionManager


class FakeAssetHost(AssetHost):
    """Records uploads and hands back predictable URLs."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads: List[AssetFile] = []

    async def upload(self, file: AssetFile) -> Optional[str]:
        if self.fail:
            return None
        self.uploads.append(file)
        return f"https://assets.test/{file.filename}"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings() -> AuthSettings:
    return AuthSettings(
        access_token_secret="access-secret-for-tests",
        refresh_token_secret="refresh-secret-for-tests",
        access_token_ttl=timedelta(minutes=15),
        refresh_token_ttl=timedelta(days=10),
        store_timeout_seconds=0.5,
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def codec(settings) -> TokenCodec:
    return TokenCodec(settings)


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def asset_host() -> FakeAssetHost:
    return FakeAssetHost()


@pytest.fixture
def session_manager(store, codec, settings, asset_host) -> SessionManager:
    return SessionManager(store=store, codec=codec, settings=settings, asset_host=asset_host)


@pytest.fixture
def avatar() -> AssetFile:
    return AssetFile(filename="avatar.png", content=b"\x89PNG\r\n\x1a\nfake", content_type="image/png")


@pytest.fixture
def registration_form() -> RegisterUserForm:
    return RegisterUserForm(full_name="Abc Def", username="abc", email="a@b.com", password="pw1")


@pytest.fixture
async def registered_user(session_manager, registration_form, avatar):
    result = await session_manager.register(registration_form, avatar=avatar)
    assert result.ok, result.error
    return result.value
