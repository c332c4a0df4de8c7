import pytest

from conftest import FakeAssetHost

from controllers.asset_host import AssetFile
from schema.users import RegisterUserForm, UpdateAccountRequest
from services.accounts import AccountService
from services.results import ErrorKind, InternalServiceError


@pytest.fixture
def account_service(store, asset_host, settings) -> AccountService:
    return AccountService(store=store, asset_host=asset_host, settings=settings)


@pytest.fixture
async def identity(store, registered_user):
    return await store.find_by_id(registered_user.id)


async def test_update_account_details(account_service, identity):
    result = await account_service.update_account_details(
        identity, UpdateAccountRequest(full_name="  New Name ", email="New@Mail.com")
    )

    assert result.ok
    assert result.value.full_name == "New Name"
    assert result.value.email == "new@mail.com"


async def test_update_account_requires_a_field(account_service, identity):
    result = await account_service.update_account_details(identity, UpdateAccountRequest())

    assert result.error.kind is ErrorKind.VALIDATION


async def test_update_account_email_conflict(account_service, session_manager, identity, avatar):
    other = RegisterUserForm(full_name="Other", username="other", email="other@b.com", password="pw")
    assert (await session_manager.register(other, avatar=avatar)).ok

    result = await account_service.update_account_details(identity, UpdateAccountRequest(email="other@b.com"))

    assert result.error.kind is ErrorKind.CONFLICT


async def test_update_avatar_stores_new_url(account_service, identity):
    file = AssetFile(filename="new-avatar.png", content=b"png")

    result = await account_service.update_avatar(identity, file)

    assert result.value.avatar == "https://assets.test/new-avatar.png"


async def test_update_cover_image_requires_file(account_service, identity):
    result = await account_service.update_cover_image(identity, None)

    assert result.error.kind is ErrorKind.VALIDATION
    assert result.error.message == "Cover image file is required"


async def test_failed_upload_is_internal(store, settings, identity):
    service = AccountService(store=store, asset_host=FakeAssetHost(fail=True), settings=settings)

    with pytest.raises(InternalServiceError):
        await service.update_avatar(identity, AssetFile(filename="a.png", content=b"png"))


async def test_current_user_is_public_projection(identity):
    dumped = AccountService.current_user(identity).model_dump()

    assert dumped["id"] == identity.id
    assert "password_hash" not in dumped
    assert "refresh_token" not in dumped
