"""Profile operations on the authenticated user."""
import asyncio

import logfire

from typing import Optional

from config import AuthSettings
from controllers.asset_host import AssetFile, AssetHost
from schema.users import PublicUser, UpdateAccountRequest, UserIdentity
from security.credential_store import CredentialStore, CredentialStoreError, DuplicateIdentityError

from .results import ErrorKind, InternalServiceError, ServiceResult


class AccountService:
    """Reads and edits the caller's public profile."""

    def __init__(self, store: CredentialStore, asset_host: AssetHost, settings: AuthSettings):
        self.store = store
        self.asset_host = asset_host
        self.settings = settings

    async def _update(self, user_id: str, operation: str, **fields) -> Optional[UserIdentity]:
        try:
            return await asyncio.wait_for(
                self.store.update_profile(user_id, **fields),
                timeout=self.settings.store_timeout_seconds,
            )
        except DuplicateIdentityError:
            raise
        except (asyncio.TimeoutError, CredentialStoreError) as e:
            logfire.error(f"Credential store failed during {operation}: {e!r}")
            raise InternalServiceError() from e

    @staticmethod
    def current_user(user: UserIdentity) -> PublicUser:
        return PublicUser.from_identity(user)

    async def update_account_details(
        self, user: UserIdentity, payload: UpdateAccountRequest
    ) -> ServiceResult[PublicUser]:
        full_name = payload.full_name.strip() if payload.full_name else None
        email = payload.email.lower() if payload.email else None

        if not (full_name or email):
            return ServiceResult.failure(ErrorKind.VALIDATION, "Full name or email is required")

        changes = {}
        if full_name:
            changes["full_name"] = full_name
        if email:
            changes["email"] = email

        try:
            updated = await self._update(user.id, "update_account_details", **changes)
        except DuplicateIdentityError:
            return ServiceResult.failure(ErrorKind.CONFLICT, "Email is already in use")

        if updated is None:
            return ServiceResult.failure(ErrorKind.NOT_FOUND, "User not found")

        logfire.info(f"Account details updated for user {user.id}")
        return ServiceResult.success(PublicUser.from_identity(updated))

    async def update_avatar(self, user: UserIdentity, file: Optional[AssetFile]) -> ServiceResult[PublicUser]:
        return await self._replace_image(user, file, field="avatar", label="Avatar")

    async def update_cover_image(self, user: UserIdentity, file: Optional[AssetFile]) -> ServiceResult[PublicUser]:
        return await self._replace_image(user, file, field="cover_image", label="Cover image")

    async def _replace_image(
        self, user: UserIdentity, file: Optional[AssetFile], field: str, label: str
    ) -> ServiceResult[PublicUser]:
        if file is None or not file.content:
            return ServiceResult.failure(ErrorKind.VALIDATION, f"{label} file is required")

        url = await self.asset_host.upload(file)
        if not url:
            logfire.error(f"{label} upload failed for user {user.id}")
            raise InternalServiceError(f"Error while uploading {label.lower()}")

        updated = await self._update(user.id, f"update_{field}", **{field: url})
        if updated is None:
            return ServiceResult.failure(ErrorKind.NOT_FOUND, "User not found")

        logfire.info(f"{label} updated for user {user.id}")
        return ServiceResult.success(PublicUser.from_identity(updated))
