"""Session lifecycle: registration, login, refresh-token rotation, logout and password change.

A user holds at most one valid refresh token, stored on the user record. A
presented refresh token is accepted only if it still equals that stored value,
and a successful refresh replaces it through a conditional update, so each
refresh token can be used once and two racing refreshes with the same token
cannot both succeed.
"""
import asyncio
import hmac

import logfire

from typing import Awaitable, Optional, TypeVar

from config import AuthSettings
from controllers.asset_host import AssetFile, AssetHost
from models.helpers import TokenKind
from schema.security import LoginResponse, TokenPair
from schema.users import LoginRequest, NewUser, PublicUser, RegisterUserForm, UserIdentity
from security.credential_store import CredentialStore, CredentialStoreError, DuplicateIdentityError
from security.passwords import get_password_hash_async
from security.tokens import TokenCodec, TokenIssueError

from .results import ErrorKind, InternalServiceError, ServiceResult

T = TypeVar("T")

INVALID_REFRESH_TOKEN = "Invalid refresh token"


class SessionManager:
    """Orchestrates the credential store and the token codec."""

    def __init__(
        self,
        store: CredentialStore,
        codec: TokenCodec,
        settings: AuthSettings,
        asset_host: Optional[AssetHost] = None,
    ):
        self.store = store
        self.codec = codec
        self.settings = settings
        self.asset_host = asset_host

    async def _store_call(self, awaitable: Awaitable[T], operation: str) -> T:
        """Run a store call under the configured deadline; faults become `InternalServiceError`."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.settings.store_timeout_seconds)
        except DuplicateIdentityError:
            raise
        except asyncio.TimeoutError as e:
            logfire.error(f"Credential store timed out during {operation}")
            raise InternalServiceError() from e
        except CredentialStoreError as e:
            logfire.error(f"Credential store failed during {operation}: {e}")
            raise InternalServiceError() from e

    def _mint_pair(self, user_id: str) -> TokenPair:
        try:
            return self.codec.issue_pair(user_id)
        except TokenIssueError as e:
            logfire.error(f"Token minting failed for user {user_id}: {e}")
            raise InternalServiceError("Something went wrong while generating tokens") from e

    async def register(
        self,
        form: RegisterUserForm,
        avatar: Optional[AssetFile],
        cover_image: Optional[AssetFile] = None,
    ) -> ServiceResult[PublicUser]:
        """Create a user and return its public projection.

        Fails with `VALIDATION` on blank fields or a missing avatar and with
        `CONFLICT` when the username or email is taken.
        """
        fields = [form.full_name, form.username, form.email, form.password]
        if any(field is None or not field.strip() for field in fields):
            return ServiceResult.failure(ErrorKind.VALIDATION, "All fields are required")

        username = form.username.strip().lower()
        email = form.email.strip().lower()

        with logfire.span(f"Registering user: {username}"):
            existing = await self._store_call(self.store.find_conflict(username, email), "register")
            if existing:
                logfire.warning(f"Attempt to register duplicate user: {username}")
                return ServiceResult.failure(ErrorKind.CONFLICT, "User with email or username already exists")

            if avatar is None or not avatar.content:
                return ServiceResult.failure(ErrorKind.VALIDATION, "Avatar file is required")
            if self.asset_host is None:
                logfire.error("No asset host configured for registration uploads")
                raise InternalServiceError()

            avatar_url = await self.asset_host.upload(avatar)
            if not avatar_url:
                return ServiceResult.failure(ErrorKind.VALIDATION, "Avatar file is required")

            cover_image_url = ""
            if cover_image is not None and cover_image.content:
                cover_image_url = await self.asset_host.upload(cover_image) or ""

            new_user = NewUser(
                username=username,
                email=email,
                full_name=form.full_name.strip(),
                avatar=avatar_url,
                cover_image=cover_image_url,
                password_hash=await get_password_hash_async(form.password),
            )

            try:
                created = await self._store_call(self.store.create(new_user), "register")
            except DuplicateIdentityError:
                logfire.warning(f"Duplicate user detected on insert: {username}")
                return ServiceResult.failure(ErrorKind.CONFLICT, "User with email or username already exists")

            logfire.info(f"Registered new user {created.id}")
            return ServiceResult.success(PublicUser.from_identity(created))

    async def login(self, payload: LoginRequest) -> ServiceResult[LoginResponse]:
        """Verify credentials, mint a token pair and persist its refresh token.

        The refresh token is stored before the pair is returned; if storing
        fails the call raises and the previous refresh token stays in force.
        """
        identifier = (payload.username or payload.email or "").strip().lower()
        if not identifier:
            return ServiceResult.failure(ErrorKind.VALIDATION, "Username or email is required")

        with logfire.span(f"Logging in: {identifier}"):
            user = await self._store_call(self.store.find_by_identifier(identifier), "login")
            if user is None:
                logfire.warning(f"Login attempt for unknown user: {identifier}")
                return ServiceResult.failure(ErrorKind.NOT_FOUND, "User not found")

            if not await self.store.verify_password(user.password_hash, payload.password):
                logfire.warning(f"Incorrect password for user {user.id}")
                return ServiceResult.failure(ErrorKind.UNAUTHORIZED, "Incorrect username or password")

            pair = self._mint_pair(user.id)
            await self._store_call(self.store.persist_refresh_token(user.id, pair.refresh_token), "login")

            logfire.info(f"User {user.id} logged in successfully")
            return ServiceResult.success(
                LoginResponse(
                    user=PublicUser.from_identity(user),
                    access_token=pair.access_token,
                    refresh_token=pair.refresh_token,
                )
            )

    async def refresh(self, incoming_token: Optional[str]) -> ServiceResult[TokenPair]:
        """Rotate a refresh token into a new token pair.

        Every refusal reaches the caller as the same `UNAUTHORIZED` message;
        the specific reason is kept in `ServiceError.reason` and logged.
        """
        if not incoming_token:
            return ServiceResult.failure(ErrorKind.UNAUTHORIZED, "Unauthorized access")

        with logfire.span("Refreshing tokens"):
            verification = self.codec.verify(TokenKind.REFRESH, incoming_token)
            if not verification.valid:
                return self._refuse_refresh(f"token rejected: {verification.error.value}")

            user_id = verification.user_id
            user = await self._store_call(self.store.find_by_id(user_id), "refresh")
            if user is None:
                return self._refuse_refresh(f"user {user_id} not found")

            stored = user.refresh_token or ""
            if not hmac.compare_digest(stored.encode("utf-8"), incoming_token.encode("utf-8")):
                return self._refuse_refresh(f"refresh token for user {user_id} is expired or already used")

            pair = self._mint_pair(user_id)
            swapped = await self._store_call(
                self.store.swap_refresh_token(user_id, incoming_token, pair.refresh_token), "refresh"
            )
            if not swapped:
                return self._refuse_refresh(f"refresh token for user {user_id} was rotated concurrently")

            logfire.info(f"Tokens refreshed for user {user_id}")
            return ServiceResult.success(pair)

    def _refuse_refresh(self, reason: str) -> ServiceResult[TokenPair]:
        logfire.warning(f"Refresh refused: {reason}")
        return ServiceResult.failure(ErrorKind.UNAUTHORIZED, INVALID_REFRESH_TOKEN, reason=reason)

    async def logout(self, user: UserIdentity) -> ServiceResult[None]:
        """Revoke the caller's refresh token. Always succeeds for an authenticated caller."""
        await self._store_call(self.store.persist_refresh_token(user.id, None), "logout")
        logfire.info(f"User {user.id} logged out")
        return ServiceResult.success(None)

    async def change_password(
        self, user: UserIdentity, old_password: str, new_password: str
    ) -> ServiceResult[None]:
        """Replace the caller's password after checking the old one.

        The stored refresh token is left as is, so existing sessions survive.
        """
        if not new_password or not new_password.strip():
            return ServiceResult.failure(ErrorKind.VALIDATION, "New password is required")

        current = await self._store_call(self.store.find_by_id(user.id), "change_password")
        if current is None:
            return ServiceResult.failure(ErrorKind.UNAUTHORIZED, "Invalid password")

        if not await self.store.verify_password(current.password_hash, old_password):
            logfire.warning(f"Incorrect old password on password change for user {user.id}")
            return ServiceResult.failure(ErrorKind.UNAUTHORIZED, "Invalid password")

        new_hash = await get_password_hash_async(new_password)
        await self._store_call(self.store.update_password_hash(user.id, new_hash), "change_password")
        logfire.info(f"Password changed for user {user.id}")
        return ServiceResult.success(None)
