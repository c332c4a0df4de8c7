"""FastAPI dependencies wiring settings, stores and services, and resolving the calling user.
"""
import asyncio

import logfire

from functools import lru_cache

from fastapi import HTTPException, Request, status, Depends
from fastapi.security import OAuth2PasswordBearer

from typing import Annotated, Optional

from config import AuthSettings, load_auth_settings
from controllers.asset_host import AssetHost, CloudinaryAssetHost
from models.helpers import TokenKind
from schema.users import UserIdentity
from services.accounts import AccountService
from services.results import InternalServiceError
from services.sessions import SessionManager

from .credential_store import BeanieCredentialStore, CredentialStore, CredentialStoreError
from .tokens import TokenCodec
from .transport import read_access_token


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/users/login", auto_error=False)


@lru_cache
def get_settings() -> AuthSettings:
    return load_auth_settings()


@lru_cache
def get_credential_store() -> CredentialStore:
    return BeanieCredentialStore()


@lru_cache
def get_asset_host() -> AssetHost:
    return CloudinaryAssetHost.from_env()


def get_token_codec(settings: Annotated[AuthSettings, Depends(get_settings)]) -> TokenCodec:
    return TokenCodec(settings)


def get_session_manager(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    settings: Annotated[AuthSettings, Depends(get_settings)],
    asset_host: Annotated[AssetHost, Depends(get_asset_host)],
) -> SessionManager:
    return SessionManager(store=store, codec=codec, settings=settings, asset_host=asset_host)


def get_account_service(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    asset_host: Annotated[AssetHost, Depends(get_asset_host)],
    settings: Annotated[AuthSettings, Depends(get_settings)],
) -> AccountService:
    return AccountService(store=store, asset_host=asset_host, settings=settings)


async def _resolve_user(
    token: Optional[str], codec: TokenCodec, store: CredentialStore, timeout: float
) -> Optional[UserIdentity]:
    verification = codec.verify(TokenKind.ACCESS, token)
    if not verification.valid:
        return None

    try:
        return await asyncio.wait_for(store.find_by_id(verification.user_id), timeout=timeout)
    except asyncio.TimeoutError as e:
        logfire.error("Credential store timed out while resolving the current user")
        raise InternalServiceError() from e
    except CredentialStoreError as e:
        logfire.error(f"Credential store failed while resolving the current user: {e}")
        raise InternalServiceError() from e


async def get_current_user(
    request: Request,
    bearer_token: Annotated[Optional[str], Depends(oauth2_scheme)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    settings: Annotated[AuthSettings, Depends(get_settings)],
) -> UserIdentity:
    """Get the authenticated caller from the access token.

    Raises:
        HTTPException: 401 when the token is missing, invalid or expired, or the user no longer exists.

    Returns:
        UserIdentity: The authenticated user.
    """
    token = read_access_token(request, bearer_token)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized request",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await _resolve_user(token, codec, store, settings.store_timeout_seconds)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

