"""Moves tokens between HTTP requests/responses and the session layer.
"""
from fastapi import Request, Response

from typing import Optional

from config import AuthSettings
from schema.security import RefreshTokenRequest, TokenPair

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


def set_auth_cookies(response: Response, pair: TokenPair, settings: AuthSettings) -> None:
    """Attach both tokens as http-only cookies, sent over HTTPS only."""
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        pair.access_token,
        max_age=int(settings.access_token_ttl.total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        pair.refresh_token,
        max_age=int(settings.refresh_token_ttl.total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
    )


def clear_auth_cookies(response: Response, settings: AuthSettings) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE, httponly=True, secure=settings.cookie_secure)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, httponly=True, secure=settings.cookie_secure)


def read_refresh_token(request: Request, payload: Optional[RefreshTokenRequest]) -> Optional[str]:
    """Refresh token from the cookie, else from the `refreshToken` body field (non-browser clients)."""
    token = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if token:
        return token
    if payload is not None and payload.refresh_token:
        return payload.refresh_token
    return None


def read_access_token(request: Request, bearer_token: Optional[str]) -> Optional[str]:
    """Access token from the `Authorization: Bearer` header, else from the cookie.

    An explicit header takes precedence over the cookie.
    """
    return bearer_token or request.cookies.get(ACCESS_TOKEN_COOKIE) or None
