"""Issues and verifies HMAC-signed access and refresh tokens.
"""
import secrets

from datetime import datetime, timedelta, timezone

from jose import jwt
from jose.exceptions import JOSEError

from typing import Callable

from config import AuthSettings
from models.helpers import TokenKind, TokenError
from schema.security import TokenPair, TokenVerification


class TokenIssueError(Exception):
    """Raised when a token cannot be minted."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Creates and verifies the two token kinds.

    Each kind is signed with its own secret and carries its own lifetime, so a
    refresh token is never accepted as an access token and the other way round.
    A token is expired from the instant `now >= exp`.
    """

    def __init__(self, settings: AuthSettings, clock: Callable[[], datetime] = utc_now):
        self.settings = settings
        self.clock = clock

    def _secret(self, kind: TokenKind) -> str:
        if kind is TokenKind.ACCESS:
            return self.settings.access_token_secret.get_secret_value()
        return self.settings.refresh_token_secret.get_secret_value()

    def ttl(self, kind: TokenKind) -> timedelta:
        if kind is TokenKind.ACCESS:
            return self.settings.access_token_ttl
        return self.settings.refresh_token_ttl

    def issue(self, kind: TokenKind, user_id: str) -> str:
        """Mint a signed token of `kind` for `user_id`.

        Args:
            kind (TokenKind): Which secret and lifetime to use.
            user_id (str): Identifier embedded in the `sub` claim.

        Raises:
            TokenIssueError: Raised when the token cannot be encoded.

        Returns:
            str: The compact JWT.
        """
        issued_at = int(self.clock().timestamp())
        claims = {
            "sub": str(user_id),
            "type": kind.value,
            "jti": secrets.token_urlsafe(16),  # two tokens minted in the same second still differ
            "iat": issued_at,
            "exp": issued_at + int(self.ttl(kind).total_seconds()),
        }

        try:
            return jwt.encode(claims, self._secret(kind), algorithm=self.settings.algorithm)
        except JOSEError as e:
            raise TokenIssueError(f"Could not sign {kind.value} token") from e

    def issue_pair(self, user_id: str) -> TokenPair:
        return TokenPair(
            access_token=self.issue(TokenKind.ACCESS, user_id),
            refresh_token=self.issue(TokenKind.REFRESH, user_id),
        )

    def verify(self, kind: TokenKind, token: str | None) -> TokenVerification:
        """Verify `token` as a token of `kind`.

        Never raises for caller-supplied input; every failure is reported in
        the returned `TokenVerification.error`. The signature is checked before
        the claim shape, so a forged token is never reported as merely malformed.
        """
        if not isinstance(token, str) or not token:
            return TokenVerification(error=TokenError.MALFORMED)

        try:
            jwt.get_unverified_claims(token)
        except JOSEError:
            return TokenVerification(error=TokenError.MALFORMED)

        try:
            claims = jwt.decode(
                token,
                self._secret(kind),
                algorithms=[self.settings.algorithm],
                options={"verify_exp": False, "verify_aud": False, "verify_sub": False},
            )
        except JOSEError:
            return TokenVerification(error=TokenError.INVALID_SIGNATURE)

        if claims.get("type") != kind.value:
            return TokenVerification(error=TokenError.INVALID_SIGNATURE)

        user_id = claims.get("sub")
        exp = claims.get("exp")
        if not isinstance(user_id, str) or not user_id or not isinstance(exp, (int, float)):
            return TokenVerification(error=TokenError.MALFORMED)

        try:
            expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return TokenVerification(error=TokenError.MALFORMED)

        #* Inclusive boundary: a token verified at exactly `exp` is expired
        if self.clock() >= expires_at:
            return TokenVerification(error=TokenError.EXPIRED, expires_at=expires_at)

        return TokenVerification(user_id=user_id, expires_at=expires_at)
