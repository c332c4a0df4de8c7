"""Defines schema of requests and responses related to security"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from typing import Annotated, Optional

from models.helpers import TokenError

from .users import PublicUser


class TokenPair(BaseModel):
    """Model representing both access and refresh tokens."""

    access_token: Annotated[str, Field(serialization_alias="accessToken")]
    refresh_token: Annotated[str, Field(serialization_alias="refreshToken")]


class LoginResponse(TokenPair):
    """Describes the structure of the login response."""

    user: PublicUser


class RefreshTokenRequest(BaseModel):
    """Model for refresh token request sent by clients that cannot hold cookies."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Annotated[Optional[str], Field(default=None, alias="refreshToken")]


class TokenVerification(BaseModel):
    """Outcome of verifying a presented token.

    Exactly one of `user_id` and `error` is set.
    """

    user_id: Optional[str] = None
    error: Optional[TokenError] = None
    expires_at: Optional[datetime] = None

    @property
    def valid(self) -> bool:
        return self.error is None and self.user_id is not None


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
