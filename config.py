"""Process-wide configuration loaded once at startup.
"""
import os

from datetime import timedelta

from dotenv import load_dotenv

from pydantic import BaseModel, Field, SecretStr, model_validator

from typing import Annotated, Self


class AuthSettings(BaseModel):
    """Signing secrets, token lifetimes and store deadline used by the session layer."""

    access_token_secret: Annotated[SecretStr, Field(description="HMAC key for access tokens")]
    refresh_token_secret: Annotated[SecretStr, Field(description="HMAC key for refresh tokens")]
    access_token_ttl: Annotated[timedelta, Field(default=timedelta(minutes=15))]
    refresh_token_ttl: Annotated[timedelta, Field(default=timedelta(days=10))]
    algorithm: Annotated[str, Field(default="HS256")]
    store_timeout_seconds: Annotated[float, Field(default=5.0, gt=0)]
    cookie_secure: Annotated[bool, Field(default=True)]

    # * A leaked key of one kind must never be able to sign the other kind
    @model_validator(mode="after")
    def check_secrets(self) -> Self:
        access = self.access_token_secret.get_secret_value()
        refresh = self.refresh_token_secret.get_secret_value()

        if not access or not refresh:
            raise ValueError("Both ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be set")
        if access == refresh:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
        if self.access_token_ttl >= self.refresh_token_ttl:
            raise ValueError("Access tokens must expire before refresh tokens")
        return self


def load_auth_settings() -> AuthSettings:
    """Build `AuthSettings` from the environment (and `.env` when present).

    Returns:
        AuthSettings: The validated settings.
    """
    load_dotenv()

    return AuthSettings(
        access_token_secret=os.getenv("ACCESS_TOKEN_SECRET", ""),
        refresh_token_secret=os.getenv("REFRESH_TOKEN_SECRET", ""),
        access_token_ttl=timedelta(minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))),
        refresh_token_ttl=timedelta(days=int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "10"))),
        algorithm=os.getenv("TOKEN_ALGORITHM", "HS256"),
        store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "5")),
        cookie_secure=os.getenv("COOKIE_SECURE", "true").lower() in ("1", "true", "yes"),
    )
