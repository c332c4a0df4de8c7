"""Contains all models commonly used across different modules."""
from enum import Enum


class TokenKind(str, Enum):
    """Enumeration of bearer token kinds."""
    ACCESS = "access"
    REFRESH = "refresh"


class TokenError(str, Enum):
    """Reasons a presented token is rejected."""

    EXPIRED = "expired_token"
    INVALID_SIGNATURE = "invalid_signature"
    MALFORMED = "malformed"
