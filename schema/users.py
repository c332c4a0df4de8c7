"""Contains the schema definition for requests and responses related to users
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, EmailStr

from typing import Annotated, List, Optional


class NewUser(BaseModel):
    """Fields needed by the credential store to create a user."""

    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str = ""
    password_hash: str


class UserIdentity(BaseModel):
    """A stored user as seen by the session layer.

    Carries the secret fields. Never return this to a caller, use `PublicUser`.
    """

    id: str
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str = ""
    watch_history: List[str] = []
    password_hash: str
    refresh_token: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublicUser(BaseModel):
    """Public projection of a user: no password hash, no refresh token."""

    id: Annotated[str, Field(description="Unique identifier for the user")]
    username: str
    email: str
    full_name: Annotated[str, Field(serialization_alias="fullName")]
    avatar: str
    cover_image: Annotated[str, Field(default="", serialization_alias="coverImage")]
    watch_history: Annotated[List[str], Field(default=[], serialization_alias="watchHistory")]
    created_at: Annotated[Optional[datetime], Field(default=None, serialization_alias="createdAt")]
    updated_at: Annotated[Optional[datetime], Field(default=None, serialization_alias="updatedAt")]

    @classmethod
    def from_identity(cls, identity: UserIdentity) -> "PublicUser":
        return cls(**identity.model_dump(exclude={"password_hash", "refresh_token"}))


class RegisterUserForm(BaseModel):
    """Text fields of the multipart registration request, as submitted."""

    full_name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    """Describes the structure of the login request. Either `username` or `email` identifies the user."""

    username: Annotated[Optional[str], Field(default=None)]
    email: Annotated[Optional[str], Field(default=None)]
    password: Annotated[str, Field(default="")]


class ChangePasswordRequest(BaseModel):
    """Describes the structure of the change password request."""

    model_config = ConfigDict(populate_by_name=True)

    old_password: Annotated[str, Field(alias="oldPassword")]
    new_password: Annotated[str, Field(alias="newPassword")]


class UpdateAccountRequest(BaseModel):
    """Describes the structure of the update account request."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: Annotated[Optional[str], Field(default=None, alias="fullName", max_length=100)]
    email: Annotated[Optional[EmailStr], Field(default=None, max_length=100)]


class ChannelProfile(BaseModel):
    """Channel page of a user together with subscription counts."""

    username: str
    email: str
    full_name: Annotated[str, Field(serialization_alias="fullName")]
    avatar: str
    cover_image: Annotated[str, Field(default="", serialization_alias="coverImage")]
    subscribers_count: Annotated[int, Field(default=0, serialization_alias="subscribersCount")]
    channels_subscribed_to_count: Annotated[int, Field(default=0, serialization_alias="channelsSubscribedToCount")]
    is_subscribed: Annotated[bool, Field(default=False, serialization_alias="isSubscribed")]


class VideoOwnerSummary(BaseModel):
    """Owner details embedded in each watch-history entry."""

    username: str
    full_name: Annotated[str, Field(serialization_alias="fullName")]
    avatar: str


class WatchHistoryEntry(BaseModel):
    """A watched video with its owner summary."""

    id: str
    title: str
    description: str = ""
    thumbnail: str
    video_file: Annotated[str, Field(serialization_alias="videoFile")]
    duration: float = 0.0
    views: int = 0
    owner: Optional[VideoOwnerSummary] = None
