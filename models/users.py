import pytz

from datetime import datetime

from pydantic import Field, field_serializer
from typing import Annotated, List, Optional

from beanie import Document, Indexed, PydanticObjectId


class User(Document):
    """Stored user identity and channel details.

    `password` holds the bcrypt hash, never the plaintext. `refresh_token` is the
    single refresh token currently valid for the user (None once logged out).
    """
    username: Annotated[str, Indexed(unique=True), Field(max_length=50)]
    email: Annotated[str, Indexed(unique=True), Field(max_length=100)]
    full_name: Annotated[str, Field(max_length=100, serialization_alias="fullName")]
    avatar: Annotated[str, Field(description="URL of the avatar on the asset host")]
    cover_image: Annotated[str, Field(default="", serialization_alias="coverImage")]
    watch_history: Annotated[List[PydanticObjectId], Field(default=[], serialization_alias="watchHistory")]
    password: Annotated[str, Field()]
    refresh_token: Annotated[Optional[str], Field(default=None)]
    created_at: Annotated[datetime, Field(default_factory=lambda: datetime.now(pytz.utc))]
    updated_at: Annotated[datetime, Field(default_factory=lambda: datetime.now(pytz.utc))]

    @field_serializer("id")
    def convert_pydantic_object_id_to_string(self, id: PydanticObjectId):
        return str(id)

    class Settings:
        name = "users"
