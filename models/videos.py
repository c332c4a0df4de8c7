"""Defines the video model read by the watch-history view."""
import pytz

from datetime import datetime

from pydantic import Field

from beanie import Document, PydanticObjectId

from typing import Annotated


class Video(Document):
    """Video published on a channel.
    """
    video_file: Annotated[str, Field(serialization_alias="videoFile")]  # asset host URL
    thumbnail: Annotated[str, Field()]
    title: Annotated[str, Field(max_length=200)]
    description: Annotated[str, Field(default="")]
    duration: Annotated[float, Field(default=0.0, ge=0)]
    views: Annotated[int, Field(default=0, ge=0)]
    is_published: Annotated[bool, Field(default=True, serialization_alias="isPublished")]
    owner: Annotated[PydanticObjectId, Field()]
    created_at: Annotated[datetime, Field(default_factory=lambda: datetime.now(pytz.utc))]

    class Settings:
        name = "videos"
