"""Defines the channel subscription model."""
import pytz

from datetime import datetime

from pydantic import Field

from beanie import Document, PydanticObjectId

from typing import Annotated


class Subscription(Document):
    """A user (`subscriber`) following another user's channel (`channel`).
    """
    subscriber: Annotated[PydanticObjectId, Field()]  # user who subscribes
    channel: Annotated[PydanticObjectId, Field()]  # user being subscribed to
    created_at: Annotated[datetime, Field(default_factory=lambda: datetime.now(pytz.utc))]

    class Settings:
        name = "subscriptions"
