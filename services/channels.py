"""Read-only channel views computed with MongoDB aggregations.

The pipeline builders are plain functions so they can be checked without a
database; `get_channel_profile` and `get_watch_history` run them against the
`users` collection.
"""
import asyncio

import logfire

from beanie import PydanticObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from typing import List, Optional

from models.users import User
from schema.users import ChannelProfile, UserIdentity, VideoOwnerSummary, WatchHistoryEntry

from .results import ErrorKind, InternalServiceError, ServiceResult


def _object_id(value: Optional[str]) -> Optional[PydanticObjectId]:
    if not value:
        return None
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        return None


def channel_profile_pipeline(username: str, viewer_id: Optional[str] = None) -> List[dict]:
    """Build the aggregation returning one channel with its subscription counts.

    Args:
        username (str): Channel owner's username, matched lower-cased.
        viewer_id (Optional[str]): Id of the user looking at the channel, used for `is_subscribed`.
    """
    return [
        {"$match": {"username": username.strip().lower()}},
        {
            "$lookup": {
                "from": "subscriptions",
                "localField": "_id",
                "foreignField": "channel",
                "as": "subscribers",
            }
        },
        {
            "$lookup": {
                "from": "subscriptions",
                "localField": "_id",
                "foreignField": "subscriber",
                "as": "subscribed_to",
            }
        },
        {
            "$addFields": {
                "subscribers_count": {"$size": "$subscribers"},
                "channels_subscribed_to_count": {"$size": "$subscribed_to"},
                "is_subscribed": {
                    "$cond": {
                        "if": {"$in": [_object_id(viewer_id), "$subscribers.subscriber"]},
                        "then": True,
                        "else": False,
                    }
                },
            }
        },
        {
            "$project": {
                "_id": 0,
                "full_name": 1,
                "username": 1,
                "email": 1,
                "avatar": 1,
                "cover_image": 1,
                "subscribers_count": 1,
                "channels_subscribed_to_count": 1,
                "is_subscribed": 1,
            }
        },
    ]


def watch_history_pipeline(user_id: str) -> List[dict]:
    """Build the aggregation joining a user's watch history with the videos and their owners."""
    return [
        {"$match": {"_id": _object_id(user_id)}},
        {
            "$lookup": {
                "from": "videos",
                "localField": "watch_history",
                "foreignField": "_id",
                "as": "watch_history",
                "pipeline": [
                    {
                        "$lookup": {
                            "from": "users",
                            "localField": "owner",
                            "foreignField": "_id",
                            "as": "owner",
                            "pipeline": [{"$project": {"full_name": 1, "username": 1, "avatar": 1}}],
                        }
                    },
                    {"$addFields": {"owner": {"$first": "$owner"}}},
                ],
            }
        },
        {"$project": {"watch_history": 1}},
    ]


def to_watch_history(videos: List[dict]) -> List[WatchHistoryEntry]:
    """Convert joined video documents into response entries."""
    entries = []
    for video in videos:
        owner = video.get("owner")
        entries.append(
            WatchHistoryEntry(
                id=str(video["_id"]),
                title=video.get("title", ""),
                description=video.get("description", ""),
                thumbnail=video.get("thumbnail", ""),
                video_file=video.get("video_file", ""),
                duration=video.get("duration", 0.0),
                views=video.get("views", 0),
                owner=VideoOwnerSummary(**owner) if owner else None,
            )
        )
    return entries


async def _run_aggregation(pipeline: List[dict], timeout: float, operation: str) -> List[dict]:
    """Run `pipeline` on `users` under the store deadline; faults become `InternalServiceError`."""
    try:
        return await asyncio.wait_for(User.aggregate(pipeline).to_list(), timeout=timeout)
    except asyncio.TimeoutError as e:
        logfire.error(f"Aggregation timed out during {operation}")
        raise InternalServiceError() from e
    except PyMongoError as e:
        logfire.error(f"Aggregation failed during {operation}: {e}")
        raise InternalServiceError() from e


async def get_channel_profile(
    username: Optional[str], viewer: Optional[UserIdentity] = None, timeout: float = 5.0
) -> ServiceResult[ChannelProfile]:
    if not username or not username.strip():
        return ServiceResult.failure(ErrorKind.VALIDATION, "Username is missing")

    pipeline = channel_profile_pipeline(username, viewer.id if viewer else None)
    channels = await _run_aggregation(pipeline, timeout, f"channel profile for {username}")
    if not channels:
        return ServiceResult.failure(ErrorKind.NOT_FOUND, "Channel does not exist")

    return ServiceResult.success(ChannelProfile(**channels[0]))


async def get_watch_history(user: UserIdentity, timeout: float = 5.0) -> ServiceResult[List[WatchHistoryEntry]]:
    results = await _run_aggregation(watch_history_pipeline(user.id), timeout, f"watch history for user {user.id}")
    if not results:
        return ServiceResult.failure(ErrorKind.NOT_FOUND, "User not found")

    return ServiceResult.success(to_watch_history(results[0].get("watch_history", [])))
