""" User router for profile and channel endpoints.
"""

from fastapi import APIRouter, Depends, File, Path, UploadFile

from typing import Annotated, List, Optional

from config import AuthSettings
from controllers.asset_host import read_upload
from schema.users import ChannelProfile, PublicUser, UpdateAccountRequest, UserIdentity, WatchHistoryEntry
from security.helpers import get_account_service, get_current_user, get_settings
from services import channels
from services.accounts import AccountService

router = APIRouter(
    prefix="/api/v1/users",
    tags=["Users"],
)


@router.get("/current-user", response_model=PublicUser)
async def get_current_user_details(
    current_user: Annotated[UserIdentity, Depends(get_current_user)],
):
    """Get details of the authenticated user."""
    return AccountService.current_user(current_user)


@router.patch("/update-account", response_model=PublicUser)
async def update_account_details(
    payload: UpdateAccountRequest,
    current_user: Annotated[UserIdentity, Depends(get_current_user)],
    account_service: Annotated[AccountService, Depends(get_account_service)],
):
    """Update the caller's full name and/or email.

    ## Possible Errors
    - 400 Bad Request: Neither `fullName` nor `email` was given.
    - 409 Conflict: The email belongs to another user.
    """
    result = await account_service.update_account_details(current_user, payload)
    if not result.ok:
        return result.error.to_response()
    return result.value


@router.patch("/avatar", response_model=PublicUser)
async def update_user_avatar(
    current_user: Annotated[UserIdentity, Depends(get_current_user)],
    account_service: Annotated[AccountService, Depends(get_account_service)],
    avatar: Annotated[Optional[UploadFile], File()] = None,
):
    result = await account_service.update_avatar(current_user, await read_upload(avatar))
    if not result.ok:
        return result.error.to_response()
    return result.value


@router.patch("/cover-image", response_model=PublicUser)
async def update_user_cover_image(
    current_user: Annotated[UserIdentity, Depends(get_current_user)],
    account_service: Annotated[AccountService, Depends(get_account_service)],
    cover_image: Annotated[Optional[UploadFile], File(alias="coverImage")] = None,
):
    result = await account_service.update_cover_image(current_user, await read_upload(cover_image))
    if not result.ok:
        return result.error.to_response()
    return result.value


@router.get("/c/{username}", response_model=ChannelProfile)
async def get_user_channel_profile(
    username: Annotated[str, Path(description="Username of the channel owner")],
    current_user: Annotated[UserIdentity, Depends(get_current_user)],
    settings: Annotated[AuthSettings, Depends(get_settings)],
):
    """Channel page with subscriber counts and whether the caller is subscribed."""
    result = await channels.get_channel_profile(
        username, viewer=current_user, timeout=settings.store_timeout_seconds
    )
    if not result.ok:
        return result.error.to_response()
    return result.value


@router.get("/history", response_model=List[WatchHistoryEntry])
async def get_watch_history(
    current_user: Annotated[UserIdentity, Depends(get_current_user)],
    settings: Annotated[AuthSettings, Depends(get_settings)],
):
    """Videos the caller has watched, each with its owner's name and avatar."""
    result = await channels.get_watch_history(current_user, timeout=settings.store_timeout_seconds)
    if not result.ok:
        return result.error.to_response()
    return result.value
