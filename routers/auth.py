"""
Auth router for registration, login, token refresh, logout and password change.
"""

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status

from typing import Annotated, Optional

from config import AuthSettings
from controllers.asset_host import read_upload
from schema.security import LoginResponse, MessageResponse, RefreshTokenRequest, TokenPair
from schema.users import ChangePasswordRequest, LoginRequest, PublicUser, RegisterUserForm, UserIdentity
from security.helpers import get_current_user, get_session_manager, get_settings
from security.transport import clear_auth_cookies, read_refresh_token, set_auth_cookies
from services.sessions import SessionManager

router = APIRouter(
    prefix="/api/v1/users",
    tags=["Auth"],
)


@router.post("/register", response_model=PublicUser, status_code=status.HTTP_201_CREATED)
async def register_user(
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
    full_name: Annotated[Optional[str], Form(alias="fullName")] = None,
    username: Annotated[Optional[str], Form()] = None,
    email: Annotated[Optional[str], Form()] = None,
    password: Annotated[Optional[str], Form()] = None,
    avatar: Annotated[Optional[UploadFile], File(description="Avatar image, required")] = None,
    cover_image: Annotated[Optional[UploadFile], File(alias="coverImage", description="Cover image")] = None,
):
    """Register a new user. The avatar is uploaded to the asset host before the user is created.

    ## Possible Errors
    - 400 Bad Request: A required field is blank or the avatar is missing.
    - 409 Conflict: The username or email is already taken.
    - 500 Internal Server Error: The store could not be reached.

    ## Error response structure
    ```json
    {
        "detail": "Sample error message"
    }
    ```
    """
    form = RegisterUserForm(full_name=full_name, username=username, email=email, password=password)

    result = await session_manager.register(
        form,
        avatar=await read_upload(avatar),
        cover_image=await read_upload(cover_image),
    )
    if not result.ok:
        return result.error.to_response()
    return result.value


@router.post("/login", response_model=LoginResponse)
async def login_user(
    payload: LoginRequest,
    response: Response,
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
    settings: Annotated[AuthSettings, Depends(get_settings)],
):
    """Login with username or email. Both tokens are set as secure, http-only cookies and echoed in the body."""
    result = await session_manager.login(payload)
    if not result.ok:
        return result.error.to_response()

    set_auth_cookies(response, result.value, settings)
    return result.value


@router.post("/logout", response_model=MessageResponse)
async def logout_user(
    response: Response,
    current_user: Annotated[UserIdentity, Depends(get_current_user)],
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
    settings: Annotated[AuthSettings, Depends(get_settings)],
):
    """Revoke the caller's refresh token and clear both cookies."""
    await session_manager.logout(current_user)

    clear_auth_cookies(response, settings)
    return MessageResponse(message="User logged out successfully")


@router.post("/refresh-token", response_model=TokenPair)
async def refresh_access_token(
    request: Request,
    response: Response,
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
    settings: Annotated[AuthSettings, Depends(get_settings)],
    payload: Optional[RefreshTokenRequest] = None,
):
    """Exchange a refresh token (cookie, or `refreshToken` in the body) for a new token pair.

    The presented refresh token stops working once this call succeeds.
    """
    result = await session_manager.refresh(read_refresh_token(request, payload))
    if not result.ok:
        return result.error.to_response()

    set_auth_cookies(response, result.value, settings)
    return result.value


@router.post("/change-password", response_model=MessageResponse)
async def change_current_password(
    payload: ChangePasswordRequest,
    current_user: Annotated[UserIdentity, Depends(get_current_user)],
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
):
    """Change the caller's password. Existing sessions stay valid."""
    result = await session_manager.change_password(current_user, payload.old_password, payload.new_password)
    if not result.ok:
        return result.error.to_response()

    return MessageResponse(message="Password changed successfully")
