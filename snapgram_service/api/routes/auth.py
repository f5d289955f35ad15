"""
Authentication routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from pydantic import EmailStr

from ...config import settings
from ...schemas import (
    UserRegister, UserLogin, ChangePassword, PasswordResetRequest, PasswordReset,
    UserOut, DataResponse, TokenResponse, MessageResponse,
)
from ...application.auth_service import AuthService
from ...application.user_service import UserService
from ..dependencies import (
    CurrentUser, get_auth_service, get_user_service, get_current_user_and_owner,
)


router = APIRouter(prefix=f"{settings.BASE_API_URL}/auth", tags=["Authentication"])


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    """Store the refresh token in an httpOnly cookie"""
    response.set_cookie(
        key=settings.REFRESH_TOKEN_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_HOURS * 60 * 60,
    )


def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(
        key=settings.REFRESH_TOKEN_COOKIE_NAME,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    response.delete_cookie(key=settings.ACCESS_TOKEN_COOKIE_NAME)


def token_response(access_token: str) -> TokenResponse:
    return TokenResponse(
        token=access_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/register", response_model=TokenResponse)
async def register(
    user_data: UserRegister,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Register a new user

    Returns an access token; the refresh token is set as an httpOnly cookie.
    """
    _, access_token, refresh_token = await auth_service.register(
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        username=user_data.username,
        email=user_data.email,
        password=user_data.password,
        bio=user_data.bio,
    )
    set_refresh_cookie(response, refresh_token)
    return token_response(access_token)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Login with email and password"""
    _, access_token, refresh_token = await auth_service.login(
        credentials.email,
        credentials.password,
    )
    set_refresh_cookie(response, refresh_token)
    return token_response(access_token)


@router.get("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Rotate the refresh token cookie and issue a new access token"""
    access_token, new_refresh_token = await auth_service.refresh(
        request.cookies.get(settings.REFRESH_TOKEN_COOKIE_NAME)
    )
    set_refresh_cookie(response, new_refresh_token)
    return token_response(access_token)


@router.get("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Forget the refresh token and clear the auth cookies"""
    await auth_service.logout(request.cookies.get(settings.REFRESH_TOKEN_COOKIE_NAME))
    clear_auth_cookies(response)


@router.post("/update/{user_id}", response_model=DataResponse[UserOut])
async def update_profile(
    user_id: str,
    first_name: str = Form(..., min_length=3),
    last_name: str = Form(..., min_length=3),
    username: str = Form(..., min_length=3),
    email: EmailStr = Form(...),
    bio: Optional[str] = Form(None, min_length=3),
    image: Optional[UploadFile] = File(None),
    current_user: CurrentUser = Depends(get_current_user_and_owner),
    user_service: UserService = Depends(get_user_service)
):
    """
    Update own profile

    Multipart form; an uploaded image replaces the current profile image.
    """
    user = await user_service.update_profile(
        current_user.id,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        username=username.strip(),
        email=email,
        bio=bio.strip() if bio else None,
        image=image,
    )
    return DataResponse(data=UserOut.model_validate(user))


@router.post("/update-password/{user_id}", response_model=MessageResponse)
async def update_password(
    user_id: str,
    password_data: ChangePassword,
    current_user: CurrentUser = Depends(get_current_user_and_owner),
    user_service: UserService = Depends(get_user_service)
):
    """Change own password, other sessions must log in again"""
    await user_service.change_password(
        current_user.id,
        old_password=password_data.old_password,
        new_password=password_data.password,
    )
    return MessageResponse(message="Password updated successfully.")


@router.delete("/delete/{user_id}", response_model=MessageResponse)
async def delete_account(
    user_id: str,
    response: Response,
    current_user: CurrentUser = Depends(get_current_user_and_owner),
    user_service: UserService = Depends(get_user_service)
):
    """Delete own account with all its content"""
    await user_service.delete_account(current_user.id)
    clear_auth_cookies(response)
    return MessageResponse(message="User deleted successfully.")


@router.post("/forget-password", response_model=MessageResponse)
async def forget_password(
    request_data: PasswordResetRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Email a password reset link"""
    await auth_service.forgot_password(request_data.email)
    return MessageResponse(
        message="If the email is registered, we have sent the instructions to reset the password."
    )


@router.patch("/forget-password/{token}", response_model=MessageResponse)
async def reset_password(
    token: str,
    password_data: PasswordReset,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Set a new password with the token from the emailed link"""
    await auth_service.reset_password(token, password_data.password)
    return MessageResponse(message="Password changed successfully.")
