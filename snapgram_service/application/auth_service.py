"""
Authentication service - registration, login, token refresh and password reset
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple
import logging
import smtplib

from fastapi import HTTPException, status
from pymongo.errors import DuplicateKeyError
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..domain.models import User
from ..domain.repositories import IUserRepository
from ..infrastructure.auth import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_reset_token,
    validate_password_strength,
)
from ..infrastructure.mailer import EmailSender
from .errors import ConflictError, InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


def token_claims(user: User) -> Dict[str, Any]:
    """Claims carried by both access and refresh tokens"""
    return {
        "sub": str(user.id),
        "name": user.name,
        "email": user.email,
        "bio": user.bio,
    }


class AuthService:
    """Authentication service - handles authentication logic"""

    def __init__(self, user_repository: IUserRepository, email_sender: EmailSender):
        self.user_repo = user_repository
        self.email_sender = email_sender

    async def _issue_tokens(self, user: User) -> Tuple[str, str]:
        """Create an access/refresh pair and store the refresh token on the user"""
        claims = token_claims(user)
        access_token = create_access_token(claims)
        refresh_token = create_refresh_token(claims)
        await self.user_repo.update(user.id, {"refresh_token": refresh_token})
        return access_token, refresh_token

    async def register(
        self,
        first_name: str,
        last_name: str,
        username: str,
        email: str,
        password: str,
        bio: Optional[str] = None,
    ) -> Tuple[User, str, str]:
        """
        Register a new user

        Returns:
            Tuple of (user, access_token, refresh_token)
        """
        is_valid, error_msg = validate_password_strength(password)
        if not is_valid:
            raise InvalidInputError(error_msg)

        email = email.lower()
        if await self.user_repo.find_by_email(email):
            raise ConflictError("There is already a registered user with this email address.")
        if await self.user_repo.find_by_username(username):
            raise ConflictError("This username is already in use.")

        password_hash = await run_in_threadpool(hash_password, password)
        try:
            user = await self.user_repo.create({
                "first_name": first_name,
                "last_name": last_name,
                "name": f"{first_name} {last_name}",
                "username": username,
                "email": email,
                "bio": bio or "My bio",
                "image": None,
                "password_hash": password_hash,
                "refresh_token": None,
                "reset_password_token": None,
                "reset_password_expires": None,
                "followers": [],
                "following": [],
                "posts": [],
                "saved_posts": [],
                "communities": [],
            })
        except DuplicateKeyError:
            # Lost a race with a concurrent registration
            raise ConflictError("There is already a registered user with this email address.")

        access_token, refresh_token = await self._issue_tokens(user)
        logger.info(f"Registered user {user.id} ({user.username})")
        return user, access_token, refresh_token

    async def login(self, email: str, password: str) -> Tuple[User, str, str]:
        """
        Login with email and password

        Returns:
            Tuple of (user, access_token, refresh_token)
        """
        user = await self.user_repo.find_by_email(email)
        if not user:
            raise NotFoundError("There is no user registered with this email.")

        if not await run_in_threadpool(verify_password, password, user.password_hash):
            raise InvalidInputError("Invalid password.")

        access_token, refresh_token = await self._issue_tokens(user)
        return user, access_token, refresh_token

    async def refresh(self, refresh_token: Optional[str]) -> Tuple[str, str]:
        """
        Rotate the refresh token held in the cookie

        Returns:
            Tuple of (access_token, refresh_token)
        """
        if not refresh_token:
            raise NotFoundError("No refresh token.")

        user = await self.user_repo.find_by_refresh_token(refresh_token)
        if not user:
            raise NotFoundError("Token not found.")

        payload = decode_token(refresh_token)
        if not payload or payload.get("type") != "refresh" or payload.get("sub") != str(user.id):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token."
            )

        return await self._issue_tokens(user)

    async def logout(self, refresh_token: Optional[str]) -> None:
        """Forget the stored refresh token, unknown tokens are ignored"""
        if not refresh_token:
            raise NotFoundError("No refresh token.")

        user = await self.user_repo.find_by_refresh_token(refresh_token)
        if user:
            await self.user_repo.update(user.id, {"refresh_token": None})

    async def forgot_password(self, email: str) -> None:
        """
        Create a reset token and email the reset link

        Responds the same whether or not the email is registered.
        """
        user = await self.user_repo.find_by_email(email)
        if not user:
            logger.info("Password reset requested for an unregistered email")
            return

        token = generate_reset_token()
        expires = datetime.utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
        await self.user_repo.update(user.id, {
            "reset_password_token": token,
            "reset_password_expires": expires,
        })

        try:
            await run_in_threadpool(
                self.email_sender.send_password_reset, user.name, user.email, token
            )
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send password reset email to user {user.id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to send email."
            )

    async def reset_password(self, token: str, password: str) -> None:
        """Set a new password with a valid reset token, the token is single use"""
        user = await self.user_repo.find_by_reset_token(token)
        if not user or not user.reset_token_is_valid(datetime.utcnow()):
            raise InvalidInputError("Invalid or expired token.")

        is_valid, error_msg = validate_password_strength(password)
        if not is_valid:
            raise InvalidInputError(error_msg)

        await self.user_repo.update(user.id, {
            "password_hash": await run_in_threadpool(hash_password, password),
            "reset_password_token": None,
            "reset_password_expires": None,
            "refresh_token": None,
        })
        logger.info(f"Password reset for user {user.id}")
