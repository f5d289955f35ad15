"""
User service - profiles, follow graph and account management
"""
from typing import Any, Dict, List, Optional
import logging

from bson import ObjectId
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..domain.models import User, NotificationType
from ..domain.repositories import IUserRepository, IPostRepository
from ..infrastructure.auth import hash_password, verify_password, validate_password_strength
from ..infrastructure.database.repositories import image_to_doc
from .errors import ConflictError, InvalidInputError, NotFoundError
from .integrity import ReferentialIntegrity
from .media import ImageService
from .notification_service import NotificationService
from .queries import PageRequest, Page, build_page, search_filter, newest_first

logger = logging.getLogger(__name__)


class UserService:
    """User service - handles user-related business logic"""

    def __init__(
        self,
        user_repository: IUserRepository,
        post_repository: IPostRepository,
        integrity: ReferentialIntegrity,
        notifications: NotificationService,
        images: ImageService,
    ):
        self.user_repo = user_repository
        self.post_repo = post_repository
        self.integrity = integrity
        self.notifications = notifications
        self.images = images

    async def _get(self, user_id: ObjectId) -> User:
        user = await self.user_repo.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found.")
        return user

    async def list_users(
        self,
        requester_id: ObjectId,
        request: PageRequest,
        search_term: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> Page:
        """List other users, optionally filtered by name or username"""
        filters: Dict[str, Any] = {"_id": {"$ne": requester_id}}
        filters.update(search_filter(search_term, ["name", "username"]))

        items, total = await self.user_repo.find_page(
            filters, request.skip, request.limit, newest_first(sort)
        )
        return build_page(items, total, request)

    async def top_creators(self, requester_id: ObjectId) -> List[User]:
        """Users with the most posts, excluding the requester"""
        return await self.user_repo.find_top_creators(requester_id, settings.TOP_CREATORS_LIMIT)

    async def get_user(self, user_id: ObjectId) -> User:
        """Get user by ID"""
        return await self._get(user_id)

    async def saved_posts(self, user_id: ObjectId, request: PageRequest) -> Page:
        """Posts saved by the user, newest first"""
        user = await self._get(user_id)
        items, total = await self.post_repo.find_page(
            {"_id": {"$in": user.saved_posts}}, request.skip, request.limit
        )
        return build_page(items, total, request)

    async def update_profile(
        self,
        user_id: ObjectId,
        first_name: str,
        last_name: str,
        username: str,
        email: str,
        bio: Optional[str] = None,
        image: Optional[UploadFile] = None,
    ) -> User:
        """Update the profile, email and username must stay unique"""
        user = await self._get(user_id)

        email = email.lower()
        if email != user.email:
            other = await self.user_repo.find_by_email(email)
            if other and other.id != user.id:
                raise ConflictError("There is already a registered user with this email address.")

        if username != user.username:
            other = await self.user_repo.find_by_username(username)
            if other and other.id != user.id:
                raise ConflictError("This username is already in use.")

        updates: Dict[str, Any] = {
            "first_name": first_name,
            "last_name": last_name,
            "name": f"{first_name} {last_name}",
            "username": username,
            "email": email,
        }
        if bio is not None:
            updates["bio"] = bio

        if image is not None:
            uploaded = await self.images.upload(image, str(user.id))
            updates["image"] = image_to_doc(uploaded)
            if user.image:
                await self.images.delete(user.image.public_id)

        return await self.user_repo.update(user.id, updates)

    async def change_password(
        self,
        user_id: ObjectId,
        old_password: Optional[str],
        new_password: str,
    ) -> None:
        """Change user password, existing sessions must log in again"""
        user = await self._get(user_id)

        if not await run_in_threadpool(verify_password, old_password or "", user.password_hash):
            raise InvalidInputError("Invalid password.")

        is_valid, error_msg = validate_password_strength(new_password)
        if not is_valid:
            raise InvalidInputError(error_msg)

        await self.user_repo.update(user.id, {
            "password_hash": await run_in_threadpool(hash_password, new_password),
            "refresh_token": None,
        })

    async def delete_account(self, user_id: ObjectId) -> None:
        """Delete the account and everything it owns"""
        user = await self._get(user_id)
        await self.integrity.delete_user_cascade(user)

    async def follow(self, user_id: ObjectId, target_id: ObjectId) -> None:
        """Follow another user and notify them"""
        user = await self._get(user_id)
        target = await self._get(target_id)

        await self.integrity.link_follow(user, target)
        await self.notifications.notify(
            user_id=target.id,
            sender_id=user.id,
            notification_type=NotificationType.FOLLOW,
            content=f"{user.name} followed you",
        )

    async def unfollow(self, user_id: ObjectId, target_id: ObjectId) -> None:
        """Stop following another user"""
        user = await self._get(user_id)
        target = await self._get(target_id)

        await self.integrity.unlink_follow(user, target)
