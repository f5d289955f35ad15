"""
FastAPI dependencies
"""
from dataclasses import dataclass
from typing import Optional

from bson import ObjectId
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config import settings
from ..application.auth_service import AuthService
from ..application.comment_service import CommentService
from ..application.community_service import CommunityService
from ..application.integrity import ReferentialIntegrity
from ..application.media import ImageService
from ..application.notification_service import NotificationService
from ..application.post_service import PostService
from ..application.user_service import UserService
from ..infrastructure.auth import decode_token
from ..infrastructure.database.connection import get_db
from ..infrastructure.database.repositories import (
    UserRepository,
    PostRepository,
    CommentRepository,
    CommunityRepository,
    NotificationRepository,
)
from ..infrastructure.events import KafkaProducerManager, get_kafka_producer
from ..infrastructure.mailer import EmailSender, get_email_sender
from ..infrastructure.storage import StorageManager, get_storage


# Security scheme, a missing header falls back to the access token cookie
security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Identity carried by a verified access token"""
    id: ObjectId
    name: str
    email: str
    bio: Optional[str] = None


# Repositories

async def get_user_repository(db: AsyncIOMotorDatabase = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


async def get_post_repository(db: AsyncIOMotorDatabase = Depends(get_db)) -> PostRepository:
    return PostRepository(db)


async def get_comment_repository(db: AsyncIOMotorDatabase = Depends(get_db)) -> CommentRepository:
    return CommentRepository(db)


async def get_community_repository(db: AsyncIOMotorDatabase = Depends(get_db)) -> CommunityRepository:
    return CommunityRepository(db)


async def get_notification_repository(
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> NotificationRepository:
    return NotificationRepository(db)


# Services

async def get_image_service(storage: StorageManager = Depends(get_storage)) -> ImageService:
    return ImageService(storage)


async def get_integrity(
    user_repo: UserRepository = Depends(get_user_repository),
    post_repo: PostRepository = Depends(get_post_repository),
    comment_repo: CommentRepository = Depends(get_comment_repository),
    community_repo: CommunityRepository = Depends(get_community_repository),
    notification_repo: NotificationRepository = Depends(get_notification_repository),
    images: ImageService = Depends(get_image_service),
) -> ReferentialIntegrity:
    """Get the referential integrity maintainer"""
    return ReferentialIntegrity(
        user_repo, post_repo, comment_repo, community_repo, notification_repo, images
    )


async def get_notification_service(
    notification_repo: NotificationRepository = Depends(get_notification_repository),
    producer: KafkaProducerManager = Depends(get_kafka_producer),
) -> NotificationService:
    return NotificationService(notification_repo, producer)


async def get_auth_service(
    user_repo: UserRepository = Depends(get_user_repository),
    email_sender: EmailSender = Depends(get_email_sender),
) -> AuthService:
    """Get auth service dependency"""
    return AuthService(user_repo, email_sender)


async def get_user_service(
    user_repo: UserRepository = Depends(get_user_repository),
    post_repo: PostRepository = Depends(get_post_repository),
    integrity: ReferentialIntegrity = Depends(get_integrity),
    notifications: NotificationService = Depends(get_notification_service),
    images: ImageService = Depends(get_image_service),
) -> UserService:
    """Get user service dependency"""
    return UserService(user_repo, post_repo, integrity, notifications, images)


async def get_post_service(
    post_repo: PostRepository = Depends(get_post_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    community_repo: CommunityRepository = Depends(get_community_repository),
    integrity: ReferentialIntegrity = Depends(get_integrity),
    notifications: NotificationService = Depends(get_notification_service),
    images: ImageService = Depends(get_image_service),
) -> PostService:
    """Get post service dependency"""
    return PostService(post_repo, user_repo, community_repo, integrity, notifications, images)


async def get_comment_service(
    comment_repo: CommentRepository = Depends(get_comment_repository),
    post_repo: PostRepository = Depends(get_post_repository),
    community_repo: CommunityRepository = Depends(get_community_repository),
    integrity: ReferentialIntegrity = Depends(get_integrity),
) -> CommentService:
    """Get comment service dependency"""
    return CommentService(comment_repo, post_repo, community_repo, integrity)


async def get_community_service(
    community_repo: CommunityRepository = Depends(get_community_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    integrity: ReferentialIntegrity = Depends(get_integrity),
    images: ImageService = Depends(get_image_service),
) -> CommunityService:
    """Get community service dependency"""
    return CommunityService(community_repo, user_repo, integrity, images)


# Authentication

def _token_from_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    if credentials:
        return credentials.credentials
    return request.cookies.get(settings.ACCESS_TOKEN_COOKIE_NAME)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Get current authenticated user from the access token

    The token is verified locally, the user record is not loaded.

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    token = _token_from_request(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token on request.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(token)
    if (
        not payload
        or payload.get("type") != "access"
        or not ObjectId.is_valid(payload.get("sub", ""))
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return CurrentUser(
        id=ObjectId(payload["sub"]),
        name=payload.get("name", ""),
        email=payload.get("email", ""),
        bio=payload.get("bio"),
    )


async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CurrentUser]:
    """
    Get current authenticated user (optional)

    Returns None if not authenticated instead of raising exception
    """
    if not _token_from_request(request, credentials):
        return None

    try:
        return await get_current_user(request, credentials)
    except HTTPException:
        return None


async def get_current_user_and_owner(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Require the token subject to be the user named in the path"""
    if str(current_user.id) != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized",
        )
    return current_user
