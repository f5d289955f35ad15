"""
Domain models - Core business entities
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from bson import ObjectId


class CommunityType(str, Enum):
    """Community visibility"""
    PUBLIC = "Public"
    PRIVATE = "Private"


class NotificationType(str, Enum):
    """Notification kinds"""
    FOLLOW = "follow"
    LIKE = "like"
    SHARE = "share"


@dataclass
class ImageRef:
    """Reference to an image held in object storage"""
    public_id: str
    secure_url: str


@dataclass
class ShareRecord:
    """Entry of a post's shared_by list"""
    user: ObjectId
    shared_at: datetime


@dataclass
class User:
    """User domain model"""
    id: ObjectId
    first_name: str
    last_name: str
    username: str
    email: str
    name: str = ""
    bio: str = "My bio"
    image: Optional[ImageRef] = None
    password_hash: Optional[str] = None
    refresh_token: Optional[str] = None
    reset_password_token: Optional[str] = None
    reset_password_expires: Optional[datetime] = None
    followers: List[ObjectId] = field(default_factory=list)
    following: List[ObjectId] = field(default_factory=list)
    posts: List[ObjectId] = field(default_factory=list)
    saved_posts: List[ObjectId] = field(default_factory=list)
    communities: List[ObjectId] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_owner(self, user_id: ObjectId) -> bool:
        """Check if the given user_id is the owner of this profile"""
        return self.id == user_id

    def is_following(self, user_id: ObjectId) -> bool:
        return user_id in self.following

    def has_saved(self, post_id: ObjectId) -> bool:
        return post_id in self.saved_posts

    def reset_token_is_valid(self, now: datetime) -> bool:
        """Check that a pending reset token exists and has not expired"""
        if not self.reset_password_token or not self.reset_password_expires:
            return False
        return self.reset_password_expires > now


@dataclass
class Post:
    """Post domain model

    A post is either an original (caption, location and images set) or a
    share of another post (only author and original_post set).
    """
    id: ObjectId
    author: ObjectId
    caption: Optional[str] = None
    location: Optional[str] = None
    images: List[ImageRef] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    likes: List[ObjectId] = field(default_factory=list)
    shared_by: List[ShareRecord] = field(default_factory=list)
    original_post: Optional[ObjectId] = None
    community: Optional[ObjectId] = None
    comments: List[ObjectId] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_owner(self, user_id: ObjectId) -> bool:
        """Check if the given user_id is the author of this post"""
        return self.author == user_id

    def is_share(self) -> bool:
        return self.original_post is not None

    def is_liked_by(self, user_id: ObjectId) -> bool:
        return user_id in self.likes

    def is_shared_by(self, user_id: ObjectId) -> bool:
        return any(share.user == user_id for share in self.shared_by)

    def image_ids(self) -> List[str]:
        return [image.public_id for image in self.images]


@dataclass
class Comment:
    """Comment domain model, replies form a tree of comment ids"""
    id: ObjectId
    content: str
    author: ObjectId
    replies: List[ObjectId] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_owner(self, user_id: ObjectId) -> bool:
        return self.author == user_id


@dataclass
class Community:
    """Community domain model"""
    id: ObjectId
    name: str
    username: str
    created_by: ObjectId
    community_type: CommunityType
    bio: Optional[str] = None
    image: Optional[ImageRef] = None
    posts: List[ObjectId] = field(default_factory=list)
    members: List[ObjectId] = field(default_factory=list)
    members_requests: List[ObjectId] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_creator(self, user_id: ObjectId) -> bool:
        return self.created_by == user_id

    def is_member(self, user_id: ObjectId) -> bool:
        return user_id in self.members

    def has_requested(self, user_id: ObjectId) -> bool:
        return user_id in self.members_requests

    def is_private(self) -> bool:
        return self.community_type == CommunityType.PRIVATE

    def can_view(self, user_id: ObjectId) -> bool:
        """Private communities only expose their content to members"""
        return not self.is_private() or self.is_member(user_id)


@dataclass
class Notification:
    """Notification domain model"""
    id: ObjectId
    user_id: ObjectId
    sender_id: ObjectId
    type: NotificationType
    content: str
    is_read: bool = False
    post_id: Optional[ObjectId] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_recipient(self, user_id: ObjectId) -> bool:
        return self.user_id == user_id
