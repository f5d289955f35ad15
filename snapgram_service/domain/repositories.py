"""
Repository interfaces - Define contracts for data access
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from bson import ObjectId

from .models import User, Post, Comment, Community, Notification

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Operations shared by every document collection"""

    @abstractmethod
    async def create(self, data: Dict[str, Any]) -> T:
        """Insert a new document and return it as a domain model"""
        pass

    @abstractmethod
    async def find_by_id(self, entity_id: ObjectId) -> Optional[T]:
        """Find a document by its id"""
        pass

    @abstractmethod
    async def find_page(
        self,
        filters: Dict[str, Any],
        skip: int,
        limit: int,
        newest_first: bool = True,
    ) -> Tuple[List[T], int]:
        """Return one page of matching documents and the total match count"""
        pass

    @abstractmethod
    async def update(self, entity_id: ObjectId, updates: Dict[str, Any]) -> Optional[T]:
        """Set fields on a document and return the updated model"""
        pass

    @abstractmethod
    async def delete(self, entity_id: ObjectId) -> bool:
        """Delete a document, True if it existed"""
        pass

    @abstractmethod
    async def add_to_set(self, entity_id: ObjectId, field: str, value: Any) -> None:
        """Add a value to an array field unless already present"""
        pass

    @abstractmethod
    async def pull(self, entity_id: ObjectId, field: str, value: Any) -> None:
        """Remove a value from an array field"""
        pass

    @abstractmethod
    async def pull_from_all(self, field: str, value: Any) -> int:
        """Remove a value from an array field on every document holding it"""
        pass


class IUserRepository(IRepository[User]):
    """User repository interface"""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        """Find user by email"""
        pass

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[User]:
        """Find user by username"""
        pass

    @abstractmethod
    async def find_by_refresh_token(self, refresh_token: str) -> Optional[User]:
        """Find the user holding a refresh token"""
        pass

    @abstractmethod
    async def find_by_reset_token(self, reset_token: str) -> Optional[User]:
        """Find the user holding a password reset token"""
        pass

    @abstractmethod
    async def find_top_creators(self, exclude_id: ObjectId, limit: int) -> List[User]:
        """Users ranked by number of posts"""
        pass


class IPostRepository(IRepository[Post]):
    """Post repository interface"""

    @abstractmethod
    async def find_shares_of(self, post_id: ObjectId) -> List[Post]:
        """All share posts pointing at an original"""
        pass

    @abstractmethod
    async def find_share(self, original_id: ObjectId, author_id: ObjectId) -> Optional[Post]:
        """The share of an original made by a given user"""
        pass

    @abstractmethod
    async def find_by_author(self, author_id: ObjectId) -> List[Post]:
        """All posts written by a user"""
        pass

    @abstractmethod
    async def find_by_community(self, community_id: ObjectId) -> List[Post]:
        """All posts published inside a community"""
        pass

    @abstractmethod
    async def find_by_comment(self, comment_id: ObjectId) -> Optional[Post]:
        """The post holding a top-level comment"""
        pass

    @abstractmethod
    async def add_share_record(self, post_id: ObjectId, user_id: ObjectId) -> None:
        """Append a {user, shared_at} entry to shared_by"""
        pass

    @abstractmethod
    async def pull_share_record(self, post_id: ObjectId, user_id: ObjectId) -> None:
        """Remove a user's entry from shared_by"""
        pass

    @abstractmethod
    async def pull_share_records_from_all(self, user_id: ObjectId) -> int:
        """Remove a user's entries from every post's shared_by"""
        pass


class ICommentRepository(IRepository[Comment]):
    """Comment repository interface"""

    @abstractmethod
    async def find_all(self) -> List[Comment]:
        """Every comment, newest first"""
        pass

    @abstractmethod
    async def find_by_ids(self, comment_ids: List[ObjectId]) -> List[Comment]:
        """Comments matching the given ids, newest first"""
        pass

    @abstractmethod
    async def find_by_author(self, author_id: ObjectId) -> List[Comment]:
        """All comments written by a user"""
        pass

    @abstractmethod
    async def find_parent(self, comment_id: ObjectId) -> Optional[Comment]:
        """The comment whose replies contain the given id"""
        pass


class ICommunityRepository(IRepository[Community]):
    """Community repository interface"""

    @abstractmethod
    async def find_by_name(self, name: str) -> Optional[Community]:
        """Find community by name"""
        pass

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[Community]:
        """Find community by username"""
        pass

    @abstractmethod
    async def find_created_by(self, user_id: ObjectId) -> List[Community]:
        """Communities owned by a user"""
        pass

    @abstractmethod
    async def find_private_hidden_from(self, user_id: Optional[ObjectId]) -> List[Community]:
        """Private communities the user is not a member of"""
        pass


class INotificationRepository(IRepository[Notification]):
    """Notification repository interface"""

    @abstractmethod
    async def mark_all_read(self, user_id: ObjectId) -> int:
        """Mark every unread notification of a user as read"""
        pass

    @abstractmethod
    async def delete_for_post(self, post_id: ObjectId) -> int:
        """Delete notifications referencing a post"""
        pass

    @abstractmethod
    async def delete_for_user(self, user_id: ObjectId) -> int:
        """Delete notifications sent to or by a user"""
        pass
