"""
Repository implementations - Data access layer
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from ...domain.models import (
    User, Post, Comment, Community, Notification,
    ImageRef, ShareRecord, CommunityType, NotificationType,
)
from ...domain.repositories import (
    IUserRepository, IPostRepository, ICommentRepository,
    ICommunityRepository, INotificationRepository,
)


def _image_from_doc(doc: Optional[dict]) -> Optional[ImageRef]:
    if not doc or not doc.get("public_id"):
        return None
    return ImageRef(public_id=doc["public_id"], secure_url=doc.get("secure_url", ""))


def image_to_doc(image: Optional[ImageRef]) -> Optional[dict]:
    """Convert an ImageRef to its stored sub-document"""
    if image is None:
        return None
    return {"public_id": image.public_id, "secure_url": image.secure_url}


class MongoRepository:
    """Shared CRUD and array operations over one collection"""

    collection_name: str = ""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection: AsyncIOMotorCollection = db[self.collection_name]

    def _to_model(self, doc: dict):
        raise NotImplementedError

    def _doc_to_model(self, doc: Optional[dict]):
        """Convert a stored document to a domain model"""
        if not doc:
            return None
        return self._to_model(doc)

    async def create(self, data: Dict[str, Any]):
        """Insert a new document"""
        now = datetime.utcnow()
        doc = {**data, "created_at": now, "updated_at": now}
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return self._doc_to_model(doc)

    async def find_by_id(self, entity_id: ObjectId):
        """Find document by ID"""
        doc = await self.collection.find_one({"_id": entity_id})
        return self._doc_to_model(doc)

    async def find_page(
        self,
        filters: Dict[str, Any],
        skip: int,
        limit: int,
        newest_first: bool = True,
    ) -> Tuple[list, int]:
        """Return one page of matching documents and the total count"""
        direction = DESCENDING if newest_first else ASCENDING
        total = await self.collection.count_documents(filters)
        cursor = (
            self.collection.find(filters)
            .sort("created_at", direction)
            .skip(skip)
            .limit(limit)
        )
        docs = await cursor.to_list(length=limit)
        return [self._to_model(doc) for doc in docs], total

    async def _find_many(self, filters: Dict[str, Any]) -> list:
        cursor = self.collection.find(filters).sort("created_at", DESCENDING)
        docs = await cursor.to_list(length=None)
        return [self._to_model(doc) for doc in docs]

    async def update(self, entity_id: ObjectId, updates: Dict[str, Any]):
        """Set fields and return the updated document"""
        doc = await self.collection.find_one_and_update(
            {"_id": entity_id},
            {"$set": {**updates, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return self._doc_to_model(doc)

    async def delete(self, entity_id: ObjectId) -> bool:
        """Delete document"""
        result = await self.collection.delete_one({"_id": entity_id})
        return result.deleted_count > 0

    async def add_to_set(self, entity_id: ObjectId, field: str, value: Any) -> None:
        """Add a value to an array field"""
        await self.collection.update_one(
            {"_id": entity_id},
            {"$addToSet": {field: value}},
        )

    async def pull(self, entity_id: ObjectId, field: str, value: Any) -> None:
        """Remove a value from an array field"""
        await self.collection.update_one(
            {"_id": entity_id},
            {"$pull": {field: value}},
        )

    async def pull_from_all(self, field: str, value: Any) -> int:
        """Remove a value from an array field on every document"""
        result = await self.collection.update_many(
            {field: value},
            {"$pull": {field: value}},
        )
        return result.modified_count


class UserRepository(MongoRepository, IUserRepository):
    """User repository implementation using MongoDB"""

    collection_name = "users"

    def _to_model(self, doc: dict) -> User:
        return User(
            id=doc["_id"],
            first_name=doc.get("first_name", ""),
            last_name=doc.get("last_name", ""),
            username=doc["username"],
            email=doc["email"],
            name=doc.get("name", ""),
            bio=doc.get("bio", "My bio"),
            image=_image_from_doc(doc.get("image")),
            password_hash=doc.get("password_hash"),
            refresh_token=doc.get("refresh_token"),
            reset_password_token=doc.get("reset_password_token"),
            reset_password_expires=doc.get("reset_password_expires"),
            followers=list(doc.get("followers", [])),
            following=list(doc.get("following", [])),
            posts=list(doc.get("posts", [])),
            saved_posts=list(doc.get("saved_posts", [])),
            communities=list(doc.get("communities", [])),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    async def find_by_email(self, email: str) -> Optional[User]:
        """Find user by email"""
        doc = await self.collection.find_one({"email": email.lower()})
        return self._doc_to_model(doc)

    async def find_by_username(self, username: str) -> Optional[User]:
        """Find user by username"""
        doc = await self.collection.find_one({"username": username})
        return self._doc_to_model(doc)

    async def find_by_refresh_token(self, refresh_token: str) -> Optional[User]:
        """Find user by stored refresh token"""
        doc = await self.collection.find_one({"refresh_token": refresh_token})
        return self._doc_to_model(doc)

    async def find_by_reset_token(self, reset_token: str) -> Optional[User]:
        """Find user by password reset token"""
        doc = await self.collection.find_one({"reset_password_token": reset_token})
        return self._doc_to_model(doc)

    async def find_top_creators(self, exclude_id: ObjectId, limit: int) -> List[User]:
        """Users ranked by how many posts they have"""
        pipeline = [
            {"$match": {"_id": {"$ne": exclude_id}}},
            {"$addFields": {"post_count": {"$size": {"$ifNull": ["$posts", []]}}}},
            {"$sort": {"post_count": -1}},
            {"$limit": limit},
        ]
        docs = await self.collection.aggregate(pipeline).to_list(length=limit)
        return [self._to_model(doc) for doc in docs]


class PostRepository(MongoRepository, IPostRepository):
    """Post repository implementation using MongoDB"""

    collection_name = "posts"

    def _to_model(self, doc: dict) -> Post:
        return Post(
            id=doc["_id"],
            author=doc["author"],
            caption=doc.get("caption"),
            location=doc.get("location"),
            images=[
                image for image in (_image_from_doc(d) for d in doc.get("images", []))
                if image is not None
            ],
            tags=list(doc.get("tags", [])),
            likes=list(doc.get("likes", [])),
            shared_by=[
                ShareRecord(user=share["user"], shared_at=share.get("shared_at"))
                for share in doc.get("shared_by", [])
            ],
            original_post=doc.get("original_post"),
            community=doc.get("community"),
            comments=list(doc.get("comments", [])),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    async def find_shares_of(self, post_id: ObjectId) -> List[Post]:
        """Find every share of an original post"""
        return await self._find_many({"original_post": post_id})

    async def find_share(self, original_id: ObjectId, author_id: ObjectId) -> Optional[Post]:
        """Find a user's share of an original post"""
        doc = await self.collection.find_one(
            {"original_post": original_id, "author": author_id}
        )
        return self._doc_to_model(doc)

    async def find_by_author(self, author_id: ObjectId) -> List[Post]:
        """Find posts by author"""
        return await self._find_many({"author": author_id})

    async def find_by_community(self, community_id: ObjectId) -> List[Post]:
        """Find posts published in a community"""
        return await self._find_many({"community": community_id})

    async def find_by_comment(self, comment_id: ObjectId) -> Optional[Post]:
        """Find the post a top-level comment belongs to"""
        doc = await self.collection.find_one({"comments": comment_id})
        return self._doc_to_model(doc)

    async def add_share_record(self, post_id: ObjectId, user_id: ObjectId) -> None:
        """Record that a user shared the post"""
        await self.collection.update_one(
            {"_id": post_id},
            {"$push": {"shared_by": {"user": user_id, "shared_at": datetime.utcnow()}}},
        )

    async def pull_share_record(self, post_id: ObjectId, user_id: ObjectId) -> None:
        """Remove the user's shared_by entry"""
        await self.collection.update_one(
            {"_id": post_id},
            {"$pull": {"shared_by": {"user": user_id}}},
        )

    async def pull_share_records_from_all(self, user_id: ObjectId) -> int:
        """Remove the user's shared_by entries from every post"""
        result = await self.collection.update_many(
            {"shared_by.user": user_id},
            {"$pull": {"shared_by": {"user": user_id}}},
        )
        return result.modified_count


class CommentRepository(MongoRepository, ICommentRepository):
    """Comment repository implementation using MongoDB"""

    collection_name = "comments"

    def _to_model(self, doc: dict) -> Comment:
        return Comment(
            id=doc["_id"],
            content=doc["content"],
            author=doc["author"],
            replies=list(doc.get("replies", [])),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    async def find_all(self) -> List[Comment]:
        """Find every comment"""
        return await self._find_many({})

    async def find_by_ids(self, comment_ids: List[ObjectId]) -> List[Comment]:
        """Find comments by ids"""
        return await self._find_many({"_id": {"$in": comment_ids}})

    async def find_by_author(self, author_id: ObjectId) -> List[Comment]:
        """Find comments by author"""
        return await self._find_many({"author": author_id})

    async def find_parent(self, comment_id: ObjectId) -> Optional[Comment]:
        """Find the comment a reply belongs to"""
        doc = await self.collection.find_one({"replies": comment_id})
        return self._doc_to_model(doc)


class CommunityRepository(MongoRepository, ICommunityRepository):
    """Community repository implementation using MongoDB"""

    collection_name = "communities"

    def _to_model(self, doc: dict) -> Community:
        return Community(
            id=doc["_id"],
            name=doc["name"],
            username=doc["username"],
            created_by=doc["created_by"],
            community_type=CommunityType(doc["community_type"]),
            bio=doc.get("bio"),
            image=_image_from_doc(doc.get("image")),
            posts=list(doc.get("posts", [])),
            members=list(doc.get("members", [])),
            members_requests=list(doc.get("members_requests", [])),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    async def find_by_name(self, name: str) -> Optional[Community]:
        """Find community by name"""
        doc = await self.collection.find_one({"name": name})
        return self._doc_to_model(doc)

    async def find_by_username(self, username: str) -> Optional[Community]:
        """Find community by username"""
        doc = await self.collection.find_one({"username": username})
        return self._doc_to_model(doc)

    async def find_created_by(self, user_id: ObjectId) -> List[Community]:
        """Find communities created by a user"""
        return await self._find_many({"created_by": user_id})

    async def find_private_hidden_from(self, user_id: Optional[ObjectId]) -> List[Community]:
        """Find Private communities the user does not belong to"""
        return await self._find_many({
            "community_type": CommunityType.PRIVATE.value,
            "members": {"$ne": user_id},
        })


class NotificationRepository(MongoRepository, INotificationRepository):
    """Notification repository implementation using MongoDB"""

    collection_name = "notifications"

    def _to_model(self, doc: dict) -> Notification:
        return Notification(
            id=doc["_id"],
            user_id=doc["user_id"],
            sender_id=doc["sender_id"],
            type=NotificationType(doc["type"]),
            content=doc["content"],
            is_read=doc.get("is_read", False),
            post_id=doc.get("post_id"),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    async def mark_all_read(self, user_id: ObjectId) -> int:
        """Mark all of a user's notifications as read"""
        result = await self.collection.update_many(
            {"user_id": user_id, "is_read": False},
            {"$set": {"is_read": True, "updated_at": datetime.utcnow()}},
        )
        return result.modified_count

    async def delete_for_post(self, post_id: ObjectId) -> int:
        """Delete notifications about a post"""
        result = await self.collection.delete_many({"post_id": post_id})
        return result.deleted_count

    async def delete_for_user(self, user_id: ObjectId) -> int:
        """Delete notifications sent to or by a user"""
        result = await self.collection.delete_many(
            {"$or": [{"user_id": user_id}, {"sender_id": user_id}]}
        )
        return result.deleted_count
