"""
MongoDB database connection and utilities
"""
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from typing import Optional
import logging

from ...config import settings

logger = logging.getLogger(__name__)


class MongoDB:
    """MongoDB connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        """Connect to MongoDB"""
        self.client = AsyncIOMotorClient(settings.MONGODB_URL)
        self.db = self.client[settings.MONGODB_DATABASE]

        # Create indexes
        await self.create_indexes()

        logger.info(f"Connected to MongoDB at {settings.MONGODB_URL}")
        logger.info(f"Using database: {settings.MONGODB_DATABASE}")

    async def disconnect(self):
        """Disconnect from MongoDB"""
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")

    async def create_indexes(self):
        """Create database indexes for uniqueness and lookups"""
        # Users: unique identity fields, relationship lookups
        await self.db.users.create_index("email", unique=True)
        await self.db.users.create_index("username", unique=True)
        await self.db.users.create_index("refresh_token", sparse=True)
        await self.db.users.create_index("reset_password_token", sparse=True)
        await self.db.users.create_index([("created_at", DESCENDING)])

        # Posts: feeds, shares and community listings
        await self.db.posts.create_index([("created_at", DESCENDING)])
        await self.db.posts.create_index([("author", ASCENDING), ("created_at", DESCENDING)])
        await self.db.posts.create_index("original_post")
        await self.db.posts.create_index("community")

        # Comments: parent lookups when detaching a deleted subtree
        await self.db.comments.create_index("replies")

        # Communities
        await self.db.communities.create_index("name", unique=True)
        await self.db.communities.create_index("username", unique=True)

        # Notifications
        await self.db.notifications.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
        await self.db.notifications.create_index("post_id")

        logger.info("MongoDB indexes created")


# Global MongoDB instance
mongodb = MongoDB()


async def get_db() -> AsyncIOMotorDatabase:
    """Dependency for getting database instance"""
    return mongodb.db
