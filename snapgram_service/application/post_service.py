"""
Post service - feeds, post lifecycle, likes, saves and shares
"""
from typing import Any, Dict, List, Optional
import logging

from bson import ObjectId
from fastapi import UploadFile

from ..config import settings
from ..domain.models import Post, Community, NotificationType
from ..domain.repositories import IPostRepository, IUserRepository, ICommunityRepository
from ..infrastructure.database.repositories import image_to_doc
from .errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from .integrity import ReferentialIntegrity
from .media import ImageService
from .notification_service import NotificationService
from .queries import PageRequest, Page, build_page, search_filter, newest_first

logger = logging.getLogger(__name__)


async def ensure_post_visible(
    community_repository: ICommunityRepository,
    post: Post,
    user_id: Optional[ObjectId],
) -> None:
    """Posts of a Private community are reserved to its members"""
    if not post.community:
        return
    community = await community_repository.find_by_id(post.community)
    if community and not community.can_view(user_id):
        raise ForbiddenError("You do not belong to this community.")


def parse_tags(tags: Optional[str]) -> List[str]:
    """Split a comma-separated tag string"""
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


class PostService:
    """Post service - handles post-related business logic"""

    def __init__(
        self,
        post_repository: IPostRepository,
        user_repository: IUserRepository,
        community_repository: ICommunityRepository,
        integrity: ReferentialIntegrity,
        notifications: NotificationService,
        images: ImageService,
    ):
        self.post_repo = post_repository
        self.user_repo = user_repository
        self.community_repo = community_repository
        self.integrity = integrity
        self.notifications = notifications
        self.images = images

    async def _get(self, post_id: ObjectId) -> Post:
        post = await self.post_repo.find_by_id(post_id)
        if not post:
            raise NotFoundError("Post not found.")
        return post

    async def _get_community(self, community_id: ObjectId) -> Community:
        community = await self.community_repo.find_by_id(community_id)
        if not community:
            raise NotFoundError("Community not found.")
        return community

    async def _ensure_visible(self, post: Post, user_id: Optional[ObjectId]) -> None:
        await ensure_post_visible(self.community_repo, post, user_id)

    async def _page(
        self,
        filters: Dict[str, Any],
        request: PageRequest,
        search_term: Optional[str],
        sort: Optional[str],
    ) -> Page:
        filters.update(search_filter(search_term, ["caption"]))
        items, total = await self.post_repo.find_page(
            filters, request.skip, request.limit, newest_first(sort)
        )
        return build_page(items, total, request)

    # Feeds

    async def list_posts(
        self,
        request: PageRequest,
        search_term: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> Page:
        """Posts published outside communities"""
        return await self._page({"community": None}, request, search_term, sort)

    async def following_feed(
        self,
        user_id: ObjectId,
        request: PageRequest,
        search_term: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> Page:
        """Posts outside communities written by users the requester follows"""
        user = await self.user_repo.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found.")

        filters = {"community": None, "author": {"$in": user.following}}
        return await self._page(filters, request, search_term, sort)

    async def community_posts(
        self,
        community_id: ObjectId,
        user_id: ObjectId,
        request: PageRequest,
        search_term: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> Page:
        """Posts of a community, Private communities require membership"""
        community = await self._get_community(community_id)
        if not community.can_view(user_id):
            raise ForbiddenError("You do not belong to this community.")

        return await self._page({"community": community.id}, request, search_term, sort)

    async def posts_by_user(
        self,
        author_id: ObjectId,
        request: PageRequest,
        sort: Optional[str] = None,
    ) -> Page:
        """Posts and shares a user published outside communities"""
        author = await self.user_repo.find_by_id(author_id)
        if not author:
            raise NotFoundError("User not found.")

        return await self._page({"author": author.id, "community": None}, request, None, sort)

    async def get_post(self, post_id: ObjectId, user_id: Optional[ObjectId] = None) -> Post:
        """Get one post, posts of Private communities are shown to members only"""
        post = await self._get(post_id)
        await self._ensure_visible(post, user_id)
        return post

    # Lifecycle

    async def create_post(
        self,
        author_id: ObjectId,
        caption: str,
        location: str,
        files: List[UploadFile],
        tags: Optional[str] = None,
        community_id: Optional[ObjectId] = None,
    ) -> Post:
        """Create an original post, optionally inside a community the author belongs to"""
        if not files:
            raise InvalidInputError("You must upload at least one image.")
        if len(files) > settings.MAX_POST_IMAGES:
            raise InvalidInputError(f"You can upload at most {settings.MAX_POST_IMAGES} images.")

        if community_id is not None:
            community = await self._get_community(community_id)
            if not community.is_member(author_id):
                raise ForbiddenError("You do not belong to this community.")

        images = await self.images.upload_many(files, str(author_id))

        post = await self.post_repo.create({
            "author": author_id,
            "caption": caption,
            "location": location,
            "images": [image_to_doc(image) for image in images],
            "tags": parse_tags(tags),
            "likes": [],
            "shared_by": [],
            "original_post": None,
            "community": community_id,
            "comments": [],
        })
        await self.integrity.link_post(post)

        logger.info(f"User {author_id} created post {post.id}")
        return post

    async def update_post(
        self,
        post_id: ObjectId,
        user_id: ObjectId,
        caption: str,
        location: str,
        tags: Optional[str] = None,
        images_to_remove: Optional[List[str]] = None,
        files: Optional[List[UploadFile]] = None,
    ) -> Post:
        """Edit an original post, at least one image must remain"""
        post = await self._get(post_id)
        if not post.is_owner(user_id):
            raise ForbiddenError("Unauthorized.")
        if post.is_share():
            raise InvalidInputError("Shared posts cannot be edited.")

        files = files or []
        to_remove = set(images_to_remove or [])
        kept = [image for image in post.images if image.public_id not in to_remove]
        removed = [image.public_id for image in post.images if image.public_id in to_remove]

        if len(kept) + len(files) == 0:
            raise InvalidInputError("You need at least one image.")
        if len(kept) + len(files) > settings.MAX_POST_IMAGES:
            raise InvalidInputError(f"You can upload at most {settings.MAX_POST_IMAGES} images.")

        uploaded = await self.images.upload_many(files, str(user_id))
        await self.images.delete_many(removed)

        updates: Dict[str, Any] = {
            "caption": caption,
            "location": location,
            "images": [image_to_doc(image) for image in kept + uploaded],
        }
        if tags is not None:
            updates["tags"] = parse_tags(tags)

        return await self.post_repo.update(post.id, updates)

    async def delete_post(self, post_id: ObjectId, user_id: ObjectId) -> None:
        """Delete a post and everything attached to it"""
        post = await self._get(post_id)
        if not post.is_owner(user_id):
            raise ForbiddenError("Unauthorized.")

        await self.integrity.delete_post_cascade(post)

    # Reactions

    async def like(self, post_id: ObjectId, user_id: ObjectId) -> None:
        """Like a post and notify its author"""
        post = await self._get(post_id)
        await self._ensure_visible(post, user_id)
        if post.is_liked_by(user_id):
            raise ConflictError("You already like this post.")

        await self.post_repo.add_to_set(post.id, "likes", user_id)

        user = await self.user_repo.find_by_id(user_id)
        sender_name = user.name if user else "Someone"
        await self.notifications.notify(
            user_id=post.author,
            sender_id=user_id,
            notification_type=NotificationType.LIKE,
            content=f"{sender_name} liked your post",
            post_id=post.id,
        )

    async def unlike(self, post_id: ObjectId, user_id: ObjectId) -> None:
        post = await self._get(post_id)
        await self._ensure_visible(post, user_id)
        if not post.is_liked_by(user_id):
            raise ConflictError("You have not liked this post.")

        await self.post_repo.pull(post.id, "likes", user_id)

    async def save(self, post_id: ObjectId, user_id: ObjectId) -> None:
        """Add a post to the user's saved list"""
        post = await self._get(post_id)
        await self._ensure_visible(post, user_id)
        user = await self.user_repo.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found.")
        if user.has_saved(post.id):
            raise ConflictError("You already save this post.")

        await self.user_repo.add_to_set(user.id, "saved_posts", post.id)

    async def unsave(self, post_id: ObjectId, user_id: ObjectId) -> None:
        user = await self.user_repo.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found.")
        if not user.has_saved(post_id):
            raise ConflictError("You have not saved this post.")

        await self.user_repo.pull(user.id, "saved_posts", post_id)

    # Shares

    async def share(self, post_id: ObjectId, user_id: ObjectId) -> Post:
        """Repost someone else's original post"""
        original = await self._get(post_id)
        await self._ensure_visible(original, user_id)
        if original.is_share():
            raise InvalidInputError("Only original posts can be shared.")
        if original.is_owner(user_id):
            raise ForbiddenError("You cannot share your own publication")
        if original.is_shared_by(user_id) or await self.post_repo.find_share(original.id, user_id):
            raise ConflictError("You have already shared this post")

        share = await self.post_repo.create({
            "author": user_id,
            "original_post": original.id,
            "likes": [],
            "shared_by": [],
            "community": None,
            "comments": [],
        })
        await self.integrity.link_share(share)

        user = await self.user_repo.find_by_id(user_id)
        sender_name = user.name if user else "Someone"
        await self.notifications.notify(
            user_id=original.author,
            sender_id=user_id,
            notification_type=NotificationType.SHARE,
            content=f"{sender_name} shared your post",
            post_id=original.id,
        )
        return share

    async def unshare(self, post_id: ObjectId, user_id: ObjectId) -> None:
        """Remove the user's share of an original post"""
        original = await self._get(post_id)
        share = await self.post_repo.find_share(original.id, user_id)
        if not share:
            raise NotFoundError("You have not shared this post.")

        await self.integrity.delete_share(share)
