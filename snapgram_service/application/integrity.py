"""
Referential integrity across users, posts, comments and communities

Every relationship is stored on both sides as arrays of ids. The routines
below update both sides together and perform the cascading deletes. They run
as sequences of independent writes; a failure half way leaves the earlier
writes in place.
"""
from typing import List, Set, Tuple
import logging

from bson import ObjectId

from ..config import settings
from ..domain.models import User, Post, Community
from ..domain.repositories import (
    IUserRepository, IPostRepository, ICommentRepository,
    ICommunityRepository, INotificationRepository,
)
from .errors import ConflictError, InvalidInputError
from .media import ImageService

logger = logging.getLogger(__name__)


class ReferentialIntegrity:
    """Maintain back-references and run cascading deletes"""

    def __init__(
        self,
        user_repository: IUserRepository,
        post_repository: IPostRepository,
        comment_repository: ICommentRepository,
        community_repository: ICommunityRepository,
        notification_repository: INotificationRepository,
        images: ImageService,
    ):
        self.users = user_repository
        self.posts = post_repository
        self.comments = comment_repository
        self.communities = community_repository
        self.notifications = notification_repository
        self.images = images

    # Follow graph

    async def link_follow(self, follower: User, target: User) -> None:
        """Add follower -> target on both users"""
        if follower.id == target.id:
            raise InvalidInputError("You cannot follow yourself.")
        if follower.is_following(target.id):
            raise ConflictError("You already follow this user.")

        await self.users.add_to_set(follower.id, "following", target.id)
        await self.users.add_to_set(target.id, "followers", follower.id)

    async def unlink_follow(self, follower: User, target: User) -> None:
        """Remove follower -> target from both users"""
        if follower.id == target.id:
            raise InvalidInputError("You cannot unfollow yourself.")
        if not follower.is_following(target.id):
            raise ConflictError("You do not follow this user.")

        await self.users.pull(follower.id, "following", target.id)
        await self.users.pull(target.id, "followers", follower.id)

    # Posts and shares

    async def link_post(self, post: Post) -> None:
        """Register a new post on its author and community"""
        await self.users.add_to_set(post.author, "posts", post.id)
        if post.community:
            await self.communities.add_to_set(post.community, "posts", post.id)

    async def link_share(self, share: Post) -> None:
        """Register a new share on the sharer and the original post"""
        await self.users.add_to_set(share.author, "posts", share.id)
        await self.posts.add_share_record(share.original_post, share.author)

    async def delete_share(self, share: Post) -> None:
        """Delete a share and detach it from the sharer and the original"""
        for comment_id in share.comments:
            await self.delete_comment_subtree(comment_id)

        await self.users.pull(share.author, "posts", share.id)
        await self.users.pull_from_all("saved_posts", share.id)
        await self.posts.pull_share_record(share.original_post, share.author)
        await self.notifications.delete_for_post(share.id)
        await self.posts.delete(share.id)
        logger.info(f"Deleted share {share.id} of post {share.original_post}")

    async def delete_post_cascade(self, post: Post) -> None:
        """
        Delete a post with everything hanging off it

        Comments, shares, saved references, the community and author
        back-references, notifications and stored images go with it.
        """
        if post.is_share():
            await self.delete_share(post)
            return

        removed_comments = 0
        for comment_id in post.comments:
            removed_comments += await self.delete_comment_subtree(comment_id)

        await self.users.pull(post.author, "posts", post.id)

        shares = await self.posts.find_shares_of(post.id)
        for share in shares:
            await self.delete_share(share)

        await self.users.pull_from_all("saved_posts", post.id)
        if post.community:
            await self.communities.pull(post.community, "posts", post.id)

        await self.notifications.delete_for_post(post.id)
        await self.images.delete_many(post.image_ids())
        await self.posts.delete(post.id)

        logger.info(
            f"Deleted post {post.id} with {removed_comments} comments and {len(shares)} shares"
        )

    # Comments

    async def _collect_subtree(self, root_id: ObjectId) -> List[ObjectId]:
        """
        Pre-order ids of a comment tree, walked with an explicit stack

        Replies are never created below MAX_COMMENT_DEPTH, so a deeper tree is
        refused here before anything is deleted.
        """
        stack: List[Tuple[ObjectId, int]] = [(root_id, 0)]
        visited: Set[ObjectId] = set()
        order: List[ObjectId] = []

        while stack:
            comment_id, depth = stack.pop()
            if comment_id in visited:
                continue
            visited.add(comment_id)

            comment = await self.comments.find_by_id(comment_id)
            if comment is None:
                continue
            order.append(comment_id)

            if not comment.replies:
                continue
            if depth >= settings.MAX_COMMENT_DEPTH:
                logger.warning(
                    f"Comment {root_id} has replies more than "
                    f"{settings.MAX_COMMENT_DEPTH} levels deep, nothing deleted"
                )
                raise InvalidInputError("This comment thread is too deep to delete.")

            for reply_id in reversed(comment.replies):
                stack.append((reply_id, depth + 1))

        return order

    async def delete_comment_subtree(self, comment_id: ObjectId) -> int:
        """
        Delete a comment and all of its replies

        Descendants are deleted before their ancestors, then the root is
        pulled from whichever post or comment referenced it.

        Returns:
            Number of deleted comments
        """
        order = await self._collect_subtree(comment_id)

        deleted = 0
        for descendant_id in reversed(order):
            if await self.comments.delete(descendant_id):
                deleted += 1

        await self.posts.pull_from_all("comments", comment_id)
        await self.comments.pull_from_all("replies", comment_id)

        logger.debug(f"Deleted comment {comment_id} and {max(deleted - 1, 0)} replies")
        return deleted

    # Communities

    async def link_member(self, community: Community, user_id: ObjectId) -> None:
        """Add a member on both sides, clearing any pending request"""
        await self.communities.pull(community.id, "members_requests", user_id)
        await self.communities.add_to_set(community.id, "members", user_id)
        await self.users.add_to_set(user_id, "communities", community.id)

    async def unlink_member(self, community: Community, user_id: ObjectId) -> None:
        """Remove a member from both sides"""
        await self.communities.pull(community.id, "members", user_id)
        await self.users.pull(user_id, "communities", community.id)

    async def delete_community_cascade(self, community: Community) -> None:
        """Delete a community, its posts and its image"""
        await self.users.pull_from_all("communities", community.id)

        posts = await self.posts.find_by_community(community.id)
        for post in posts:
            await self.delete_post_cascade(post)

        if community.image:
            await self.images.delete(community.image.public_id)

        await self.communities.delete(community.id)
        logger.info(f"Deleted community {community.id} with {len(posts)} posts")

    # Users

    async def delete_user_cascade(self, user: User) -> None:
        """
        Delete a user account and everything it owns

        Owned communities and posts are deleted with their own cascades.
        Comments written by the user are removed with their replies. The
        user is then detached from every relationship array that still
        references them.
        """
        for community in await self.communities.find_created_by(user.id):
            await self.delete_community_cascade(community)

        for authored in await self.posts.find_by_author(user.id):
            # An earlier cascade may already have removed it
            post = await self.posts.find_by_id(authored.id)
            if post is not None:
                await self.delete_post_cascade(post)

        for authored in await self.comments.find_by_author(user.id):
            await self.delete_comment_subtree(authored.id)

        await self.users.pull_from_all("followers", user.id)
        await self.users.pull_from_all("following", user.id)
        await self.communities.pull_from_all("members", user.id)
        await self.communities.pull_from_all("members_requests", user.id)
        await self.posts.pull_from_all("likes", user.id)
        await self.posts.pull_share_records_from_all(user.id)

        removed_notifications = await self.notifications.delete_for_user(user.id)

        if user.image:
            await self.images.delete(user.image.public_id)

        await self.users.delete(user.id)
        logger.info(
            f"Deleted user {user.id} and {removed_notifications} notifications"
        )
