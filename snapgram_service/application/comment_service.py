"""
Comment service - comments on posts and threaded replies
"""
from typing import List, Optional, Set, Tuple
import logging

from bson import ObjectId

from ..config import settings
from ..domain.models import Comment, Post
from ..domain.repositories import ICommentRepository, ICommunityRepository, IPostRepository
from .errors import ForbiddenError, InvalidInputError, NotFoundError
from .integrity import ReferentialIntegrity
from .post_service import ensure_post_visible

logger = logging.getLogger(__name__)


class CommentService:
    """Comment service - handles comment-related business logic"""

    def __init__(
        self,
        comment_repository: ICommentRepository,
        post_repository: IPostRepository,
        community_repository: ICommunityRepository,
        integrity: ReferentialIntegrity,
    ):
        self.comment_repo = comment_repository
        self.post_repo = post_repository
        self.community_repo = community_repository
        self.integrity = integrity

    async def _get(self, comment_id: ObjectId) -> Comment:
        comment = await self.comment_repo.find_by_id(comment_id)
        if not comment:
            raise NotFoundError("Comment not found.")
        return comment

    async def _get_post(self, post_id: ObjectId) -> Post:
        post = await self.post_repo.find_by_id(post_id)
        if not post:
            raise NotFoundError("Post not found.")
        return post

    async def _thread_of(self, comment: Comment) -> Tuple[Optional[Post], int]:
        """
        Walk up the reply chain of a comment

        Returns:
            Tuple of (post holding the top-level comment, depth of the comment)
        """
        depth = 0
        current = comment
        seen: Set[ObjectId] = {comment.id}
        while True:
            parent = await self.comment_repo.find_parent(current.id)
            if parent is None or parent.id in seen:
                break
            seen.add(parent.id)
            depth += 1
            current = parent

        post = await self.post_repo.find_by_comment(current.id)
        return post, depth

    async def _ensure_visible(self, comment: Comment, user_id: Optional[ObjectId]) -> int:
        """Check the thread's post is readable, returns the comment depth"""
        post, depth = await self._thread_of(comment)
        if post is not None:
            await ensure_post_visible(self.community_repo, post, user_id)
        return depth

    async def _hidden_comment_ids(self, user_id: Optional[ObjectId]) -> Set[ObjectId]:
        """Ids of every comment under posts of Private communities the user is not in"""
        frontier: List[ObjectId] = []
        for community in await self.community_repo.find_private_hidden_from(user_id):
            for post in await self.post_repo.find_by_community(community.id):
                frontier.extend(post.comments)

        hidden: Set[ObjectId] = set()
        while frontier:
            frontier = [comment_id for comment_id in frontier if comment_id not in hidden]
            hidden.update(frontier)
            comments = await self.comment_repo.find_by_ids(frontier) if frontier else []
            frontier = [reply_id for comment in comments for reply_id in comment.replies]
        return hidden

    async def list_comments(self, user_id: Optional[ObjectId] = None) -> List[Comment]:
        """Every comment the user may read, newest first"""
        hidden = await self._hidden_comment_ids(user_id)
        comments = await self.comment_repo.find_all()
        return [comment for comment in comments if comment.id not in hidden]

    async def post_comments(self, post_id: ObjectId, user_id: Optional[ObjectId] = None) -> List[Comment]:
        """Top-level comments of a post"""
        post = await self._get_post(post_id)
        await ensure_post_visible(self.community_repo, post, user_id)
        return await self.comment_repo.find_by_ids(post.comments)

    async def get_comment(self, comment_id: ObjectId, user_id: Optional[ObjectId] = None) -> Comment:
        comment = await self._get(comment_id)
        await self._ensure_visible(comment, user_id)
        return comment

    async def replies(self, comment_id: ObjectId, user_id: Optional[ObjectId] = None) -> List[Comment]:
        """Direct replies of a comment"""
        comment = await self._get(comment_id)
        await self._ensure_visible(comment, user_id)
        return await self.comment_repo.find_by_ids(comment.replies)

    async def create_comment(self, post_id: ObjectId, author_id: ObjectId, content: str) -> Comment:
        """Comment on a post"""
        post = await self._get_post(post_id)
        await ensure_post_visible(self.community_repo, post, author_id)

        comment = await self.comment_repo.create({
            "content": content,
            "author": author_id,
            "replies": [],
        })
        await self.post_repo.add_to_set(post.id, "comments", comment.id)
        return comment

    async def reply(self, parent_id: ObjectId, author_id: ObjectId, content: str) -> Comment:
        """Reply to an existing comment, threads stop at MAX_COMMENT_DEPTH"""
        parent = await self._get(parent_id)
        depth = await self._ensure_visible(parent, author_id)
        if depth + 1 > settings.MAX_COMMENT_DEPTH:
            raise InvalidInputError(
                f"Replies cannot be nested more than {settings.MAX_COMMENT_DEPTH} levels."
            )

        reply = await self.comment_repo.create({
            "content": content,
            "author": author_id,
            "replies": [],
        })
        await self.comment_repo.add_to_set(parent.id, "replies", reply.id)
        return reply

    async def update_comment(self, comment_id: ObjectId, user_id: ObjectId, content: str) -> Comment:
        """Edit the text of one's own comment"""
        comment = await self._get(comment_id)
        if not comment.is_owner(user_id):
            raise ForbiddenError("Unauthorized.")

        return await self.comment_repo.update(comment.id, {"content": content})

    async def delete_comment(self, comment_id: ObjectId, user_id: ObjectId) -> int:
        """Delete a comment with all its replies"""
        comment = await self._get(comment_id)
        if not comment.is_owner(user_id):
            raise ForbiddenError("Unauthorized.")

        return await self.integrity.delete_comment_subtree(comment.id)

    async def delete_reply(self, comment_id: ObjectId, user_id: ObjectId) -> int:
        """Delete a reply with all its replies, top-level comments are rejected"""
        comment = await self.comment_repo.find_by_id(comment_id)
        if not comment or await self.post_repo.find_by_comment(comment_id):
            raise NotFoundError("Comment not found.")
        if not comment.is_owner(user_id):
            raise ForbiddenError("Unauthorized.")

        return await self.integrity.delete_comment_subtree(comment.id)
