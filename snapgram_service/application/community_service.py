"""
Community service - communities and their membership workflow
"""
from dataclasses import replace
from typing import Any, Dict, Optional
import logging

from bson import ObjectId
from fastapi import UploadFile
from pymongo.errors import DuplicateKeyError

from ..domain.models import Community, CommunityType
from ..domain.repositories import ICommunityRepository, IUserRepository
from ..infrastructure.database.repositories import image_to_doc
from .errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from .integrity import ReferentialIntegrity
from .media import ImageService
from .queries import PageRequest, Page, build_page, search_filter, newest_first

logger = logging.getLogger(__name__)


class CommunityService:
    """Community service - handles community-related business logic"""

    def __init__(
        self,
        community_repository: ICommunityRepository,
        user_repository: IUserRepository,
        integrity: ReferentialIntegrity,
        images: ImageService,
    ):
        self.community_repo = community_repository
        self.user_repo = user_repository
        self.integrity = integrity
        self.images = images

    async def _get(self, community_id: ObjectId) -> Community:
        community = await self.community_repo.find_by_id(community_id)
        if not community:
            raise NotFoundError("Community not found.")
        return community

    @staticmethod
    def _redact(community: Community, user_id: Optional[ObjectId]) -> Community:
        """Private communities hide their member lists from outsiders"""
        if community.can_view(user_id):
            return community
        return replace(community, members=[], members_requests=[])

    async def _get_owned(self, community_id: ObjectId, user_id: ObjectId) -> Community:
        community = await self._get(community_id)
        if not community.is_creator(user_id):
            raise ForbiddenError("Unauthorized.")
        return community

    async def _ensure_unique(self, name: str, username: str, community_id: Optional[ObjectId] = None):
        other = await self.community_repo.find_by_name(name)
        if other and other.id != community_id:
            raise ConflictError("This community name is already in use.")
        other = await self.community_repo.find_by_username(username)
        if other and other.id != community_id:
            raise ConflictError("This community username is already in use.")

    # Queries

    async def list_communities(
        self,
        request: PageRequest,
        search_term: Optional[str] = None,
        sort: Optional[str] = None,
        user_id: Optional[ObjectId] = None,
    ) -> Page:
        """List communities, optionally filtered by name or username"""
        filters = search_filter(search_term, ["name", "username"])
        items, total = await self.community_repo.find_page(
            filters, request.skip, request.limit, newest_first(sort)
        )
        items = [self._redact(community, user_id) for community in items]
        return build_page(items, total, request)

    async def get_community(self, community_id: ObjectId, user_id: Optional[ObjectId] = None) -> Community:
        return self._redact(await self._get(community_id), user_id)

    async def members(self, community_id: ObjectId, user_id: ObjectId, request: PageRequest) -> Page:
        """Members of a community, Private communities list them to members only"""
        community = await self._get(community_id)
        if not community.can_view(user_id):
            raise ForbiddenError("You do not belong to this community.")

        items, total = await self.user_repo.find_page(
            {"_id": {"$in": community.members}}, request.skip, request.limit
        )
        return build_page(items, total, request)

    async def requests(self, community_id: ObjectId, user_id: ObjectId, request: PageRequest) -> Page:
        """Pending membership requests, visible to the creator only"""
        community = await self._get_owned(community_id, user_id)

        items, total = await self.user_repo.find_page(
            {"_id": {"$in": community.members_requests}}, request.skip, request.limit
        )
        return build_page(items, total, request)

    # Lifecycle

    async def create_community(
        self,
        creator_id: ObjectId,
        name: str,
        username: str,
        community_type: CommunityType,
        bio: Optional[str] = None,
        image: Optional[UploadFile] = None,
    ) -> Community:
        """Create a community, the creator becomes its first member"""
        await self._ensure_unique(name, username)

        uploaded = await self.images.upload(image, str(creator_id)) if image is not None else None

        try:
            community = await self.community_repo.create({
                "name": name,
                "username": username,
                "bio": bio,
                "image": image_to_doc(uploaded),
                "created_by": creator_id,
                "community_type": community_type.value,
                "posts": [],
                "members": [],
                "members_requests": [],
            })
        except DuplicateKeyError:
            if uploaded:
                await self.images.delete(uploaded.public_id)
            raise ConflictError("This community name is already in use.")

        await self.integrity.link_member(community, creator_id)
        logger.info(f"User {creator_id} created community {community.id}")
        return await self._get(community.id)

    async def update_community(
        self,
        community_id: ObjectId,
        user_id: ObjectId,
        name: str,
        username: str,
        community_type: CommunityType,
        bio: Optional[str] = None,
        image: Optional[UploadFile] = None,
        remove_image: bool = False,
    ) -> Community:
        """Update a community, only its creator may do so"""
        community = await self._get_owned(community_id, user_id)
        await self._ensure_unique(name, username, community.id)

        updates: Dict[str, Any] = {
            "name": name,
            "username": username,
            "community_type": community_type.value,
        }
        if bio is not None:
            updates["bio"] = bio

        if image is not None:
            uploaded = await self.images.upload(image, str(user_id))
            updates["image"] = image_to_doc(uploaded)
        elif remove_image:
            updates["image"] = None

        if community.image and "image" in updates:
            await self.images.delete(community.image.public_id)

        return await self.community_repo.update(community.id, updates)

    async def delete_community(self, community_id: ObjectId, user_id: ObjectId) -> None:
        """Delete a community with all of its posts"""
        community = await self._get_owned(community_id, user_id)
        await self.integrity.delete_community_cascade(community)

    # Public communities

    async def join(self, community_id: ObjectId, user_id: ObjectId) -> None:
        community = await self._get(community_id)
        if community.is_private():
            raise InvalidInputError("This community is private, send a membership request.")
        if community.is_creator(user_id):
            raise InvalidInputError("You cannot join your own community.")
        if community.is_member(user_id):
            raise ConflictError("You have already joined this community.")

        await self.integrity.link_member(community, user_id)

    async def leave(self, community_id: ObjectId, user_id: ObjectId) -> None:
        community = await self._get(community_id)
        if community.is_creator(user_id):
            raise InvalidInputError("You cannot leave your own community.")
        if not community.is_member(user_id):
            raise ConflictError("You do not belong to this community.")

        await self.integrity.unlink_member(community, user_id)

    # Private communities

    async def request_membership(self, community_id: ObjectId, user_id: ObjectId) -> None:
        community = await self._get(community_id)
        if community.is_creator(user_id):
            raise InvalidInputError("You cannot request membership in your own community.")
        if not community.is_private():
            raise InvalidInputError("This community is public, you can join directly.")
        if community.is_member(user_id):
            raise ConflictError("You have already joined this community.")
        if community.has_requested(user_id):
            raise ConflictError("You have already sent a request.")

        await self.community_repo.add_to_set(community.id, "members_requests", user_id)

    async def cancel_request(self, community_id: ObjectId, user_id: ObjectId) -> None:
        community = await self._get(community_id)
        if community.is_creator(user_id):
            raise InvalidInputError("You cannot delete request membership in your own community.")
        if not community.has_requested(user_id):
            raise ConflictError("You have not sent a request.")

        await self.community_repo.pull(community.id, "members_requests", user_id)

    async def accept_request(self, community_id: ObjectId, creator_id: ObjectId, user_id: ObjectId) -> None:
        """Move a requester into the members"""
        community = await self._get_owned(community_id, creator_id)
        if not await self.user_repo.find_by_id(user_id):
            raise NotFoundError("User not found.")
        if not community.has_requested(user_id):
            raise ConflictError("This user has not sent a request.")

        await self.integrity.link_member(community, user_id)

    async def deny_request(self, community_id: ObjectId, creator_id: ObjectId, user_id: ObjectId) -> None:
        community = await self._get_owned(community_id, creator_id)
        if not await self.user_repo.find_by_id(user_id):
            raise NotFoundError("User not found.")
        if not community.has_requested(user_id):
            raise ConflictError("This user has not sent a request.")

        await self.community_repo.pull(community.id, "members_requests", user_id)

    async def remove_member(self, community_id: ObjectId, creator_id: ObjectId, user_id: ObjectId) -> None:
        """Remove a member, the creator cannot remove themselves"""
        community = await self._get_owned(community_id, creator_id)
        if community.is_creator(user_id):
            raise InvalidInputError("You cannot leave your own community.")
        if not community.is_member(user_id):
            raise NotFoundError("Member not found.")

        await self.integrity.unlink_member(community, user_id)
