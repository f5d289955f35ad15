"""
Community routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from ...config import settings
from ...domain.models import CommunityType
from ...schemas import (
    CommunityOut, UserOut, DataResponse, PageResponse, MessageResponse, page_response,
)
from ...application.community_service import CommunityService
from ...application.errors import parse_object_id
from ...application.queries import page_request
from ..dependencies import (
    CurrentUser, get_community_service, get_current_user, get_current_user_optional,
)


router = APIRouter(prefix=f"{settings.BASE_API_URL}/communities", tags=["Communities"])


@router.get("", response_model=PageResponse[CommunityOut])
async def list_communities(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    sort: Optional[str] = Query(None),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    community_service: CommunityService = Depends(get_community_service)
):
    """
    List communities

    Filter with searchQuery (name or username), order with sort=new_communities|old_communities.
    Private communities only list their members to members.
    """
    result = await community_service.list_communities(
        page_request(page, limit), search_query, sort,
        current_user.id if current_user else None,
    )
    return page_response(result, CommunityOut)


@router.get("/{community_id}", response_model=DataResponse[CommunityOut])
async def get_community(
    community_id: str,
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    community_service: CommunityService = Depends(get_community_service)
):
    community = await community_service.get_community(
        parse_object_id(community_id), current_user.id if current_user else None
    )
    return DataResponse(data=CommunityOut.model_validate(community))


@router.get("/{community_id}/members", response_model=PageResponse[UserOut])
async def community_members(
    community_id: str,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    result = await community_service.members(
        parse_object_id(community_id), current_user.id, page_request(page, limit)
    )
    return page_response(result, UserOut)


@router.get("/{community_id}/requests", response_model=PageResponse[UserOut])
async def community_requests(
    community_id: str,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    """Pending membership requests, creator only"""
    result = await community_service.requests(
        parse_object_id(community_id), current_user.id, page_request(page, limit)
    )
    return page_response(result, UserOut)


@router.post("", response_model=DataResponse[CommunityOut], status_code=status.HTTP_201_CREATED)
async def create_community(
    name: str = Form(..., min_length=4),
    username: str = Form(..., min_length=4),
    community_type: CommunityType = Form(...),
    bio: Optional[str] = Form(None, min_length=4),
    image: Optional[UploadFile] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    """Create a community, the creator becomes its first member"""
    community = await community_service.create_community(
        current_user.id,
        name=name.strip(),
        username=username.strip(),
        community_type=community_type,
        bio=bio.strip() if bio else None,
        image=image,
    )
    return DataResponse(data=CommunityOut.model_validate(community))


@router.patch("/{community_id}", response_model=DataResponse[CommunityOut])
async def update_community(
    community_id: str,
    name: str = Form(..., min_length=4),
    username: str = Form(..., min_length=4),
    community_type: CommunityType = Form(...),
    bio: Optional[str] = Form(None, min_length=4),
    remove_image: bool = Form(False),
    image: Optional[UploadFile] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    """Update own community, an uploaded image replaces the current one"""
    community = await community_service.update_community(
        parse_object_id(community_id),
        current_user.id,
        name=name.strip(),
        username=username.strip(),
        community_type=community_type,
        bio=bio.strip() if bio else None,
        image=image,
        remove_image=remove_image,
    )
    return DataResponse(data=CommunityOut.model_validate(community))


@router.delete("/{community_id}", response_model=MessageResponse)
async def delete_community(
    community_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    await community_service.delete_community(parse_object_id(community_id), current_user.id)
    return MessageResponse(message="Community deleted successfully.")


@router.patch("/join/{community_id}", response_model=MessageResponse)
async def join_community(
    community_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    await community_service.join(parse_object_id(community_id), current_user.id)
    return MessageResponse(message="You joined the community.")


@router.patch("/leave/{community_id}", response_model=MessageResponse)
async def leave_community(
    community_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    await community_service.leave(parse_object_id(community_id), current_user.id)
    return MessageResponse(message="You left the community.")


@router.patch("/request/{community_id}", response_model=MessageResponse)
async def request_membership(
    community_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    await community_service.request_membership(parse_object_id(community_id), current_user.id)
    return MessageResponse(message="Membership request sent.")


@router.patch("/cancel-request/{community_id}", response_model=MessageResponse)
async def cancel_request(
    community_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    await community_service.cancel_request(parse_object_id(community_id), current_user.id)
    return MessageResponse(message="Membership request cancelled.")


@router.patch("/{community_id}/accept/{user_id}", response_model=MessageResponse)
async def accept_request(
    community_id: str,
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    await community_service.accept_request(
        parse_object_id(community_id), current_user.id, parse_object_id(user_id)
    )
    return MessageResponse(message="Membership request accepted.")


@router.patch("/{community_id}/deny/{user_id}", response_model=MessageResponse)
async def deny_request(
    community_id: str,
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    await community_service.deny_request(
        parse_object_id(community_id), current_user.id, parse_object_id(user_id)
    )
    return MessageResponse(message="Membership request denied.")


@router.patch("/{community_id}/remove/{user_id}", response_model=MessageResponse)
async def remove_member(
    community_id: str,
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
):
    await community_service.remove_member(
        parse_object_id(community_id), current_user.id, parse_object_id(user_id)
    )
    return MessageResponse(message="Member removed.")
