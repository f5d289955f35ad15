"""
User routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...config import settings
from ...schemas import (
    UserOut, PostOut, DataResponse, PageResponse, MessageResponse, page_response,
)
from ...application.errors import parse_object_id
from ...application.queries import page_request
from ...application.user_service import UserService
from ..dependencies import CurrentUser, get_user_service, get_current_user


router = APIRouter(prefix=f"{settings.BASE_API_URL}/users", tags=["Users"])


@router.get("", response_model=PageResponse[UserOut])
async def list_users(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    search_term: Optional[str] = Query(None, alias="searchTerm"),
    sort: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """
    List users other than the requester

    Filter with searchTerm (name or username), order with sort=new_users|old_users.
    """
    result = await user_service.list_users(
        current_user.id,
        page_request(page, limit, settings.DEFAULT_USERS_PAGE_SIZE),
        search_term=search_term,
        sort=sort,
    )
    return page_response(result, UserOut)


@router.get("/top-creators", response_model=DataResponse[List[UserOut]])
async def top_creators(
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Users with the most posts"""
    users = await user_service.top_creators(current_user.id)
    return DataResponse(data=[UserOut.model_validate(user) for user in users])


@router.get("/me", response_model=DataResponse[UserOut])
async def get_my_profile(
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Get current user's profile"""
    user = await user_service.get_user(current_user.id)
    return DataResponse(data=UserOut.model_validate(user))


@router.get("/me/saved-posts", response_model=PageResponse[PostOut])
async def get_my_saved_posts(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Posts saved by the current user"""
    result = await user_service.saved_posts(current_user.id, page_request(page, limit))
    return page_response(result, PostOut)


@router.get("/{user_id}", response_model=DataResponse[UserOut])
async def get_user(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Get a user profile by id"""
    user = await user_service.get_user(parse_object_id(user_id))
    return DataResponse(data=UserOut.model_validate(user))


@router.patch("/follow/{user_id}", response_model=MessageResponse)
async def follow_user(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    await user_service.follow(current_user.id, parse_object_id(user_id))
    return MessageResponse(message="User followed.")


@router.patch("/unfollow/{user_id}", response_model=MessageResponse)
async def unfollow_user(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    await user_service.unfollow(current_user.id, parse_object_id(user_id))
    return MessageResponse(message="User unfollowed.")
