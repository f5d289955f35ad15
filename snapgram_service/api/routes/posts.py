"""
Post routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from ...config import settings
from ...schemas import PostOut, DataResponse, PageResponse, MessageResponse, page_response
from ...application.errors import parse_object_id
from ...application.post_service import PostService
from ...application.queries import page_request
from ..dependencies import (
    CurrentUser, get_post_service, get_current_user, get_current_user_optional,
)


router = APIRouter(prefix=f"{settings.BASE_API_URL}/posts", tags=["Posts"])


@router.get("", response_model=PageResponse[PostOut])
async def list_posts(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    sort: Optional[str] = Query(None),
    post_service: PostService = Depends(get_post_service)
):
    """
    List posts published outside communities

    Filter with searchQuery (caption), order with sort=new_posts|old_posts.
    """
    result = await post_service.list_posts(page_request(page, limit), search_query, sort)
    return page_response(result, PostOut)


@router.get("/following", response_model=PageResponse[PostOut])
async def following_feed(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    sort: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Posts written by the users the requester follows"""
    result = await post_service.following_feed(
        current_user.id, page_request(page, limit), search_query, sort
    )
    return page_response(result, PostOut)


@router.get("/community/{community_id}", response_model=PageResponse[PostOut])
async def community_posts(
    community_id: str,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    sort: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Posts of a community, Private communities require membership"""
    result = await post_service.community_posts(
        parse_object_id(community_id),
        current_user.id,
        page_request(page, limit),
        search_query,
        sort,
    )
    return page_response(result, PostOut)


@router.get("/user/{user_id}", response_model=PageResponse[PostOut])
async def posts_by_user(
    user_id: str,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    sort: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    result = await post_service.posts_by_user(
        parse_object_id(user_id), page_request(page, limit), sort
    )
    return page_response(result, PostOut)


@router.get("/{post_id}", response_model=DataResponse[PostOut])
async def get_post(
    post_id: str,
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    post_service: PostService = Depends(get_post_service)
):
    post = await post_service.get_post(
        parse_object_id(post_id),
        current_user.id if current_user else None,
    )
    return DataResponse(data=PostOut.model_validate(post))


@router.post("", response_model=DataResponse[PostOut], status_code=status.HTTP_201_CREATED)
async def create_post(
    caption: str = Form(..., min_length=3),
    location: str = Form(..., min_length=1),
    tags: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """
    Create a post

    Multipart form with 1 to 10 images; tags are comma separated.
    """
    post = await post_service.create_post(
        current_user.id,
        caption=caption.strip(),
        location=location.strip(),
        files=images or [],
        tags=tags,
    )
    return DataResponse(data=PostOut.model_validate(post))


@router.post(
    "/community/{community_id}",
    response_model=DataResponse[PostOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_community_post(
    community_id: str,
    caption: str = Form(..., min_length=3),
    location: str = Form(..., min_length=1),
    tags: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Create a post inside a community the requester belongs to"""
    post = await post_service.create_post(
        current_user.id,
        caption=caption.strip(),
        location=location.strip(),
        files=images or [],
        tags=tags,
        community_id=parse_object_id(community_id),
    )
    return DataResponse(data=PostOut.model_validate(post))


@router.patch("/{post_id}", response_model=DataResponse[PostOut])
async def update_post(
    post_id: str,
    caption: str = Form(..., min_length=3),
    location: str = Form(..., min_length=1),
    tags: Optional[str] = Form(None),
    images_to_remove: Optional[List[str]] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """
    Update own post

    images_to_remove lists public ids to drop; uploaded images are appended.
    """
    post = await post_service.update_post(
        parse_object_id(post_id),
        current_user.id,
        caption=caption.strip(),
        location=location.strip(),
        tags=tags,
        images_to_remove=images_to_remove,
        files=images,
    )
    return DataResponse(data=PostOut.model_validate(post))


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    await post_service.delete_post(parse_object_id(post_id), current_user.id)
    return MessageResponse(message="Post deleted successfully.")


@router.patch("/like/{post_id}", response_model=MessageResponse)
async def like_post(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    await post_service.like(parse_object_id(post_id), current_user.id)
    return MessageResponse(message="Post liked.")


@router.patch("/unlike/{post_id}", response_model=MessageResponse)
async def unlike_post(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    await post_service.unlike(parse_object_id(post_id), current_user.id)
    return MessageResponse(message="Post unliked.")


@router.patch("/save/{post_id}", response_model=MessageResponse)
async def save_post(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    await post_service.save(parse_object_id(post_id), current_user.id)
    return MessageResponse(message="Post saved.")


@router.patch("/unsave/{post_id}", response_model=MessageResponse)
async def unsave_post(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    await post_service.unsave(parse_object_id(post_id), current_user.id)
    return MessageResponse(message="Post unsaved.")


@router.post("/share/{post_id}", response_model=DataResponse[PostOut], status_code=status.HTTP_201_CREATED)
async def share_post(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Share someone else's post"""
    share = await post_service.share(parse_object_id(post_id), current_user.id)
    return DataResponse(data=PostOut.model_validate(share))


@router.post("/unshare/{post_id}", response_model=MessageResponse)
async def unshare_post(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """Remove the requester's share of the given original post"""
    await post_service.unshare(parse_object_id(post_id), current_user.id)
    return MessageResponse(message="Post unshared.")
