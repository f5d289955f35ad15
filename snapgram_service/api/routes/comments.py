"""
Comment routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from ...config import settings
from ...schemas import CommentContent, CommentOut, DataResponse, CountResponse
from ...application.comment_service import CommentService
from ...application.errors import parse_object_id
from ..dependencies import (
    CurrentUser, get_comment_service, get_current_user, get_current_user_optional,
)


router = APIRouter(prefix=f"{settings.BASE_API_URL}/comments", tags=["Comments"])


def _many(comments) -> DataResponse[List[CommentOut]]:
    return DataResponse(data=[CommentOut.model_validate(comment) for comment in comments])


def _user_id(current_user: Optional[CurrentUser]):
    return current_user.id if current_user else None


@router.get("", response_model=DataResponse[List[CommentOut]])
async def list_comments(
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    comment_service: CommentService = Depends(get_comment_service)
):
    """Every comment, newest first, except those under Private community posts"""
    return _many(await comment_service.list_comments(_user_id(current_user)))


@router.get("/post/{post_id}", response_model=DataResponse[List[CommentOut]])
async def post_comments(
    post_id: str,
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    comment_service: CommentService = Depends(get_comment_service)
):
    """Top-level comments of a post, Private community posts require membership"""
    return _many(await comment_service.post_comments(
        parse_object_id(post_id), _user_id(current_user)
    ))


@router.get("/{comment_id}", response_model=DataResponse[CommentOut])
async def get_comment(
    comment_id: str,
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    comment_service: CommentService = Depends(get_comment_service)
):
    comment = await comment_service.get_comment(
        parse_object_id(comment_id), _user_id(current_user)
    )
    return DataResponse(data=CommentOut.model_validate(comment))


@router.get("/{comment_id}/replies", response_model=DataResponse[List[CommentOut]])
async def comment_replies(
    comment_id: str,
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    comment_service: CommentService = Depends(get_comment_service)
):
    return _many(await comment_service.replies(
        parse_object_id(comment_id), _user_id(current_user)
    ))


@router.post("/{post_id}", response_model=DataResponse[CommentOut], status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: str,
    comment_data: CommentContent,
    current_user: CurrentUser = Depends(get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    """Comment on a post"""
    comment = await comment_service.create_comment(
        parse_object_id(post_id), current_user.id, comment_data.content
    )
    return DataResponse(data=CommentOut.model_validate(comment))


@router.post(
    "/reply/{comment_id}",
    response_model=DataResponse[CommentOut],
    status_code=status.HTTP_201_CREATED,
)
async def reply_to_comment(
    comment_id: str,
    comment_data: CommentContent,
    current_user: CurrentUser = Depends(get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    """Reply to a comment"""
    reply = await comment_service.reply(
        parse_object_id(comment_id), current_user.id, comment_data.content
    )
    return DataResponse(data=CommentOut.model_validate(reply))


@router.patch("/{comment_id}", response_model=DataResponse[CommentOut])
async def update_comment(
    comment_id: str,
    comment_data: CommentContent,
    current_user: CurrentUser = Depends(get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    comment = await comment_service.update_comment(
        parse_object_id(comment_id), current_user.id, comment_data.content
    )
    return DataResponse(data=CommentOut.model_validate(comment))


@router.delete("/{comment_id}", response_model=CountResponse)
async def delete_comment(
    comment_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    """Delete a comment and its replies, count is the number of removed comments"""
    deleted = await comment_service.delete_comment(parse_object_id(comment_id), current_user.id)
    return CountResponse(count=deleted)


@router.delete("/reply/{comment_id}", response_model=CountResponse)
async def delete_reply(
    comment_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    comment_service: CommentService = Depends(get_comment_service)
):
    deleted = await comment_service.delete_reply(parse_object_id(comment_id), current_user.id)
    return CountResponse(count=deleted)
