"""
Notification routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...config import settings
from ...schemas import NotificationOut, DataResponse, PageResponse, CountResponse, page_response
from ...application.errors import parse_object_id
from ...application.notification_service import NotificationService
from ...application.queries import page_request
from ..dependencies import CurrentUser, get_notification_service, get_current_user


router = APIRouter(prefix=f"{settings.BASE_API_URL}/notifications", tags=["Notifications"])


@router.get("", response_model=PageResponse[NotificationOut])
async def list_notifications(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    unread: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
):
    """Own notifications, newest first"""
    result = await notification_service.list_notifications(
        current_user.id, page_request(page, limit), unread_only=unread
    )
    return page_response(result, NotificationOut)


@router.patch("/read-all", response_model=CountResponse)
async def mark_all_read(
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
):
    updated = await notification_service.mark_all_read(current_user.id)
    return CountResponse(count=updated)


@router.patch("/{notification_id}/read", response_model=DataResponse[NotificationOut])
async def mark_read(
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
):
    notification = await notification_service.mark_read(
        parse_object_id(notification_id), current_user.id
    )
    return DataResponse(data=NotificationOut.model_validate(notification))
