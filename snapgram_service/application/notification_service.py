"""
Notification service - stores notifications and relays them to the real-time channel
"""
from typing import Optional
import logging

from bson import ObjectId

from ..domain.models import Notification, NotificationType
from ..domain.repositories import INotificationRepository
from ..infrastructure.events import KafkaProducerManager
from .errors import NotFoundError, ForbiddenError
from .queries import PageRequest, Page, build_page

logger = logging.getLogger(__name__)


def notification_to_event(notification: Notification) -> dict:
    """Payload relayed to the user's open sockets"""
    return {
        "id": str(notification.id),
        "user_id": str(notification.user_id),
        "sender_id": str(notification.sender_id),
        "type": notification.type.value,
        "content": notification.content,
        "post_id": str(notification.post_id) if notification.post_id else None,
        "is_read": notification.is_read,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


class NotificationService:
    """Notification service - create, list and acknowledge notifications"""

    def __init__(
        self,
        notification_repository: INotificationRepository,
        producer: KafkaProducerManager,
    ):
        self.notification_repo = notification_repository
        self.producer = producer

    async def notify(
        self,
        user_id: ObjectId,
        sender_id: ObjectId,
        notification_type: NotificationType,
        content: str,
        post_id: Optional[ObjectId] = None,
    ) -> Optional[Notification]:
        """
        Store a notification for user_id and publish it

        Nothing is created when a user acts on their own content.
        """
        if user_id == sender_id:
            return None

        notification = await self.notification_repo.create({
            "user_id": user_id,
            "sender_id": sender_id,
            "type": notification_type.value,
            "content": content,
            "is_read": False,
            "post_id": post_id,
        })

        # Best effort, a failed publish is logged by the producer
        await self.producer.publish_notification(notification_to_event(notification))
        return notification

    async def list_notifications(
        self,
        user_id: ObjectId,
        request: PageRequest,
        unread_only: bool = False,
    ) -> Page:
        """List the user's notifications, newest first"""
        filters = {"user_id": user_id}
        if unread_only:
            filters["is_read"] = False

        items, total = await self.notification_repo.find_page(
            filters, request.skip, request.limit
        )
        return build_page(items, total, request)

    async def mark_read(self, notification_id: ObjectId, user_id: ObjectId) -> Notification:
        """Mark one notification as read, only its recipient may do so"""
        notification = await self.notification_repo.find_by_id(notification_id)
        if not notification:
            raise NotFoundError("Notification not found.")
        if not notification.is_recipient(user_id):
            raise ForbiddenError("Unauthorized.")

        if notification.is_read:
            return notification
        return await self.notification_repo.update(notification_id, {"is_read": True})

    async def mark_all_read(self, user_id: ObjectId) -> int:
        """Mark every unread notification of the user as read"""
        updated = await self.notification_repo.mark_all_read(user_id)
        logger.debug(f"Marked {updated} notifications read for user {user_id}")
        return updated
