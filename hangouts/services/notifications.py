"""Reading and housekeeping of a user's notifications."""

from __future__ import annotations

import logging

from hangouts.domain.errors import NotFoundError, PermissionDeniedError
from hangouts.domain.models import Notification, NotificationType
from hangouts.repos.memory import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, notification_repo: NotificationRepository, list_limit: int = 50) -> None:
        self.notification_repo = notification_repo
        self.list_limit = list_limit

    def list_notifications(
        self, user_id: str, notification_type: NotificationType | None = None
    ) -> list[Notification]:
        """Newest first, capped at ``list_limit``."""
        return self.notification_repo.list_for_user(
            user_id, notification_type, limit=self.list_limit
        )

    def unread_count(self, user_id: str) -> int:
        return sum(1 for n in self.notification_repo.list_for_user(user_id) if not n.read)

    def mark_as_read(self, user_id: str, notification_id: str) -> Notification:
        notification = self._owned(user_id, notification_id)
        self.notification_repo.mark_read(notification_id)
        return notification

    def mark_all_as_read(self, user_id: str) -> int:
        count = self.notification_repo.mark_all_read(user_id)
        logger.info("Marked %d notification(s) read for %s", count, user_id)
        return count

    def delete_notification(self, user_id: str, notification_id: str) -> None:
        """Delete one notification. For a hangout match this removes only this user's side."""
        self._owned(user_id, notification_id)
        self.notification_repo.delete(notification_id)

    def clear_all_notifications(self, user_id: str) -> int:
        count = self.notification_repo.clear_for_user(user_id)
        logger.info("Cleared %d notification(s) for %s", count, user_id)
        return count

    def _owned(self, user_id: str, notification_id: str) -> Notification:
        notification = self.notification_repo.get(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.user_id != user_id:
            raise PermissionDeniedError("Notification belongs to another user")
        return notification
