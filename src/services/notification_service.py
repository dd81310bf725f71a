"""Notification service: list, unread badge, mark read, delete."""

import logging
from typing import Optional

from src.adapters.http_client import TypedHTTPClient
from src.core.exceptions import APIError
from src.core.types import (
    EmptyRequest,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationItem,
    NotificationsResponse,
    UnreadCountResponse,
)
from src.services.post_service import path_segment

logger = logging.getLogger("oeeecafe")


class NotificationService:

    def __init__(self, client: TypedHTTPClient, notifications_limit: int = 50):
        self._client = client
        self.notifications_limit = notifications_limit

    def fetch_notifications(self, offset: int = 0, limit: Optional[int] = None) -> NotificationsResponse:
        return self._client.get(
            "/notifications", NotificationsResponse,
            params={"limit": self.notifications_limit if limit is None else limit, "offset": offset},
        )

    def get_unread_count(self) -> int:
        response = self._client.get("/notifications/unread-count", UnreadCountResponse)
        return response.count

    def refresh_unread_count(self) -> Optional[int]:
        """Badge refresh. Returns None instead of raising; the badge simply keeps its old value."""
        try:
            return self.get_unread_count()
        except APIError as e:
            logger.debug(f"Unread count refresh failed: {e.message}")
            return None

    def mark_as_read(self, notification_id: str) -> NotificationItem:
        response = self._client.post(
            f"/notifications/{path_segment(notification_id)}/mark-read",
            MarkReadResponse, body=EmptyRequest(),
        )
        return response.notification

    def mark_all_as_read(self) -> int:
        response = self._client.post("/notifications/mark-all-read", MarkAllReadResponse, body=EmptyRequest())
        logger.info(f"Marked {response.count} notifications as read")
        return response.count

    def delete_notification(self, notification_id: str) -> None:
        # 204 No Content on success
        self._client.delete(f"/notifications/{path_segment(notification_id)}")
