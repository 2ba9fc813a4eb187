"""Delivery channels attempted after a notification is persisted."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from eduhub.models.user.notification_model import Notification
from eduhub.notifications.websocket_manager import NotificationWebSocketManager, notification_ws_manager

logger = logging.getLogger(__name__)

IN_APP = "in_app"
EMAIL = "email"
PUSH = "push"


@dataclass(slots=True)
class DeliveryResult:
    channel: str
    success: bool
    error: Optional[str] = None


def build_payload(notification: Notification) -> dict:
    return {
        "type": "notification",
        "id": notification.id,
        "uuid": notification.uuid,
        "title": notification.title,
        "message": notification.message,
        "notification_type": notification.notification_type,
        "reference_id": notification.reference_id,
        "reference_type": notification.reference_type,
        "sent_at": notification.sent_at,
    }


class EmailSender:
    """Renders the notification e-mail; no provider is wired, so it is logged."""

    def render(self, notification: Notification) -> tuple[str, str]:
        subject = f"[EduHub] {notification.title}"
        body = f"{notification.message}\n"
        if notification.reference_type and notification.reference_id is not None:
            body += f"\nRelated {notification.reference_type}: #{notification.reference_id}\n"
        return subject, body

    def send(self, notification: Notification) -> None:
        recipient = notification.user.email if notification.user else None
        if not recipient:
            raise RuntimeError(f"User {notification.user_id} has no e-mail address")
        subject, body = self.render(notification)
        logger.info(
            "Sending email notification to user %s <%s>: %s (%s chars)",
            notification.user_id,
            recipient,
            subject,
            len(body),
        )


class PushSender:
    """Pushes the notification to the user's open WebSockets."""

    def __init__(self, manager: NotificationWebSocketManager | None = None) -> None:
        self.manager = manager or notification_ws_manager

    def send(self, notification: Notification) -> None:
        delivered = self.manager.notify(notification.user_id, build_payload(notification))
        logger.info(
            "Sending push notification to user %s: %s (sockets=%s)",
            notification.user_id,
            notification.title,
            delivered,
        )
