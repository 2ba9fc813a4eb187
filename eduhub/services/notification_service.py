from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eduhub.core.errors import NotFoundError, ServiceError, ValidationError
from eduhub.crud import notification_crud, notification_preference_crud
from eduhub.models.user.notification_model import Notification, NotificationType
from eduhub.models.user.notification_preference_model import NotificationPreference
from eduhub.models.user.user_model import User
from eduhub.notifications.channels import EMAIL, IN_APP, PUSH, DeliveryResult, EmailSender, PushSender
from eduhub.schemas.common import total_pages
from eduhub.schemas.user.notification_schema import NotificationCreate, NotificationFilters
from eduhub.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

# Kind -> preference toggle gating the e-mail channel. Reminders are always allowed.
EMAIL_TOGGLE_BY_TYPE = {
    NotificationType.ASSIGNMENT: "assignment_reminders",
    NotificationType.GRADE: "grade_notifications",
    NotificationType.ACHIEVEMENT: "achievement_notifications",
    NotificationType.SYSTEM: "system_notifications",
}


@dataclass(slots=True)
class BulkFailure:
    index: int
    message: str


@dataclass
class BulkSendResult:
    notifications: List[Notification] = field(default_factory=list)
    failures: List[BulkFailure] = field(default_factory=list)


class NotificationService:
    """Creates, lists and cleans up notifications and picks delivery channels."""

    def __init__(
        self,
        db: Session,
        email_sender: EmailSender | None = None,
        push_sender: PushSender | None = None,
    ):
        self.db = db
        self.email_sender = email_sender or EmailSender()
        self.push_sender = push_sender or PushSender()

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------
    def send_notification(self, payload: NotificationCreate) -> Notification:
        """Persist the notification, then attempt every enabled channel.

        Only the insert can fail the call; channel failures are logged and
        kept out of the return value.
        """
        if self.db.get(User, payload.user_id) is None:
            raise NotFoundError(f"User {payload.user_id} not found")

        try:
            notification = notification_crud.create_notification(self.db, payload)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Notification insert failed for user %s: %s", payload.user_id, exc)
            raise ServiceError(f"Failed to send notification: {exc}") from exc

        results = self.deliver(notification)
        logger.info(
            "Notification %s sent to user %s via %s",
            notification.id,
            notification.user_id,
            ", ".join(r.channel for r in results if r.success),
        )
        return notification

    def deliver(self, notification: Notification) -> List[DeliveryResult]:
        """Run channel selection for an already persisted notification."""
        preferences = self.get_notification_preferences(notification.user_id)

        # The row exists, so in-app delivery has already happened.
        results = [DeliveryResult(channel=IN_APP, success=True)]

        if preferences.email_notifications and self.should_send_email(notification.notification_type, preferences):
            results.append(self._attempt(EMAIL, self.email_sender.send, notification))

        if preferences.push_notifications:
            results.append(self._attempt(PUSH, self.push_sender.send, notification))

        return results

    @staticmethod
    def should_send_email(notification_type: NotificationType, preferences: NotificationPreference) -> bool:
        toggle = EMAIL_TOGGLE_BY_TYPE.get(notification_type)
        if toggle is None:
            return True
        return bool(getattr(preferences, toggle))

    def _attempt(self, channel: str, sender, notification: Notification) -> DeliveryResult:
        try:
            sender(notification)
        except Exception as exc:
            logger.warning("Channel %s failed for notification %s: %s", channel, notification.id, exc)
            return DeliveryResult(channel=channel, success=False, error=str(exc))
        return DeliveryResult(channel=channel, success=True)

    def send_bulk_notifications(self, payloads: Sequence[NotificationCreate]) -> BulkSendResult:
        """Send every payload independently; one failure never stops the rest.

        There is no batch transaction: each element commits on its own, and
        ``failures`` reports the input positions that were not persisted.
        """
        result = BulkSendResult()
        for index, payload in enumerate(payloads):
            try:
                result.notifications.append(self.send_notification(payload))
            except ServiceError as exc:
                logger.warning("Bulk notification %s rejected: %s", index, exc)
                result.failures.append(BulkFailure(index=index, message=str(exc)))

        logger.info(
            "Bulk send finished: %s sent, %s failed",
            len(result.notifications),
            len(result.failures),
        )
        return result

    # ------------------------------------------------------------------
    # Read state
    # ------------------------------------------------------------------
    def mark_as_read(self, notification_id: int, user_id: int) -> Notification:
        notification = notification_crud.get_user_notification(self.db, notification_id, user_id)
        if notification is None:
            raise NotFoundError("Notification not found or access denied")
        return notification_crud.mark_as_read(self.db, notification)

    def mark_all_as_read(self, user_id: int) -> int:
        return notification_crud.mark_all_as_read(self.db, user_id)

    def get_unread_count(self, user_id: int) -> int:
        return notification_crud.count_unread(self.db, user_id)

    def get_user_notifications(self, filters: NotificationFilters) -> dict:
        notifications, total = notification_crud.list_notifications(self.db, filters)
        return {
            "notifications": notifications,
            "total": total,
            "page": filters.page,
            "limit": filters.limit,
            "total_pages": total_pages(total, filters.limit),
        }

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------
    def cleanup_old_notifications(self, days_old: int = 30) -> int:
        """Delete read notifications older than ``days_old`` days; unread ones stay."""
        if days_old < 1:
            raise ValidationError("Invalid daysOld parameter")

        cutoff = utcnow() - timedelta(days=days_old)
        deleted = notification_crud.delete_read_before(self.db, cutoff)
        logger.info("Cleaned up %s read notifications older than %s days", deleted, days_old)
        return deleted

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------
    def get_notification_preferences(self, user_id: int) -> NotificationPreference:
        preference = notification_preference_crud.get_preferences(self.db, user_id)
        return preference or NotificationPreference.defaults_for(user_id)

    def update_notification_preferences(self, user_id: int, preferences: Mapping[str, bool]) -> NotificationPreference:
        if self.db.get(User, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")
        return notification_preference_crud.upsert_preferences(self.db, user_id, preferences)
