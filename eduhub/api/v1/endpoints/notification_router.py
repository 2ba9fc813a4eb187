from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from eduhub.api.v1.dependencies import get_current_user, get_db, require_roles
from eduhub.core.config import settings
from eduhub.core.errors import ValidationError
from eduhub.models.user.notification_model import NotificationType
from eduhub.models.user.user_model import User, UserRole
from eduhub.schemas.common import Envelope, envelope
from eduhub.schemas.user import notification_schema
from eduhub.services.notification_service import NotificationService

router = APIRouter()


def build_filters(user_id: int, **params) -> notification_schema.NotificationFilters:
    """Turn query parameters into filters, reporting bad combinations as 400s."""
    try:
        return notification_schema.NotificationFilters(user_id=user_id, **params)
    except PydanticValidationError as exc:
        raise ValidationError(exc.errors()[0].get("msg", "Invalid filters")) from exc


@router.get("", response_model=Envelope[notification_schema.NotificationPage])
def read_notifications(
    notification_type: Optional[NotificationType] = Query(default=None, alias="type"),
    is_read: Optional[bool] = Query(default=None, alias="isRead"),
    date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.NOTIFICATION_PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the caller's notifications, newest first."""
    filters = build_filters(
        current_user.id,
        notification_type=notification_type,
        is_read=is_read,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return envelope(NotificationService(db).get_user_notifications(filters))


@router.get("/unread-count", response_model=Envelope[notification_schema.UnreadCount])
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return envelope({"count": NotificationService(db).get_unread_count(current_user.id)})


@router.put("/read-all", response_model=Envelope[notification_schema.MarkAllReadResult])
def mark_all_notifications_as_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    updated = NotificationService(db).mark_all_as_read(current_user.id)
    return envelope({"updated_count": updated}, message="All notifications marked as read")


@router.put("/{notification_id}/read", response_model=Envelope[notification_schema.NotificationRead])
def mark_notification_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notification = NotificationService(db).mark_as_read(notification_id, current_user.id)
    return envelope(notification, message="Notification marked as read")


@router.post(
    "",
    response_model=Envelope[notification_schema.NotificationRead],
    status_code=status.HTTP_201_CREATED,
)
def send_notification(
    payload: notification_schema.NotificationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.TEACHER, UserRole.ADMIN)),
):
    notification = NotificationService(db).send_notification(payload)
    return envelope(notification, message="Notification sent successfully")


@router.post(
    "/bulk",
    response_model=Envelope[notification_schema.BulkSendRead],
    status_code=status.HTTP_201_CREATED,
)
def send_bulk_notifications(
    payload: notification_schema.BulkNotificationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    result = NotificationService(db).send_bulk_notifications(payload.notifications)
    return envelope(
        {"notifications": result.notifications, "failures": result.failures},
        message=f"{len(result.notifications)} notifications sent, {len(result.failures)} failed",
    )


@router.get("/preferences", response_model=Envelope[notification_schema.NotificationPreferenceRead])
def read_preferences(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return envelope(NotificationService(db).get_notification_preferences(current_user.id))


@router.put("/preferences", response_model=Envelope[notification_schema.NotificationPreferenceRead])
def update_preferences(
    payload: notification_schema.NotificationPreferenceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    preferences = NotificationService(db).update_notification_preferences(
        current_user.id, payload.model_dump(exclude_none=True)
    )
    return envelope(preferences, message="Preferences updated")


@router.delete("/cleanup", response_model=Envelope[notification_schema.CleanupResult])
def cleanup_notifications(
    days_old: int = Query(default=settings.NOTIFICATION_RETENTION_DAYS, alias="daysOld"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    deleted = NotificationService(db).cleanup_old_notifications(days_old)
    return envelope({"deleted_count": deleted}, message=f"Deleted {deleted} old notifications")
