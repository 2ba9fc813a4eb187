from datetime import datetime
from typing import List, Tuple

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.orm import Session

from eduhub.models.user.notification_model import Notification
from eduhub.schemas.user.notification_schema import NotificationCreate, NotificationFilters
from eduhub.utils.time_utils import utcnow


def create_notification(db: Session, notification: NotificationCreate) -> Notification:
    """Persist a new unread notification for ``notification.user_id``."""
    db_notification = Notification(
        user_id=notification.user_id,
        title=notification.title,
        message=notification.message,
        notification_type=notification.notification_type,
        reference_id=notification.reference_id,
        reference_type=notification.reference_type,
        is_read=False,
        sent_at=utcnow(),
        read_at=None,
    )
    db.add(db_notification)
    db.commit()
    db.refresh(db_notification)
    return db_notification


def get_user_notification(db: Session, notification_id: int, user_id: int) -> Notification | None:
    """Ownership-filtered lookup; someone else's notification looks absent."""
    return (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )


def _apply_filters(query, filters: NotificationFilters):
    if filters.user_id is not None:
        query = query.filter(Notification.user_id == filters.user_id)
    if filters.notification_type is not None:
        query = query.filter(Notification.notification_type == filters.notification_type)
    if filters.is_read is not None:
        query = query.filter(Notification.is_read.is_(filters.is_read))
    if filters.date_from is not None:
        query = query.filter(Notification.sent_at >= filters.date_from)
    if filters.date_to is not None:
        query = query.filter(Notification.sent_at <= filters.date_to)
    return query


def list_notifications(db: Session, filters: NotificationFilters) -> Tuple[List[Notification], int]:
    """Return one page of matching notifications (newest first) and the total count."""
    query = _apply_filters(db.query(Notification), filters)
    total = query.order_by(None).count()
    rows = (
        query.order_by(Notification.sent_at.desc(), Notification.id.desc())
        .offset((filters.page - 1) * filters.limit)
        .limit(filters.limit)
        .all()
    )
    return rows, total


def count_unread(db: Session, user_id: int) -> int:
    return db.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    ) or 0


def mark_as_read(db: Session, db_notification: Notification) -> Notification:
    now = utcnow()
    # Clock skew between writers must never put read_at before sent_at.
    db_notification.read_at = max(now, db_notification.sent_at)
    db_notification.is_read = True
    db.commit()
    db.refresh(db_notification)
    return db_notification


def mark_all_as_read(db: Session, user_id: int) -> int:
    now = utcnow()
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(
            is_read=True,
            read_at=case((Notification.sent_at > now, Notification.sent_at), else_=now),
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0


def delete_read_before(db: Session, cutoff: datetime) -> int:
    """Delete read notifications sent strictly before ``cutoff``."""
    result = db.execute(
        delete(Notification)
        .where(Notification.sent_at < cutoff, Notification.is_read.is_(True))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0
