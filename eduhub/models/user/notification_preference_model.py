from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eduhub.db.base_class import Base
from eduhub.utils.time_utils import utcnow

if TYPE_CHECKING:
    from .user_model import User


PREFERENCE_FIELDS = (
    "email_notifications",
    "push_notifications",
    "assignment_reminders",
    "grade_notifications",
    "achievement_notifications",
    "system_notifications",
)


class NotificationPreference(Base):
    """Delivery toggles of a user; absent rows mean every channel is enabled."""

    __tablename__ = "notification_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True, nullable=False
    )

    email_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    push_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    assignment_reminders: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    grade_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    achievement_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    system_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user: Mapped["User"] = relationship(back_populates="notification_preference")

    @classmethod
    def defaults_for(cls, user_id: int) -> "NotificationPreference":
        """Transient all-enabled preferences for users who never saved any."""
        return cls(user_id=user_id, **{field: True for field in PREFERENCE_FIELDS})
