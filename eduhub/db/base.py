"""Imports every model so ``Base.metadata`` knows the full schema."""

from eduhub.db.base_class import Base

# Users & notifications
from eduhub.models.user.user_model import User
from eduhub.models.user.notification_model import Notification
from eduhub.models.user.notification_preference_model import NotificationPreference

# Educational content
from eduhub.models.content.subject_model import Subject
from eduhub.models.content.content_model import Content

__all__ = (
    "Base",
    "User",
    "Notification",
    "NotificationPreference",
    "Subject",
    "Content",
)
