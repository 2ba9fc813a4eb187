from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from eduhub.models.user.notification_model import (
    MESSAGE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    NotificationType,
)
from eduhub.utils.time_utils import as_naive_utc


class NotificationBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)
    notification_type: NotificationType
    reference_id: Optional[int] = None
    reference_type: Optional[str] = Field(None, max_length=50)


class NotificationCreate(NotificationBase):
    user_id: int = Field(..., gt=0)


class NotificationRead(NotificationBase):
    id: int
    uuid: str
    user_id: int
    is_read: bool
    sent_at: datetime
    read_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BulkNotificationCreate(BaseModel):
    notifications: List[NotificationCreate] = Field(..., min_length=1)


class BulkFailureRead(BaseModel):
    index: int
    message: str

    class Config:
        from_attributes = True


class BulkSendRead(BaseModel):
    notifications: List[NotificationRead]
    failures: List[BulkFailureRead] = []


class NotificationFilters(BaseModel):
    user_id: Optional[int] = None
    notification_type: Optional[NotificationType] = None
    is_read: Optional[bool] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, gt=0, le=100)

    @field_validator("date_from", "date_to")
    @classmethod
    def _to_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Query strings may mix offsets; stored timestamps are naive UTC.
        return as_naive_utc(value)

    @model_validator(mode="after")
    def _check_date_range(self) -> "NotificationFilters":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must be before date_to")
        return self


class NotificationPage(BaseModel):
    notifications: List[NotificationRead]
    total: int
    page: int
    limit: int
    total_pages: int


class UnreadCount(BaseModel):
    count: int


class CleanupResult(BaseModel):
    deleted_count: int


class MarkAllReadResult(BaseModel):
    updated_count: int


class NotificationPreferenceUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    assignment_reminders: Optional[bool] = None
    grade_notifications: Optional[bool] = None
    achievement_notifications: Optional[bool] = None
    system_notifications: Optional[bool] = None


class NotificationPreferenceRead(BaseModel):
    user_id: int
    email_notifications: bool
    push_notifications: bool
    assignment_reminders: bool
    grade_notifications: bool
    achievement_notifications: bool
    system_notifications: bool

    class Config:
        from_attributes = True
