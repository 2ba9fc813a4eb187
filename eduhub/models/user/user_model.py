import enum
import uuid
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eduhub.db.base_class import Base
from eduhub.utils.time_utils import utcnow

if TYPE_CHECKING:
    from .notification_model import Notification
    from .notification_preference_model import NotificationPreference
    from ..content.content_model import Content


class UserRole(str, enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"
    PARENT = "parent"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    uuid: Mapped[str] = mapped_column(
        String(36), unique=True, index=True, nullable=False, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="userrole", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=UserRole.STUDENT,
        server_default=UserRole.STUDENT.value,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    notifications: Mapped[List["Notification"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    notification_preference: Mapped[Optional["NotificationPreference"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", uselist=False
    )
    created_contents: Mapped[List["Content"]] = relationship(back_populates="creator")

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"


# Register the related mappers so ``User`` can be configured on its own.
from eduhub.models.user.notification_model import Notification  # noqa: E402,F811
from eduhub.models.user.notification_preference_model import NotificationPreference  # noqa: E402,F811
from eduhub.models.content.content_model import Content  # noqa: E402,F811
from eduhub.models.content.subject_model import Subject  # noqa: E402,F401
