import enum
import uuid
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eduhub.db.base_class import Base
from eduhub.utils.time_utils import utcnow

if TYPE_CHECKING:
    from .subject_model import Subject
    from ..user.user_model import User


class ContentType(str, enum.Enum):
    LESSON = "lesson"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    QUIZ = "quiz"
    INTERACTIVE = "interactive"
    WORKSHEET = "worksheet"


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Content(Base):
    __tablename__ = "contents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    uuid: Mapped[str] = mapped_column(
        String(36), unique=True, index=True, nullable=False, default=lambda: str(uuid.uuid4())
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_type: Mapped[ContentType] = mapped_column(
        Enum(ContentType, name="contenttype", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id"), index=True, nullable=False)
    grade_level: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    difficulty: Mapped[Difficulty] = mapped_column(
        Enum(Difficulty, name="difficulty", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=Difficulty.MEDIUM,
    )
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    file_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # seconds

    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    subject: Mapped["Subject"] = relationship(back_populates="contents", lazy="joined")
    creator: Mapped["User"] = relationship(back_populates="created_contents", lazy="joined")

    @property
    def subject_name(self) -> str:
        return self.subject.name if self.subject else ""

    @property
    def creator_name(self) -> str:
        return self.creator.display_name if self.creator else ""

    def __repr__(self):
        return f"<Content(id={self.id}, title='{self.title}')>"
