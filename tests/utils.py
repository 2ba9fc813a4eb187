"""Utility helpers for test factories."""

from __future__ import annotations

from itertools import count

from eduhub.core.security import create_access_token
from eduhub.models.content.content_model import Content, ContentType, Difficulty
from eduhub.models.content.subject_model import Subject
from eduhub.models.user.notification_model import Notification, NotificationType
from eduhub.models.user.user_model import User, UserRole
from eduhub.utils.time_utils import utcnow

_sequence = count(1)


def create_user(db, **kwargs) -> User:
    n = next(_sequence)
    defaults = {
        "email": f"user{n}@example.com",
        "first_name": "Test",
        "last_name": f"User{n}",
        "hashed_password": "x",
        "role": UserRole.STUDENT,
        "is_active": True,
    }
    defaults.update(kwargs)
    user = User(**defaults)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_subject(db, **kwargs) -> Subject:
    defaults = {
        "name": "Mathematics",
        "name_ar": "الرياضيات",
        "grade_levels": [1, 2, 3],
        "is_active": True,
    }
    defaults.update(kwargs)
    subject = Subject(**defaults)
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


def create_content(db, *, subject: Subject, creator: User, **kwargs) -> Content:
    defaults = {
        "title": "Fractions",
        "description": "Intro to fractions",
        "content_type": ContentType.LESSON,
        "subject_id": subject.id,
        "grade_level": 3,
        "difficulty": Difficulty.MEDIUM,
        "tags": [],
        "is_published": False,
        "created_by": creator.id,
    }
    defaults.update(kwargs)
    content = Content(**defaults)
    db.add(content)
    db.commit()
    db.refresh(content)
    return content


def create_notification(db, *, user: User, **kwargs) -> Notification:
    defaults = {
        "user_id": user.id,
        "title": "Reminder",
        "message": "Homework is due tomorrow",
        "notification_type": NotificationType.REMINDER,
        "is_read": False,
        "sent_at": utcnow(),
    }
    defaults.update(kwargs)
    notification = Notification(**defaults)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject=user.id)}"}
