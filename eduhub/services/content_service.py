from __future__ import annotations

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eduhub.core.errors import ConflictError, ForbiddenError, NotFoundError, ServiceError
from eduhub.models.content.content_model import Content
from eduhub.models.content.subject_model import Subject
from eduhub.models.user.user_model import User
from eduhub.schemas.common import total_pages
from eduhub.schemas.content.content_schema import ContentCreate, ContentFilters, ContentUpdate
from eduhub.schemas.content.subject_schema import SubjectCreate, SubjectUpdate
from eduhub.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {"title", "content_type", "subject_id", "grade_level", "difficulty", "is_published"}

SORTABLE_COLUMNS = {
    "created_at": Content.created_at,
    "published_at": Content.published_at,
    "view_count": Content.view_count,
    "like_count": Content.like_count,
    "title": Content.title,
}


class ContentService:
    """Business logic for educational content and the subjects grouping it."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------
    def create_content(self, payload: ContentCreate, creator_id: int) -> Content:
        self._require_subject(payload.subject_id)

        data = payload.model_dump()
        data["tags"] = list(payload.tags or [])
        content = Content(**data, created_by=creator_id)
        if content.is_published:
            content.published_at = utcnow()

        self.db.add(content)
        self._commit("create content")
        self.db.refresh(content)
        logger.info("Content %s created by user %s", content.id, creator_id)
        return content

    def update_content(self, content_id: int, payload: ContentUpdate, user_id: int) -> Content:
        content = self._get_for_write(content_id, user_id, action="update")

        changes = payload.model_dump(exclude_unset=True)
        if changes.get("subject_id") is not None:
            self._require_subject(changes["subject_id"])

        # published_at is stamped on the first publish only.
        if changes.get("is_published") and not content.is_published and content.published_at is None:
            content.published_at = utcnow()

        for field, value in changes.items():
            if value is None and field in REQUIRED_FIELDS:
                continue
            if field == "tags":
                value = list(value or [])
            setattr(content, field, value)

        # updated_at must strictly increase even when two writes share a clock tick.
        now = utcnow()
        content.updated_at = max(now, content.updated_at + timedelta(microseconds=1))

        self._commit("update content")
        self.db.refresh(content)
        logger.info("Content %s updated by user %s", content_id, user_id)
        return content

    def delete_content(self, content_id: int, user_id: int) -> None:
        content = self._get_for_write(content_id, user_id, action="delete")
        self.db.delete(content)
        self._commit("delete content")
        logger.info("Content %s deleted by user %s", content_id, user_id)

    def get_content(self, content_id: int) -> Optional[Content]:
        return self.db.get(Content, content_id)

    def get_content_by_uuid(self, content_uuid: str) -> Optional[Content]:
        return self.db.query(Content).filter(Content.uuid == content_uuid).first()

    def get_content_list(self, filters: ContentFilters) -> dict:
        query = self.db.query(Content)

        if filters.subject_id is not None:
            query = query.filter(Content.subject_id == filters.subject_id)
        if filters.grade_level is not None:
            query = query.filter(Content.grade_level == filters.grade_level)
        if filters.content_type is not None:
            query = query.filter(Content.content_type == filters.content_type)
        if filters.difficulty is not None:
            query = query.filter(Content.difficulty == filters.difficulty)
        if filters.is_published is not None:
            query = query.filter(Content.is_published.is_(filters.is_published))
        if filters.search:
            query = query.filter(
                or_(
                    self._contains(Content.title, filters.search),
                    self._contains(func.coalesce(Content.description, ""), filters.search),
                )
            )

        rows = query.all() if filters.tags else None
        if rows is not None:
            # Tags live in a JSON column; containment is checked in Python so it
            # behaves the same on SQLite and PostgreSQL.
            wanted = set(filters.tags)
            matching_ids = [row.id for row in rows if wanted.issubset(set(row.tags or []))]
            query = self.db.query(Content).filter(Content.id.in_(matching_ids))

        total = query.order_by(None).count()

        column = SORTABLE_COLUMNS[filters.sort_by]
        ordering = column.asc() if filters.sort_order == "asc" else column.desc()
        tiebreak = Content.id.asc() if filters.sort_order == "asc" else Content.id.desc()
        content = (
            query.order_by(ordering, tiebreak)
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )

        return {
            "content": content,
            "total": total,
            "page": filters.page,
            "limit": filters.limit,
            "total_pages": total_pages(total, filters.limit),
        }

    def increment_view_count(self, content_id: int) -> None:
        self.db.execute(
            update(Content)
            .where(Content.id == content_id)
            .values(view_count=Content.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def toggle_like(self, content_id: int, user_id: int) -> dict:
        """Increment the like counter.

        There is no per-user like table, so repeated calls keep incrementing;
        ``liked`` is always True.
        """
        if self.db.get(Content, content_id) is None:
            raise NotFoundError("Content not found")

        self.db.execute(
            update(Content)
            .where(Content.id == content_id)
            .values(like_count=Content.like_count + 1)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        like_count = self.db.scalar(select(Content.like_count).where(Content.id == content_id))
        logger.debug("User %s liked content %s (%s likes)", user_id, content_id, like_count)
        return {"liked": True, "like_count": like_count}

    def get_content_stats(self) -> dict:
        total_content = self.db.scalar(select(func.count(Content.id))) or 0
        published_content = (
            self.db.scalar(select(func.count(Content.id)).where(Content.is_published.is_(True))) or 0
        )
        total_views = self.db.scalar(select(func.coalesce(func.sum(Content.view_count), 0))) or 0
        total_likes = self.db.scalar(select(func.coalesce(func.sum(Content.like_count), 0))) or 0

        by_type = self.db.execute(
            select(Content.content_type, func.count(Content.id)).group_by(Content.content_type)
        ).all()
        by_grade = self.db.execute(
            select(Content.grade_level, func.count(Content.id)).group_by(Content.grade_level)
        ).all()
        by_subject = self.db.execute(
            select(Subject.name, func.count(Content.id))
            .select_from(Subject)
            .outerjoin(Content, Content.subject_id == Subject.id)
            .group_by(Subject.id, Subject.name)
        ).all()

        return {
            "total_content": total_content,
            "published_content": published_content,
            "draft_content": total_content - published_content,
            "total_views": int(total_views),
            "total_likes": int(total_likes),
            "content_by_type": {content_type.value: count for content_type, count in by_type},
            "content_by_grade": {grade: count for grade, count in by_grade},
            "content_by_subject": {name: count for name, count in by_subject},
        }

    # ------------------------------------------------------------------
    # Subjects
    # ------------------------------------------------------------------
    def create_subject(self, payload: SubjectCreate) -> Subject:
        subject = Subject(**payload.model_dump())
        self.db.add(subject)
        self._commit("create subject")
        self.db.refresh(subject)
        return subject

    def update_subject(self, subject_id: int, payload: SubjectUpdate) -> Subject:
        subject = self._require_subject(subject_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if field == "grade_levels":
                value = list(value or [])
            setattr(subject, field, value)
        self._commit("update subject")
        self.db.refresh(subject)
        return subject

    def delete_subject(self, subject_id: int) -> None:
        subject = self._require_subject(subject_id)
        if self._count_subject_content(subject_id) > 0:
            raise ConflictError("Cannot delete subject with existing content")
        self.db.delete(subject)
        self._commit("delete subject")
        logger.info("Subject %s deleted", subject_id)

    def get_subject(self, subject_id: int) -> Optional[Subject]:
        subject = self.db.get(Subject, subject_id)
        if subject is None:
            return None
        subject.content_count = self._count_subject_content(subject_id)
        return subject

    def get_subject_list(self, grade_level: Optional[int] = None) -> List[Subject]:
        subjects = (
            self.db.query(Subject)
            .filter(Subject.is_active.is_(True))
            .order_by(Subject.name.asc(), Subject.id.asc())
            .all()
        )
        if grade_level is not None:
            subjects = [s for s in subjects if grade_level in (s.grade_levels or [])]

        counts = dict(
            self.db.execute(
                select(Content.subject_id, func.count(Content.id)).group_by(Content.subject_id)
            ).all()
        )
        for subject in subjects:
            subject.content_count = counts.get(subject.id, 0)
        return subjects

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_subject(self, subject_id: int) -> Subject:
        subject = self.db.get(Subject, subject_id)
        if subject is None:
            raise NotFoundError("Subject not found")
        return subject

    def _contains(self, column, needle: str):
        # LIKE folds ASCII case on SQLite; position functions stay case-sensitive.
        if self.db.get_bind().dialect.name == "postgresql":
            return func.strpos(column, needle) > 0
        return func.instr(column, needle) > 0

    def _count_subject_content(self, subject_id: int) -> int:
        return self.db.scalar(select(func.count(Content.id)).where(Content.subject_id == subject_id)) or 0

    def _get_for_write(self, content_id: int, user_id: int, *, action: str) -> Content:
        """Load content the acting user may modify: its creator or an admin."""
        content = self.db.get(Content, content_id)
        if content is None:
            raise NotFoundError("Content not found")

        if content.created_by != user_id:
            user = self.db.get(User, user_id)
            if user is None or not user.is_admin:
                raise ForbiddenError(f"Unauthorized to {action} this content")
        return content

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("Failed to %s: %s", action, exc.orig)
            raise ServiceError(f"Failed to {action}: integrity constraint violated") from exc
