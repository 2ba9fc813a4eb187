from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from eduhub.api.v1.dependencies import get_current_user, get_db, require_roles
from eduhub.core.config import settings
from eduhub.core.errors import NotFoundError
from eduhub.models.content.content_model import ContentType, Difficulty
from eduhub.models.user.user_model import User, UserRole
from eduhub.schemas.common import Envelope, envelope
from eduhub.schemas.content import content_schema
from eduhub.services.content_service import ContentService

router = APIRouter()


def parse_tags(raw: Optional[str]) -> Optional[List[str]]:
    """``"a, b,,c"`` -> ``["a", "b", "c"]``; blank input means no tag filter."""
    if raw is None:
        return None
    tags = [tag.strip() for tag in raw.split(",") if tag.strip()]
    return tags or None


@router.post(
    "/content",
    response_model=Envelope[content_schema.ContentRead],
    status_code=status.HTTP_201_CREATED,
)
def create_content(
    payload: content_schema.ContentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.TEACHER, UserRole.ADMIN)),
):
    content = ContentService(db).create_content(payload, current_user.id)
    return envelope(content, message="Content created successfully")


@router.get("/content", response_model=Envelope[content_schema.ContentPage])
def list_content(
    subject_id: Optional[int] = Query(default=None, alias="subjectId"),
    grade_level: Optional[int] = Query(default=None, alias="gradeLevel"),
    content_type: Optional[ContentType] = Query(default=None, alias="contentType"),
    difficulty: Optional[Difficulty] = Query(default=None),
    tags: Optional[str] = Query(default=None, description="Comma-separated tags, all required"),
    is_published: Optional[bool] = Query(default=None, alias="isPublished"),
    search: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.CONTENT_PAGE_SIZE, ge=1, le=100),
    sort_by: content_schema.ContentSortField = Query(default="created_at", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    filters = content_schema.ContentFilters(
        subject_id=subject_id,
        grade_level=grade_level,
        content_type=content_type,
        difficulty=difficulty,
        tags=parse_tags(tags),
        is_published=is_published,
        search=search or None,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return envelope(ContentService(db).get_content_list(filters))


@router.get("/content/uuid/{content_uuid}", response_model=Envelope[content_schema.ContentRead])
def read_content_by_uuid(
    content_uuid: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    service = ContentService(db)
    content = service.get_content_by_uuid(content_uuid)
    if content is None:
        raise NotFoundError("Content not found")
    service.increment_view_count(content.id)
    return envelope(content)


@router.get("/content/{content_id}", response_model=Envelope[content_schema.ContentRead])
def read_content(
    content_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Fetch one item; every successful read counts as a view."""
    service = ContentService(db)
    content = service.get_content(content_id)
    if content is None:
        raise NotFoundError("Content not found")
    service.increment_view_count(content_id)
    return envelope(content)


@router.put("/content/{content_id}", response_model=Envelope[content_schema.ContentRead])
def update_content(
    content_id: int,
    payload: content_schema.ContentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.TEACHER, UserRole.ADMIN)),
):
    content = ContentService(db).update_content(content_id, payload, current_user.id)
    return envelope(content, message="Content updated successfully")


@router.delete("/content/{content_id}", response_model=Envelope[None])
def delete_content(
    content_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.TEACHER, UserRole.ADMIN)),
):
    ContentService(db).delete_content(content_id, current_user.id)
    return envelope(message="Content deleted successfully")


@router.post("/content/{content_id}/like", response_model=Envelope[content_schema.LikeResult])
def like_content(
    content_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return envelope(ContentService(db).toggle_like(content_id, current_user.id))


@router.get("/content-stats", response_model=Envelope[content_schema.ContentStats])
def read_content_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    return envelope(ContentService(db).get_content_stats())
