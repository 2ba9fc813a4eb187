from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from eduhub.models.content.content_model import ContentType, Difficulty

ContentSortField = Literal["created_at", "published_at", "view_count", "like_count", "title"]


class ContentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    content_type: ContentType
    subject_id: int = Field(..., gt=0)
    grade_level: int = Field(..., ge=1, le=12)
    difficulty: Difficulty = Difficulty.MEDIUM
    tags: Optional[List[str]] = None
    file_url: Optional[str] = Field(None, max_length=500)
    thumbnail_url: Optional[str] = Field(None, max_length=500)
    duration: Optional[int] = Field(None, ge=0)
    is_published: bool = False


class ContentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    content_type: Optional[ContentType] = None
    subject_id: Optional[int] = Field(None, gt=0)
    grade_level: Optional[int] = Field(None, ge=1, le=12)
    difficulty: Optional[Difficulty] = None
    tags: Optional[List[str]] = None
    file_url: Optional[str] = Field(None, max_length=500)
    thumbnail_url: Optional[str] = Field(None, max_length=500)
    duration: Optional[int] = Field(None, ge=0)
    is_published: Optional[bool] = None


class ContentRead(BaseModel):
    id: int
    uuid: str
    title: str
    description: Optional[str] = None
    content_type: ContentType
    subject_id: int
    subject_name: str
    grade_level: int
    difficulty: Difficulty
    tags: List[str] = []
    file_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[int] = None
    view_count: int
    like_count: int
    is_published: bool
    published_at: Optional[datetime] = None
    created_by: int
    creator_name: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContentFilters(BaseModel):
    subject_id: Optional[int] = None
    grade_level: Optional[int] = None
    content_type: Optional[ContentType] = None
    difficulty: Optional[Difficulty] = None
    tags: Optional[List[str]] = None
    is_published: Optional[bool] = None
    search: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(10, gt=0, le=100)
    sort_by: ContentSortField = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class ContentPage(BaseModel):
    content: List[ContentRead]
    total: int
    page: int
    limit: int
    total_pages: int


class LikeResult(BaseModel):
    liked: bool
    like_count: int


class ContentStats(BaseModel):
    total_content: int
    published_content: int
    draft_content: int
    total_views: int
    total_likes: int
    content_by_type: Dict[str, int]
    content_by_grade: Dict[int, int]
    content_by_subject: Dict[str, int]
