from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SubjectBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    name_ar: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=20)


class SubjectCreate(SubjectBase):
    grade_levels: List[int] = Field(default_factory=list)


class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    name_ar: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=20)
    grade_levels: Optional[List[int]] = None
    is_active: Optional[bool] = None


class SubjectRead(SubjectBase):
    id: int
    grade_levels: List[int] = []
    is_active: bool
    created_at: datetime
    content_count: Optional[int] = None

    class Config:
        from_attributes = True
