from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from eduhub.api.v1.dependencies import get_current_user, get_db, require_roles
from eduhub.core.errors import NotFoundError
from eduhub.models.user.user_model import User, UserRole
from eduhub.schemas.common import Envelope, envelope
from eduhub.schemas.content import subject_schema
from eduhub.services.content_service import ContentService

router = APIRouter()


@router.get("", response_model=Envelope[List[subject_schema.SubjectRead]])
def list_subjects(
    grade_level: Optional[int] = Query(default=None, alias="gradeLevel"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return envelope(ContentService(db).get_subject_list(grade_level))


@router.get("/{subject_id}", response_model=Envelope[subject_schema.SubjectRead])
def read_subject(
    subject_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    subject = ContentService(db).get_subject(subject_id)
    if subject is None:
        raise NotFoundError("Subject not found")
    return envelope(subject)


@router.post("", response_model=Envelope[subject_schema.SubjectRead], status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: subject_schema.SubjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    return envelope(ContentService(db).create_subject(payload), message="Subject created successfully")


@router.put("/{subject_id}", response_model=Envelope[subject_schema.SubjectRead])
def update_subject(
    subject_id: int,
    payload: subject_schema.SubjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    subject = ContentService(db).update_subject(subject_id, payload)
    return envelope(subject, message="Subject updated successfully")


@router.delete("/{subject_id}", response_model=Envelope[None])
def delete_subject(
    subject_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    ContentService(db).delete_subject(subject_id)
    return envelope(message="Subject deleted successfully")
