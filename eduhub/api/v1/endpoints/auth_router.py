import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from eduhub.api.v1.dependencies import get_current_user, get_db
from eduhub.core import security
from eduhub.core.config import settings
from eduhub.core.errors import ConflictError
from eduhub.crud import user_crud
from eduhub.models.user.user_model import User
from eduhub.schemas.common import Envelope, envelope
from eduhub.schemas.user import user_schema

router = APIRouter()
logger = logging.getLogger(__name__)


def _issue_token(response: Response, user: User) -> dict:
    access_token = security.create_access_token(subject=user.id)
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        samesite="lax",
        secure=settings.ENVIRONMENT == "production",
        path="/",
    )
    return {"access_token": access_token, "token_type": "bearer", "user": user}


@router.post("/register", response_model=Envelope[user_schema.Token], status_code=status.HTTP_201_CREATED)
def register(
    user_in: user_schema.UserCreate,
    response: Response,
    db: Session = Depends(get_db),
):
    if user_crud.get_user_by_email(db, email=user_in.email):
        raise ConflictError("Email already registered")

    user = user_crud.create_user(db, user_in)
    logger.info("User %s registered", user.id)
    return envelope(_issue_token(response, user), message="Registration successful")


@router.post("/login", response_model=Envelope[user_schema.Token])
def login_for_access_token(
    response: Response,
    db: Session = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
):
    """OAuth2 password flow; the ``username`` field carries the e-mail address."""
    user = user_crud.authenticate(db, email=form_data.username, password=form_data.password)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    return envelope(_issue_token(response, user), message="Login successful")


@router.post("/logout")
def logout() -> JSONResponse:
    response = JSONResponse({"success": True, "data": None, "message": "Logout successful"})
    response.delete_cookie(key="access_token", path="/")
    return response


@router.get("/me", response_model=Envelope[user_schema.User])
def read_users_me(current_user: User = Depends(get_current_user)):
    return envelope(current_user)
