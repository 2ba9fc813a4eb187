from sqlalchemy.orm import Session

from eduhub.core.security import get_password_hash, verify_password
from eduhub.models.user.user_model import User, UserRole
from eduhub.schemas.user.user_schema import UserCreate


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.lower()).first()


def create_user(db: Session, user: UserCreate, role: UserRole = UserRole.STUDENT) -> User:
    db_user = User(
        email=user.email.lower(),
        first_name=user.first_name.strip(),
        last_name=user.last_name.strip(),
        hashed_password=get_password_hash(user.password),
        role=role,
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user
