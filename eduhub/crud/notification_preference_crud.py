from typing import Mapping

from sqlalchemy.orm import Session

from eduhub.models.user.notification_preference_model import PREFERENCE_FIELDS, NotificationPreference


def get_preferences(db: Session, user_id: int) -> NotificationPreference | None:
    return db.query(NotificationPreference).filter(NotificationPreference.user_id == user_id).first()


def upsert_preferences(db: Session, user_id: int, values: Mapping[str, bool]) -> NotificationPreference:
    """Apply the provided toggles, creating the row with defaults if needed."""
    preference = get_preferences(db, user_id)
    if preference is None:
        preference = NotificationPreference.defaults_for(user_id)
        db.add(preference)

    for field, value in values.items():
        if field in PREFERENCE_FIELDS and value is not None:
            setattr(preference, field, bool(value))

    db.commit()
    db.refresh(preference)
    return preference
