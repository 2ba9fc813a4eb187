from datetime import datetime, timedelta, timezone

import pytest

from eduhub.api.v1.endpoints.notification_router import (
    build_filters,
    get_unread_count,
    mark_all_notifications_as_read,
    mark_notification_as_read,
    read_notifications,
    read_preferences,
    update_preferences,
)
from eduhub.core.errors import NotFoundError, ValidationError
from eduhub.models.user.notification_model import Notification, NotificationType
from eduhub.models.user.user_model import UserRole
from eduhub.schemas.user.notification_schema import NotificationPreferenceUpdate
from eduhub.utils.time_utils import utcnow
from tests.utils import auth_headers, create_notification, create_user


@pytest.fixture()
def user(db_session):
    return create_user(db_session, email="student@example.com")


def _list(db, user, **params):
    defaults = {
        "notification_type": None,
        "is_read": None,
        "date_from": None,
        "date_to": None,
        "page": 1,
        "limit": 20,
    }
    defaults.update(params)
    return read_notifications(**defaults, db=db, current_user=user)


def test_list_is_scoped_to_caller(db_session, user):
    other = create_user(db_session)
    create_notification(db_session, user=user, title="mine")
    create_notification(db_session, user=other, title="theirs")

    result = _list(db_session, user)

    assert result["success"] is True
    assert result["data"]["total"] == 1
    assert [n.title for n in result["data"]["notifications"]] == ["mine"]


def test_list_filters_by_type_and_read_state(db_session, user):
    create_notification(db_session, user=user, notification_type=NotificationType.GRADE)
    create_notification(db_session, user=user, notification_type=NotificationType.GRADE, is_read=True)
    create_notification(db_session, user=user, notification_type=NotificationType.SYSTEM)

    result = _list(db_session, user, notification_type=NotificationType.GRADE, is_read=False)

    assert result["data"]["total"] == 1
    assert result["data"]["notifications"][0].notification_type == NotificationType.GRADE


def test_build_filters_rejects_inverted_dates():
    now = utcnow()
    with pytest.raises(ValidationError):
        build_filters(1, date_from=now, date_to=now - timedelta(hours=1))


def test_unread_count_and_mark_all(db_session, user):
    create_notification(db_session, user=user)
    create_notification(db_session, user=user)

    assert get_unread_count(db=db_session, current_user=user)["data"] == {"count": 2}

    result = mark_all_notifications_as_read(db=db_session, current_user=user)
    assert result["data"] == {"updated_count": 2}
    assert get_unread_count(db=db_session, current_user=user)["data"] == {"count": 0}


def test_mark_as_read_hides_other_users_notifications(db_session, user):
    other = create_user(db_session)
    notification = create_notification(db_session, user=other)

    with pytest.raises(NotFoundError):
        mark_notification_as_read(notification.id, db=db_session, current_user=user)

    mine = create_notification(db_session, user=user)
    result = mark_notification_as_read(mine.id, db=db_session, current_user=user)
    assert result["data"].is_read is True
    assert result["message"] == "Notification marked as read"


def test_preferences_endpoints(db_session, user):
    assert read_preferences(db=db_session, current_user=user)["data"].push_notifications is True

    result = update_preferences(
        NotificationPreferenceUpdate(push_notifications=False),
        db=db_session,
        current_user=user,
    )
    assert result["data"].push_notifications is False
    assert result["data"].email_notifications is True


# --- HTTP surface ---


def test_requests_without_token_are_rejected(client):
    response = client.get("/api/v1/notifications")

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "unauthorized"


def test_list_over_http_uses_envelope_and_camel_case_params(client, db_session, user):
    create_notification(db_session, user=user, title="unread")
    create_notification(db_session, user=user, title="read", is_read=True)

    response = client.get("/api/v1/notifications?isRead=false&page=1&limit=5", headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["total"] == 1
    assert body["data"]["total_pages"] == 1
    assert body["data"]["notifications"][0]["title"] == "unread"


def test_inverted_date_range_is_a_bad_request(client, user):
    response = client.get(
        "/api/v1/notifications",
        params={"dateFrom": "2024-02-01T00:00:00", "dateTo": "2024-01-01T00:00:00"},
        headers=auth_headers(user),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_date_range_accepts_mixed_offsets(client, db_session, user):
    create_notification(db_session, user=user, title="in range")

    response = client.get(
        "/api/v1/notifications",
        params={"dateFrom": "2024-01-01T00:00:00Z", "dateTo": "2100-01-01T00:00:00"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    assert [n["title"] for n in response.json()["data"]["notifications"]] == ["in range"]

    inverted = client.get(
        "/api/v1/notifications",
        params={"dateFrom": "2024-01-01T02:00:00+03:00", "dateTo": "2023-12-31T22:00:00"},
        headers=auth_headers(user),
    )
    assert inverted.status_code == 400


def test_build_filters_normalises_aware_dates_to_utc():
    filters = build_filters(
        1,
        date_from=datetime(2024, 1, 1, 3, 0, tzinfo=timezone(timedelta(hours=3))),
        date_to=datetime(2024, 1, 1, 0, 30),
    )

    assert filters.date_from == datetime(2024, 1, 1, 0, 0)
    assert filters.date_from.tzinfo is None


def test_foreign_notification_returns_404_envelope(client, db_session, user):
    other = create_user(db_session)
    notification = create_notification(db_session, user=other)

    response = client.put(f"/api/v1/notifications/{notification.id}/read", headers=auth_headers(user))

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "message": "Notification not found or access denied",
        "code": "not_found",
    }


def test_only_teachers_and_admins_can_send(client, db_session, user):
    teacher = create_user(db_session, role=UserRole.TEACHER)
    payload = {"user_id": user.id, "title": "X", "message": "Y", "notification_type": "system"}

    forbidden = client.post("/api/v1/notifications", json=payload, headers=auth_headers(user))
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "forbidden"

    created = client.post("/api/v1/notifications", json=payload, headers=auth_headers(teacher))
    assert created.status_code == 201
    body = created.json()
    assert body["data"]["title"] == "X"
    assert body["data"]["is_read"] is False
    assert body["data"]["read_at"] is None

    count = client.get("/api/v1/notifications/unread-count", headers=auth_headers(user))
    assert count.json()["data"] == {"count": 1}


def test_invalid_payload_is_rejected_before_the_service(client, db_session):
    teacher = create_user(db_session, role=UserRole.TEACHER)
    payload = {"user_id": teacher.id, "title": "", "message": "Y", "notification_type": "system"}

    response = client.post("/api/v1/notifications", json=payload, headers=auth_headers(teacher))

    assert response.status_code == 422
    assert response.json()["success"] is False
    assert db_session.query(Notification).count() == 0


def test_bulk_send_reports_failures(client, db_session, user):
    admin = create_user(db_session, role=UserRole.ADMIN)
    payload = {
        "notifications": [
            {"user_id": user.id, "title": "A", "message": "a", "notification_type": "reminder"},
            {"user_id": 4242, "title": "B", "message": "b", "notification_type": "reminder"},
        ]
    }

    response = client.post("/api/v1/notifications/bulk", json=payload, headers=auth_headers(admin))

    assert response.status_code == 201
    data = response.json()["data"]
    assert [n["title"] for n in data["notifications"]] == ["A"]
    assert data["failures"][0]["index"] == 1


def test_cleanup_validates_days_old(client, db_session):
    admin = create_user(db_session, role=UserRole.ADMIN)

    bad = client.delete("/api/v1/notifications/cleanup?daysOld=0", headers=auth_headers(admin))
    assert bad.status_code == 400
    assert bad.json()["message"] == "Invalid daysOld parameter"

    ok = client.delete("/api/v1/notifications/cleanup", headers=auth_headers(admin))
    assert ok.status_code == 200
    assert ok.json()["data"] == {"deleted_count": 0}
