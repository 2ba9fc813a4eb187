from datetime import timedelta

import pytest
from fastapi import HTTPException

from eduhub.api.v1.dependencies import _decode_user_from_token, _normalize_token_value, require_roles
from eduhub.core.security import create_access_token
from eduhub.models.user.user_model import UserRole
from tests.utils import create_user


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, None),
        ("   ", None),
        ("abc.def.ghi", "abc.def.ghi"),
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer%20abc.def.ghi", "abc.def.ghi"),
        ('"Token abc.def.ghi"', "abc.def.ghi"),
    ],
)
def test_normalize_token_value(raw, expected):
    assert _normalize_token_value(raw) == expected


def test_decode_user_from_token(db_session):
    user = create_user(db_session)

    assert _decode_user_from_token(create_access_token(user.id), db_session).id == user.id

    with pytest.raises(HTTPException) as exc:
        _decode_user_from_token("not-a-jwt", db_session)
    assert exc.value.status_code == 401

    expired = create_access_token(user.id, expires_delta=timedelta(minutes=-1))
    with pytest.raises(HTTPException) as exc:
        _decode_user_from_token(expired, db_session)
    assert exc.value.detail == "Token expired"

    with pytest.raises(HTTPException) as exc:
        _decode_user_from_token(create_access_token(424242), db_session)
    assert exc.value.status_code == 401


def test_require_roles(db_session):
    student = create_user(db_session)
    admin = create_user(db_session, role=UserRole.ADMIN)
    checker = require_roles(UserRole.TEACHER, UserRole.ADMIN)

    assert checker(current_user=admin) is admin
    with pytest.raises(HTTPException) as exc:
        checker(current_user=student)
    assert exc.value.status_code == 403


@pytest.mark.parametrize(
    "transport",
    ["cookie", "x-access-token", "query"],
)
def test_token_is_read_from_every_transport(client, db_session, transport):
    user = create_user(db_session)
    token = create_access_token(user.id)

    if transport == "cookie":
        client.cookies.set("access_token", f"Bearer%20{token}")
        response = client.get("/api/v1/auth/me")
    elif transport == "x-access-token":
        response = client.get("/api/v1/auth/me", headers={"X-Access-Token": token})
    else:
        response = client.get("/api/v1/auth/me", params={"token": token})

    assert response.status_code == 200
    assert response.json()["data"]["id"] == user.id


def test_invalid_header_falls_back_to_valid_cookie(client, db_session):
    user = create_user(db_session)
    client.cookies.set("access_token", create_access_token(user.id))

    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 200
    assert response.json()["data"]["id"] == user.id


def test_inactive_user_stops_the_token_search(client, db_session):
    inactive = create_user(db_session, is_active=False)
    active = create_user(db_session)
    client.cookies.set("access_token", create_access_token(active.id))

    response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {create_access_token(inactive.id)}"})

    assert response.status_code == 403
