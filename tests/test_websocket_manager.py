import json
import logging
from datetime import datetime

import pytest
from starlette.websockets import WebSocketState

from eduhub.models.user.notification_model import NotificationType
from eduhub.notifications.channels import EmailSender, PushSender, build_payload
from eduhub.notifications.websocket_manager import NotificationWebSocketManager
from tests.utils import create_notification, create_user


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.accepted = False
        self.sent = []
        self.application_state = WebSocketState.CONNECTED

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(text))


@pytest.mark.asyncio
async def test_notify_async_reaches_every_socket_and_drops_dead_ones():
    manager = NotificationWebSocketManager()
    healthy, broken = FakeWebSocket(), FakeWebSocket(fail=True)
    await manager.connect(7, healthy)
    await manager.connect(7, broken)

    delivered = await manager.notify_async(
        7, {"type": "notification", "kind": NotificationType.GRADE, "at": datetime(2024, 1, 1)}
    )

    assert delivered == 1
    assert healthy.accepted is True
    assert healthy.sent == [{"type": "notification", "kind": "grade", "at": "2024-01-01T00:00:00"}]
    assert manager.connections[7] == {healthy}

    manager.disconnect(7, healthy)
    assert manager.is_connected(7) is False


def test_notify_without_sockets_is_a_no_op():
    manager = NotificationWebSocketManager()
    assert manager.notify(1, {"type": "notification"}) == 0


def test_push_sender_delivers_payload_from_plain_code(db_session):
    user = create_user(db_session)
    notification = create_notification(db_session, user=user, title="Hello")
    manager = NotificationWebSocketManager()
    socket = FakeWebSocket()
    manager.connections[user.id] = {socket}

    PushSender(manager).send(notification)

    assert socket.sent[0]["title"] == "Hello"
    assert socket.sent[0]["id"] == notification.id
    assert build_payload(notification)["notification_type"] == NotificationType.REMINDER


def test_email_sender_renders_reference(db_session, caplog):
    user = create_user(db_session)
    notification = create_notification(
        db_session,
        user=user,
        title="Assignment due",
        reference_id=12,
        reference_type="assignment",
    )

    subject, body = EmailSender().render(notification)

    assert subject == "[EduHub] Assignment due"
    assert "Related assignment: #12" in body

    with caplog.at_level(logging.INFO, logger="eduhub.notifications.channels"):
        EmailSender().send(notification)
    assert f"[EduHub] Assignment due ({len(body)} chars)" in caplog.text
