import asyncio
import json
import logging
from datetime import datetime
from enum import Enum
from typing import Dict, Set

import anyio
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from starlette.websockets import WebSocketState

log = logging.getLogger("eduhub.ws")


class NotificationWebSocketManager:
    """Tracks open notification sockets per user and fans payloads out to them."""

    def __init__(self) -> None:
        self.connections: Dict[int, Set[WebSocket]] = {}

    async def connect(self, user_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections.setdefault(user_id, set()).add(websocket)
        log.info("[WS CONNECT] user=%s sockets=%s", user_id, len(self.connections[user_id]))

    def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        conns = self.connections.get(user_id)
        if not conns:
            return
        conns.discard(websocket)
        if not conns:
            self.connections.pop(user_id, None)
        log.info("[WS DISCONNECT] user=%s remaining=%s", user_id, len(self.connections.get(user_id, ())))

    def is_connected(self, user_id: int) -> bool:
        return bool(self.connections.get(user_id))

    def _json_safe(self, payload: dict) -> str:
        enc = jsonable_encoder(
            payload,
            custom_encoder={
                Enum: lambda e: getattr(e, "value", str(e)),
                datetime: lambda d: d.isoformat(),
            },
        )
        return json.dumps(enc, ensure_ascii=False, separators=(",", ":"))

    async def _send(self, user_id: int, payload: dict) -> int:
        """Send *payload* to every live socket of the user; returns sockets reached."""
        websockets = list(self.connections.get(user_id, ()))
        if not websockets:
            return 0

        # Serialise once, before the loop, so an encoding error drops no socket.
        text = self._json_safe(payload)

        delivered = 0
        dead = []
        for ws in websockets:
            try:
                if ws.application_state != WebSocketState.CONNECTED:
                    dead.append(ws)
                    continue
                await ws.send_text(text)
                delivered += 1
            except Exception as e:
                log.warning("[WS SEND ERROR] user=%s: %s", user_id, e)
                dead.append(ws)

        for ws in dead:
            self.disconnect(user_id, ws)
        log.info("[WS SEND] user=%s delivered=%s type=%s", user_id, delivered, payload.get("type"))
        return delivered

    async def notify_async(self, user_id: int, payload: dict) -> int:
        return await self._send(user_id, payload)

    def notify(self, user_id: int, payload: dict) -> int:
        """Synchronous entry point usable from worker threads and plain code."""
        if not self.is_connected(user_id):
            return 0
        try:
            return anyio.from_thread.run(self._send, user_id, payload)
        except RuntimeError:
            pass
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self._send(user_id, payload))
        # Called from inside the event loop: schedule and report optimistically.
        loop.create_task(self._send(user_id, payload))
        return len(self.connections.get(user_id, ()))


notification_ws_manager = NotificationWebSocketManager()
