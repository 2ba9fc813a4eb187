import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from eduhub.api.v1.dependencies import get_current_user_from_websocket, get_db
from eduhub.notifications.websocket_manager import notification_ws_manager

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def notifications_ws(websocket: WebSocket, db: Session = Depends(get_db)):
    try:
        current_user = get_current_user_from_websocket(websocket, db)
    except HTTPException as exc:
        logger.warning("WS rejected: %s", exc.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = current_user.id
    await notification_ws_manager.connect(user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        notification_ws_manager.disconnect(user_id, websocket)
