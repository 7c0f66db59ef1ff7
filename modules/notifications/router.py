from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends, HTTPException, Query
import logging
from typing import Optional

from modules.auth.manager import get_current_admin, require_admin, user_from_token
from modules.shared.store import RecordStore, get_store
from modules.shared.response import success_response, error_response
from .manager import NotificationCenter, PresenceBoard, get_notification_center, get_presence_board
from .utils import manager, topic_broadcast_all

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def ws_changes(
    websocket: WebSocket,
    topic: str = Query(topic_broadcast_all()),
    token: Optional[str] = Query(None),
    store: RecordStore = Depends(get_store),
):
    """Change feed for admins; subscribe with ?topic=table:emergencies&token=<jwt>"""
    try:
        user = require_admin(await user_from_token(token, store))
    except HTTPException as e:
        logger.warning(f"Change feed connection refused: {e.detail}")
        await websocket.close(code=4003 if e.status_code == 403 else 4001, reason=e.detail)
        return
    logger.info(f"User {user['id']} subscribed to {topic}")
    await manager.connect(websocket, topic)
    try:
        while True:
            # Keep connection alive; messages from client are ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        await manager.disconnect(websocket, topic)


@router.get("/")
async def list_notifications(
    center: NotificationCenter = Depends(get_notification_center),
    current_user: dict = Depends(get_current_admin),
):
    return success_response({
        "notifications": center.list(),
        "unread_count": center.unread_count,
    }, "Notifications retrieved successfully")


@router.post("/read-all")
async def read_all(
    center: NotificationCenter = Depends(get_notification_center),
    current_user: dict = Depends(get_current_admin),
):
    changed = center.mark_all_as_read()
    return success_response({"marked": changed, "unread_count": center.unread_count}, "All notifications marked as read")


@router.post("/{notification_id}/read")
async def read_one(
    notification_id: str,
    center: NotificationCenter = Depends(get_notification_center),
    current_user: dict = Depends(get_current_admin),
):
    if not center.mark_as_read(notification_id):
        return error_response("Notification not found", 404)
    return success_response({"id": notification_id, "unread_count": center.unread_count}, "Notification marked as read")


@router.get("/presence")
async def presence(
    board: PresenceBoard = Depends(get_presence_board),
    current_user: dict = Depends(get_current_admin),
):
    return success_response(board.snapshot(), "Presence retrieved successfully")
