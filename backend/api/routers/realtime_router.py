"""Realtime channel: one WebSocket per display screen or admin panel.

Messages in both directions are ``{"event": str, "data": ...}``. Nothing is
pushed on connect; clients ask for the current state with ``get-config``.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from core.dependencies import get_services
from services.broadcaster import EVENT_ERROR, EVENT_STATUS
from shared.errors import DisplayQueueError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

MSG_GET_CONFIG = "get-config"
MSG_ADD_SETTING = "add-setting"
MSG_REMOVE_SETTING = "remove-setting"
MSG_UPDATE_CONFIG = "admin-update-config"


async def handle_message(websocket: WebSocket, message: Any) -> None:
    """Dispatch one client message. Domain errors go back to the sender only."""
    services = get_services()
    broadcaster = services.broadcaster

    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        await broadcaster.send(websocket, EVENT_ERROR, {"message": "Malformed message"})
        return

    event = message["event"]
    data = message.get("data") or {}

    try:
        if event == MSG_GET_CONFIG:
            status = await services.notifier.build_status()
            await broadcaster.send(websocket, EVENT_STATUS, status)
        elif event == MSG_ADD_SETTING:
            await services.settings.add_preset(data)
        elif event == MSG_REMOVE_SETTING:
            await services.settings.remove_preset(str(data.get("id", "")))
        elif event == MSG_UPDATE_CONFIG:
            await services.settings.update_config(data)
        else:
            await broadcaster.send(websocket, EVENT_ERROR, {"message": f"Unknown event: {event}"})
    except DisplayQueueError as e:
        await broadcaster.send(websocket, EVENT_ERROR, {"event": event, "message": str(e)})


@router.websocket("/ws")
async def realtime(websocket: WebSocket) -> None:
    await websocket.accept()
    try:
        services = get_services()
    except HTTPException:
        await websocket.close(code=1013)
        return

    services.broadcaster.subscribe(websocket)
    logger.info(f"Realtime client connected ({services.broadcaster.subscriber_count} total)")
    try:
        while True:
            message = await websocket.receive_json()
            if not services.broadcaster.is_subscribed(websocket):
                # dropped after a failed send; the socket is already closed
                break
            try:
                await handle_message(websocket, message)
            except Exception as e:
                logger.exception(f"Realtime message failed: {e}")
                await services.broadcaster.send(
                    websocket, EVENT_ERROR, {"message": "Internal error"}
                )
    except WebSocketDisconnect:
        pass
    except ValueError as e:
        # receive_json on a non-JSON frame
        logger.info(f"Closing realtime client after bad frame: {e}")
    finally:
        services.broadcaster.unsubscribe(websocket)
        logger.info(f"Realtime client disconnected ({services.broadcaster.subscriber_count} left)")
