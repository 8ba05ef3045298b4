"""
Realtime websocket endpoint.

Handshake is authenticated with the same token sources as HTTP routes (the
``token`` query parameter is what browsers can send). Messages are JSON
envelopes ``{"event": ..., "data": ...}``.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from ..auth import resolve_user_id
from ..errors import AuthenticationError
from ..realtime import RELAYED_EVENTS, NotificationHub, WebSocketConnection, get_hub

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def _requested_user_id(data: Any) -> str | None:
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        value = data.get("userId")
        return value if isinstance(value, str) else None
    return None


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
    try:
        user_id = resolve_user_id(websocket)
    except AuthenticationError as exc:
        LOGGER.info("Rejected websocket handshake: %s", exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.message)
        return

    hub: NotificationHub = get_hub(websocket)
    connection = WebSocketConnection(websocket)
    await websocket.accept()
    LOGGER.info("Connection %s opened for user %s", connection.id, user_id)
    await connection.send("connected", {"socketId": connection.id})

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", status.WS_1000_NORMAL_CLOSURE), frame.get("reason"))
            raw = frame.get("text")
            if raw is None:
                await connection.send("error", {"message": "Messages must be JSON text"})
                continue
            try:
                message = json.loads(raw)
            except ValueError:
                await connection.send("error", {"message": "Messages must be JSON"})
                continue
            if not isinstance(message, dict):
                await connection.send("error", {"message": "Messages must be JSON objects"})
                continue
            await _handle_message(hub, connection, user_id, message.get("event"), message.get("data"))
    except WebSocketDisconnect:
        pass
    finally:
        hub.leave(connection)
        LOGGER.info("Connection %s closed", connection.id)


async def _handle_message(
    hub: NotificationHub,
    connection: WebSocketConnection,
    user_id: str,
    event: Any,
    data: Any,
) -> None:
    if event == "join-user":
        requested = _requested_user_id(data)
        if requested != user_id:
            LOGGER.warning("Connection %s of user %s asked to join room %s", connection.id, user_id, requested)
            await connection.send("error", {"message": "You can only join your own room"})
            return
        hub.join(connection, user_id)
        await connection.send("joined", {"userId": user_id})
    elif event == "ping":
        await connection.send("pong", data)
    elif event in RELAYED_EVENTS:
        room = hub.room_of(connection)
        if room is None:
            await connection.send("error", {"message": "Join your room before sending job events"})
            return
        # routed by membership only; owner fields inside the payload are ignored
        await hub.emit(room, RELAYED_EVENTS[event], data, exclude=connection.id)
    else:
        await connection.send("error", {"message": f"Unknown event: {event}"})
