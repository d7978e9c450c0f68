"""WebSocket transport for the session event protocol.

Each frame is a JSON object ``{"event": <name>, "data": <payload>}`` in both
directions. Inbound frames are handed to the coordinator one at a time;
outbound frames are queued on the connection and written by a dedicated
task so a slow peer never stalls the coordinator.
"""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, Optional, Tuple

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from realtime import QueueConnection
from services.coordinator import SessionCoordinator

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_frame(raw: str) -> Tuple[Optional[str], Any, Optional[str]]:
    """Split a raw text frame into ``(event, data, error)``."""

    try:
        message = json.loads(raw)
    except json.JSONDecodeError as exc:
        return None, None, f"Malformed frame: {exc.msg}"
    if not isinstance(message, dict):
        return None, None, "Malformed frame: expected an object"
    event = message.get("event")
    if not isinstance(event, str) or not event:
        return None, None, "Malformed frame: missing event name"
    return event, message.get("data"), None


async def _pump(websocket: WebSocket, connection: QueueConnection) -> None:
    while True:
        message = await connection.outbox.get()
        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError):
            logger.debug("Writer for %s stopped: socket closed", connection.connection_id)
            return


@router.websocket("/ws")
async def session_socket(websocket: WebSocket) -> None:
    coordinator: SessionCoordinator = websocket.app.state.coordinator
    await websocket.accept()
    connection = QueueConnection()
    coordinator.connect(connection)
    writer = asyncio.create_task(_pump(websocket, connection))
    try:
        while True:
            raw = await websocket.receive_text()
            event, data, error = parse_frame(raw)
            if error is not None:
                coordinator.reject(connection, event, error)
                continue
            coordinator.dispatch(connection, event, data)
    except WebSocketDisconnect:
        pass
    finally:
        coordinator.disconnect(connection)
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer


__all__ = ["parse_frame", "router"]
