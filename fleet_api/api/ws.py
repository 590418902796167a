"""WebSocket endpoint keyed by driver registration code."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from fleet_api.core.ws_manager import ws_manager
from fleet_api.db.session import SessionLocal
from fleet_api.services.driver_service import get_driver_by_registration_code

logger = logging.getLogger(__name__)

router = APIRouter()


def _known_driver(registration_code: str) -> bool:
    db = SessionLocal()
    try:
        return get_driver_by_registration_code(db, registration_code) is not None
    finally:
        db.close()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint. Driver app connects with ?driver=<registration code>
    and joins that room; trip flows push events to it.
    """
    registration_code = websocket.query_params.get("driver")
    if not registration_code:
        await websocket.close(code=4001, reason="Missing driver")
        return

    if not _known_driver(registration_code):
        await websocket.close(code=4003, reason="Unknown driver")
        return

    await ws_manager.connect(websocket, registration_code)
    try:
        while True:
            data = await websocket.receive_text()
            # Heartbeat
            if data == "ping":
                await websocket.send_text('{"event":"pong"}')
    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(websocket, registration_code)
