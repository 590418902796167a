"""WebSocket connection manager for real-time events."""

import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks active WebSocket connections in rooms keyed by driver registration code.

    ``/ws`` only joins and leaves rooms. ``is_active`` and ``send_to_driver``
    are the push API for dispatch-side services (trip assignment, admin
    replies), which live outside this app and call into the shared
    ``ws_manager``.
    """

    def __init__(self) -> None:
        # registration code -> set of active websocket connections
        self._rooms: dict[str, set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, registration_code: str) -> None:
        await websocket.accept()
        self._rooms.setdefault(registration_code, set()).add(websocket)
        logger.info("Driver %s is now active (total=%s)", registration_code, self.total_connections)

    def disconnect(self, websocket: WebSocket, registration_code: str) -> None:
        conns = self._rooms.get(registration_code)
        if conns:
            conns.discard(websocket)
            if not conns:
                del self._rooms[registration_code]
        logger.info("Driver %s went inactive (total=%s)", registration_code, self.total_connections)

    def is_active(self, registration_code: str) -> bool:
        return bool(self._rooms.get(registration_code))

    async def send_to_driver(self, registration_code: str, event: str, data: Any) -> int:
        """Send event to every connection in a driver's room. Returns how many received it."""
        conns = self._rooms.get(registration_code, set())
        payload = json.dumps({"event": event, "data": data}, default=str)
        dead: list[WebSocket] = []
        delivered = 0
        for ws in list(conns):
            try:
                await ws.send_text(payload)
                delivered += 1
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws, registration_code)
        return delivered

    @property
    def total_connections(self) -> int:
        return sum(len(c) for c in self._rooms.values())


# Singleton instance used across the app
ws_manager = ConnectionManager()
