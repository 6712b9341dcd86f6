import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)

NEW_CUSTOMER_EVENT = "new_customer"


class RealtimeHub:
    """The "updates" group: every connected dashboard socket receives every event."""

    def __init__(self):
        self._connections: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)
        await websocket.send_json({"type": "welcome", "message": "connected"})
        logger.info("Realtime client connected (%s open)", self.connection_count)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.discard(websocket)
        logger.info("Realtime client disconnected (%s open)", self.connection_count)

    async def broadcast(self, event_type: str, data: Dict[str, Any]) -> int:
        """Send an event to every connection; returns how many received it.

        Connections that fail to receive are dropped from the group.
        """
        message = {"type": event_type, "ts": datetime.utcnow().isoformat(), "data": data}
        async with self._lock:
            targets = list(self._connections)

        delivered = 0
        for websocket in targets:
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning("Dropping realtime client after send failure: %s", e)
                await self.disconnect(websocket)
        logger.debug("Broadcast %s to %s client(s)", event_type, delivered)
        return delivered
