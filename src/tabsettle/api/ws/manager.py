from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks WebSocket clients per restaurant, optionally narrowed to one table."""

    def __init__(self) -> None:
        self._connections: dict[str, dict[WebSocket, str | None]] = defaultdict(dict)
        self._socket_to_restaurant: dict[WebSocket, str] = {}
        self._lock = asyncio.Lock()

    async def register(
        self,
        websocket: WebSocket,
        restaurant_id: str,
        role: str,
        table_id: str | None = None,
    ) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections[restaurant_id][websocket] = table_id
            self._socket_to_restaurant[websocket] = restaurant_id
        logger.info(
            "ws_client_connected",
            extra={"restaurant_id": restaurant_id, "table_id": table_id, "role": role},
        )

    async def unregister(self, websocket: WebSocket) -> None:
        async with self._lock:
            restaurant_id = self._socket_to_restaurant.pop(websocket, None)
            if restaurant_id is None:
                return
            sockets = self._connections.get(restaurant_id)
            if not sockets:
                return
            sockets.pop(websocket, None)
            if not sockets:
                self._connections.pop(restaurant_id, None)
        logger.info("ws_client_disconnected", extra={"restaurant_id": restaurant_id})

    async def broadcast(
        self,
        restaurant_id: str,
        message_json_str: str,
        table_id: str | None = None,
    ) -> None:
        async with self._lock:
            targets = [
                websocket
                for websocket, subscribed_table in self._connections.get(restaurant_id, {}).items()
                if subscribed_table is None or table_id is None or subscribed_table == table_id
            ]

        stale: list[WebSocket] = []
        for websocket in targets:
            try:
                await websocket.send_text(message_json_str)
            except Exception:
                stale.append(websocket)

        for websocket in stale:
            await self.unregister(websocket)
