from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from tabsettle.api.ws.manager import ConnectionManager

router = APIRouter()
logger = logging.getLogger(__name__)

CLIENT_ROLES = frozenset({"STAFF", "KITCHEN", "DINER"})


def rejection_reason(restaurant_id: str | None, role: str, table_id: str | None) -> str | None:
    if not restaurant_id:
        return "restaurant_id query parameter is required"
    if role not in CLIENT_ROLES:
        return f"role must be one of {', '.join(sorted(CLIENT_ROLES))}"
    if role == "DINER" and not table_id:
        # diners only ever follow their own table's account
        return "table_id query parameter is required for DINER clients"
    return None


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    restaurant_id = websocket.query_params.get("restaurant_id")
    table_id = websocket.query_params.get("table_id") or None
    role = websocket.query_params.get("role", "STAFF").upper()
    reason = rejection_reason(restaurant_id, role, table_id)
    if reason is not None:
        await websocket.close(code=1008, reason=reason)
        return

    manager: ConnectionManager = websocket.app.state.ws_manager
    await manager.register(
        websocket=websocket,
        restaurant_id=restaurant_id,
        role=role,
        table_id=table_id,
    )
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await manager.unregister(websocket)
    except Exception:
        logger.exception(
            "ws_connection_error",
            extra={"restaurant_id": restaurant_id, "table_id": table_id},
        )
        await manager.unregister(websocket)
