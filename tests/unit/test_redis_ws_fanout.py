from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from types import SimpleNamespace

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from tabsettle.api.ws.manager import ConnectionManager
from tabsettle.api.ws.routes import rejection_reason
from tabsettle.application.ports.publisher import events_channel, restaurant_of_channel
from tabsettle.application.use_cases.notify import publish_best_effort
from tabsettle.infrastructure.messaging.redis_publisher import RedisEventPublisher
from tabsettle.infrastructure.messaging.redis_ws_fanout import dispatch_message


class FakeManager:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str | None]] = []

    async def broadcast(
        self,
        restaurant_id: str,
        message_json_str: str,
        table_id: str | None = None,
    ) -> None:
        self.calls.append((restaurant_id, message_json_str, table_id))


class FakeWebSocket:
    def __init__(self) -> None:
        self.sent: list[str] = []

    async def accept(self) -> None:
        return None

    async def send_text(self, text: str) -> None:
        self.sent.append(text)


def _event(table_id: str) -> str:
    return json.dumps({"event_type": "order.updated", "payload": {"tableId": table_id}})


def test_dispatch_routes_message_to_restaurant_and_table() -> None:
    manager = FakeManager()
    state = SimpleNamespace(ws_manager=manager)
    message = {"channel": b"events:rst_001", "data": _event("tbl_007").encode("utf-8")}

    assert asyncio.run(dispatch_message(state, message))
    assert manager.calls == [("rst_001", _event("tbl_007"), "tbl_007")]


def test_dispatch_ignores_malformed_messages() -> None:
    manager = FakeManager()
    state = SimpleNamespace(ws_manager=manager)

    assert not asyncio.run(dispatch_message(state, {"channel": "events:rst_001", "data": None}))
    assert not asyncio.run(dispatch_message(state, {"channel": "events", "data": "{}"}))
    assert asyncio.run(dispatch_message(state, {"channel": "events:rst_001", "data": "not json"}))
    assert manager.calls == [("rst_001", "not json", None)]


def test_connection_manager_filters_by_table() -> None:
    async def _scenario() -> tuple[list[str], list[str], list[str]]:
        manager = ConnectionManager()
        floor = FakeWebSocket()
        table_one = FakeWebSocket()
        table_two = FakeWebSocket()
        await manager.register(floor, restaurant_id="rst_001", role="STAFF")
        await manager.register(table_one, restaurant_id="rst_001", role="DINER", table_id="tbl_1")
        await manager.register(table_two, restaurant_id="rst_001", role="DINER", table_id="tbl_2")

        await manager.broadcast("rst_001", "for table one", table_id="tbl_1")
        await manager.broadcast("rst_001", "for everyone")
        return floor.sent, table_one.sent, table_two.sent

    floor, table_one, table_two = asyncio.run(_scenario())
    assert floor == ["for table one", "for everyone"]
    assert table_one == ["for table one", "for everyone"]
    assert table_two == ["for everyone"]


class FakeRedis:
    def __init__(self, receivers: int) -> None:
        self.receivers = receivers
        self.published: list[tuple[str, str]] = []

    def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return self.receivers


def test_channel_helpers_round_trip_restaurant_id() -> None:
    assert events_channel("rst_001") == "events:rst_001"
    assert restaurant_of_channel("events:rst_001") == "rst_001"
    assert restaurant_of_channel("orders:rst_001") is None
    assert restaurant_of_channel("events:") is None


def test_redis_publisher_uses_injected_client() -> None:
    client = FakeRedis(receivers=0)
    RedisEventPublisher(client=client).publish("events:rst_001", _event("tbl_001"))
    assert client.published == [("events:rst_001", _event("tbl_001"))]


def test_publish_best_effort_swallows_publisher_failures() -> None:
    class BrokenPublisher:
        def publish(self, channel: str, message: str) -> None:
            raise ConnectionError("redis down")

    publish_best_effort(BrokenPublisher(), "rst_001", "order.updated", _event("tbl_001"))

    client = FakeRedis(receivers=2)
    publish_best_effort(RedisEventPublisher(client=client), "rst_001", "order.updated", "{}")
    assert client.published == [("events:rst_001", "{}")]


def test_websocket_clients_are_validated_by_role() -> None:
    assert rejection_reason(None, "STAFF", None) is not None
    assert rejection_reason("rst_001", "WAITER", None) is not None
    assert rejection_reason("rst_001", "DINER", None) is not None
    assert rejection_reason("rst_001", "DINER", "tbl_001") is None
    assert rejection_reason("rst_001", "KITCHEN", None) is None
