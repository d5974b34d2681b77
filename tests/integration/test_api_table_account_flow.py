from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import tabsettle.api.routes.dishes as dishes_route
import tabsettle.api.routes.payments as payments_route
import tabsettle.api.routes.tables as tables_route
from tabsettle.api.main import app

BASE = "/v1/restaurants/rst_001"


class RecordingPublisher:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def publish(self, channel: str, message: str) -> None:
        self.messages.append((channel, message))

    def event_types(self) -> list[str]:
        return [json.loads(message)["event_type"] for _, message in self.messages]


@pytest.fixture
def publisher(monkeypatch, memory_backend) -> RecordingPublisher:
    recording = RecordingPublisher()
    for module in (tables_route, dishes_route, payments_route):
        monkeypatch.setattr(module, "event_publisher", lambda: recording)
    return recording


@pytest.fixture
def client(publisher) -> TestClient:
    test_client = TestClient(app)
    response = test_client.put(f"{BASE}/tables/tbl_001")
    assert response.status_code == 200
    return test_client


def _place(client: TestClient, guest_name: str, cents: int, quantity: int = 1) -> dict:
    response = client.post(
        f"{BASE}/tables/tbl_001/dishes",
        json={
            "owner": {"guestName": guest_name},
            "itemName": f"dish for {guest_name}",
            "quantity": quantity,
            "unitPriceCents": cents,
        },
    )
    assert response.status_code == 201
    return response.json()


def _remaining(client: TestClient) -> int:
    body = client.get(f"{BASE}/tables/tbl_001/account").json()
    return body["remainingAmount"]["amountCents"]


def test_free_amount_flow_over_http(client: TestClient, publisher: RecordingPublisher) -> None:
    first = _place(client, "Ana", 4500)
    assert first["openedSitting"]
    _place(client, "Luis", 2850)
    _place(client, "Carmen", 1650)

    account = client.get(f"{BASE}/tables/tbl_001/account").json()
    assert account["active"]
    assert account["totalAmount"]["amountCents"] == 9000
    assert account["itemCount"] == 3
    assert account["paymentState"] == "NOT_PAID"

    response = client.post(f"{BASE}/tables/tbl_001/payments", json={"amountCents": 5000})
    assert response.status_code == 200
    assert _remaining(client) == 4000

    _place(client, "Dana", 400, quantity=2)
    assert _remaining(client) == 4800

    client.post(f"{BASE}/tables/tbl_001/payments", json={"amountCents": 2500})
    rejected = client.post(f"{BASE}/tables/tbl_001/payments", json={"amountCents": 5000})
    assert rejected.status_code == 409
    assert rejected.json()["error"]["code"] == "OVERPAYMENT"
    assert rejected.json()["error"]["details"]["remainingCents"] == 2300

    closing = client.post(f"{BASE}/tables/tbl_001/payments", json={"amountCents": 2300})
    assert closing.status_code == 200
    assert closing.json()["closedSitting"]

    account = client.get(f"{BASE}/tables/tbl_001/account").json()
    assert not account["active"]
    assert account["tableStatus"] == "AVAILABLE"
    assert "table.fullRefresh" in publisher.event_types()

    after_close = client.post(f"{BASE}/tables/tbl_001/payments", json={"amountCents": 100})
    assert after_close.status_code == 409
    assert after_close.json()["error"]["code"] == "NO_ACTIVE_SITTING"


def test_split_bill_flow_over_http(client: TestClient) -> None:
    _place(client, "Ana", 3000)
    _place(client, "Luis", 2500)
    _place(client, "Carmen", 2500)

    split = client.post(
        f"{BASE}/tables/tbl_001/split-bill",
        json={
            "numberOfPeople": 3,
            "participants": [
                {"guestName": "Ana"},
                {"guestName": "Luis"},
                {"guestName": "Carmen"},
            ],
        },
    )
    assert split.status_code == 200
    assert split.json()["amountPerPerson"]["amountCents"] == 2667

    for name in ("Ana", "Luis"):
        paid = client.post(
            f"{BASE}/tables/tbl_001/split-bill/pay",
            json={"owner": {"guestName": name}},
        )
        assert paid.status_code == 200
    assert _remaining(client) == 2666

    placement = _place(client, "Dana", 1800)
    assert placement["redistribution"]["redistributed"]
    assert placement["redistribution"]["amountPerPendingPerson"]["amountCents"] == 2233

    status = client.get(f"{BASE}/tables/tbl_001/split-bill").json()
    assert status["active"]
    assert status["summary"]["pendingPeople"] == 2
    assert status["summary"]["paidPeople"] == 2

    repeat = client.post(
        f"{BASE}/tables/tbl_001/split-bill/pay",
        json={"owner": {"guestName": "Ana"}},
    )
    assert repeat.status_code == 409
    assert repeat.json()["error"]["code"] == "NO_PENDING_SHARE"

    client.post(f"{BASE}/tables/tbl_001/split-bill/pay", json={"owner": {"guestName": "Carmen"}})
    closing = client.post(
        f"{BASE}/tables/tbl_001/payments",
        json={"amountCents": 2233, "owner": {"guestName": "Ana"}},
    )
    assert closing.json()["closedSitting"]
    assert client.get(f"{BASE}/tables/tbl_001/split-bill").json()["active"] is False


def test_dish_payment_and_kitchen_status_over_http(client: TestClient) -> None:
    dish_id = _place(client, "Ana", 1200)["dish"]["dishId"]
    _place(client, "Luis", 800)

    cooking = client.put(f"{BASE}/dishes/{dish_id}/status", json={"status": "COOKING"})
    assert cooking.status_code == 200
    assert cooking.json()["kitchenStatus"] == "COOKING"

    invalid = client.put(f"{BASE}/dishes/{dish_id}/status", json={"status": "BURNT"})
    assert invalid.status_code == 400
    assert invalid.json()["error"]["code"] == "INVALID_KITCHEN_STATUS"

    paid = client.post(f"{BASE}/dishes/{dish_id}/pay")
    assert paid.status_code == 200
    assert paid.json()["amount"]["amountCents"] == 1200

    again = client.post(f"{BASE}/dishes/{dish_id}/pay")
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "ALREADY_PAID"

    dishes = client.get(f"{BASE}/tables/tbl_001/dishes").json()["dishes"]
    assert [dish["paymentStatus"] for dish in dishes] == ["PAID", "NOT_PAID"]
    assert dishes[0]["kitchenStatus"] == "COOKING"

    participants = client.get(f"{BASE}/tables/tbl_001/participants").json()["participants"]
    ana = next(p for p in participants if p["owner"]["guestName"] == "Ana")
    assert ana["contributions"]["individualCents"] == 1200

    missing = client.post("/v1/restaurants/rst_other/dishes/" + dish_id + "/pay")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "DISH_ORDER_NOT_FOUND"


def test_idempotency_key_header_replays_payment(client: TestClient) -> None:
    _place(client, "Ana", 4500)
    headers = {"Idempotency-Key": "pay-123"}

    first = client.post(
        f"{BASE}/tables/tbl_001/payments", json={"amountCents": 1000}, headers=headers
    )
    second = client.post(
        f"{BASE}/tables/tbl_001/payments", json={"amountCents": 1000}, headers=headers
    )
    conflict = client.post(
        f"{BASE}/tables/tbl_001/payments", json={"amountCents": 1500}, headers=headers
    )

    assert first.status_code == 200
    assert second.json()["replayed"]
    assert second.json()["paymentId"] == first.json()["paymentId"]
    assert conflict.status_code == 409
    assert conflict.json()["error"]["code"] == "IDEMPOTENCY_KEY_REPLAY_DIFFERENT_PAYLOAD"
    assert _remaining(client) == 3500


def test_link_guest_and_table_listing_over_http(client: TestClient) -> None:
    client.put(f"{BASE}/tables/tbl_002")
    response = client.post(
        f"{BASE}/tables/tbl_001/dishes",
        json={
            "owner": {"guestId": "gst_1", "guestName": "Luis"},
            "itemName": "Tortilla",
            "unitPriceCents": 900,
        },
    )
    assert response.status_code == 201

    linked = client.post(
        f"{BASE}/tables/tbl_001/link-guest",
        json={"guestId": "gst_1", "userId": "usr_9"},
    )
    assert linked.status_code == 200
    assert linked.json()["updatedDishes"] == 1

    occupied = client.get(f"{BASE}/tables", params={"status": "OCCUPIED"}).json()["tables"]
    assert [row["tableId"] for row in occupied] == ["tbl_001"]
    everything = client.get(f"{BASE}/tables").json()["tables"]
    assert [row["tableId"] for row in everything] == ["tbl_001", "tbl_002"]

    bad_filter = client.get(f"{BASE}/tables", params={"status": "CLOSED"})
    assert bad_filter.status_code == 400
    assert bad_filter.json()["error"]["code"] == "VALIDATION_ERROR"


def test_request_errors_use_the_error_envelope(client: TestClient) -> None:
    unknown_table = client.get(f"{BASE}/tables/tbl_404/account")
    assert unknown_table.status_code == 404
    assert unknown_table.json()["error"]["code"] == "TABLE_NOT_FOUND"

    no_owner = client.post(
        f"{BASE}/tables/tbl_001/dishes",
        json={"owner": {}, "itemName": "Tortilla", "unitPriceCents": 900},
    )
    assert no_owner.status_code == 400
    assert no_owner.json()["error"]["code"] == "INVALID_REQUEST"

    no_sitting = client.post(
        f"{BASE}/tables/tbl_001/split-bill",
        json={"numberOfPeople": 2},
    )
    assert no_sitting.status_code == 409
    assert no_sitting.json()["error"]["code"] == "NO_ACTIVE_SITTING"
