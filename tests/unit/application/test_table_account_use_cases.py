from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from tabsettle.application.dto.requests import (
    LinkGuestToUserRequest,
    OwnerRequest,
    PlaceDishOrderRequest,
    UpdateKitchenStatusRequest,
)
from tabsettle.application.errors import ValidationError
from tabsettle.application.ports.repositories import TableNotFoundError
from tabsettle.application.use_cases.context import TraceContext
from tabsettle.application.use_cases.dish_orders import (
    ListTableDishes,
    PlaceDishOrder,
    UpdateKitchenStatus,
)
from tabsettle.application.use_cases.engine import build_engine
from tabsettle.application.use_cases.split_bill import GetSplitStatus
from tabsettle.application.use_cases.table_account import (
    GetTableAccountSummary,
    LinkGuestToUser,
    ListParticipants,
)
from tabsettle.application.use_cases.table_registry import ListTables, RegisterTable
from tabsettle.domain.common.ids import DishOrderId, RestaurantId, TableId
from tabsettle.domain.dish.entities import InvalidKitchenStatusError
from tabsettle.infrastructure.memory.store import (
    InMemoryAccountStore,
    InMemoryDishOrderRepository,
    InMemoryTableAccountRepository,
    InMemoryTableRepository,
)

RESTAURANT_ID = RestaurantId("rst_001")
TRACE = TraceContext(trace_id=None, request_id="req-1")


class FakePublisher:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def publish(self, channel: str, message: str) -> None:
        self.messages.append((channel, message))


@pytest.fixture
def store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


def _register(store: InMemoryAccountStore, table_id: str, publisher: FakePublisher | None = None):
    return RegisterTable(
        table_repository=InMemoryTableRepository(store),
        publisher=publisher or FakePublisher(),
    ).execute(RESTAURANT_ID, TableId(table_id), TRACE)


def _place(store: InMemoryAccountStore, table_id: str, owner: OwnerRequest, cents: int) -> str:
    response = PlaceDishOrder(
        account_repository=InMemoryTableAccountRepository(store),
        publisher=FakePublisher(),
        engine=build_engine(),
    ).execute(
        RESTAURANT_ID,
        TableId(table_id),
        PlaceDishOrderRequest(owner=owner, itemName="Paella", unitPriceCents=cents),
        TRACE,
    )
    return response.dish.dishId


def test_register_table_is_idempotent(store: InMemoryAccountStore) -> None:
    publisher = FakePublisher()
    first = _register(store, "tbl_001", publisher)
    second = _register(store, "tbl_001", publisher)

    assert first.status == "AVAILABLE"
    assert second == first
    assert len(publisher.messages) == 1
    event = json.loads(publisher.messages[0][1])
    assert event["event_type"] == "table.fullRefresh"
    assert event["payload"] == {"tableId": "tbl_001", "reason": "table_registered"}


def test_list_tables_filters_by_occupancy(store: InMemoryAccountStore) -> None:
    _register(store, "tbl_001")
    _register(store, "tbl_002")
    _place(store, "tbl_002", OwnerRequest(guestName="Ana"), 1500)
    use_case = ListTables(table_repository=InMemoryTableRepository(store))

    all_tables = use_case.execute(RESTAURANT_ID)
    occupied = use_case.execute(RESTAURANT_ID, status="occupied")
    available = use_case.execute(RESTAURANT_ID, status="AVAILABLE")

    assert [row.tableId for row in all_tables.tables] == ["tbl_001", "tbl_002"]
    assert [row.tableId for row in occupied.tables] == ["tbl_002"]
    assert occupied.tables[0].active
    assert occupied.tables[0].totalAmount is not None
    assert occupied.tables[0].totalAmount.amountCents == 1500
    assert [row.tableId for row in available.tables] == ["tbl_001"]
    with pytest.raises(ValidationError):
        use_case.execute(RESTAURANT_ID, status="CLOSED")


def test_placing_on_unknown_table_fails(store: InMemoryAccountStore) -> None:
    with pytest.raises(TableNotFoundError):
        _place(store, "tbl_404", OwnerRequest(guestName="Ana"), 1000)


def test_summary_of_idle_table_is_inactive(store: InMemoryAccountStore) -> None:
    _register(store, "tbl_001")
    summary = GetTableAccountSummary(
        account_repository=InMemoryTableAccountRepository(store),
        engine=build_engine(),
    ).execute(RESTAURANT_ID, TableId("tbl_001"))

    assert not summary.active
    assert summary.sittingId is None
    assert summary.tableStatus == "AVAILABLE"


def test_split_status_of_idle_table_uses_default_currency(store: InMemoryAccountStore) -> None:
    _register(store, "tbl_001")
    status = GetSplitStatus(
        account_repository=InMemoryTableAccountRepository(store),
        engine=build_engine(),
        default_currency="EUR",
    ).execute(RESTAURANT_ID, TableId("tbl_001"))

    assert not status.active
    assert status.shares == []
    assert status.summary.totalRemaining.currency == "EUR"


def test_kitchen_status_update_and_listing(store: InMemoryAccountStore) -> None:
    _register(store, "tbl_001")
    dish_id = _place(store, "tbl_001", OwnerRequest(guestName="Ana"), 1000)
    publisher = FakePublisher()
    use_case = UpdateKitchenStatus(
        dish_repository=InMemoryDishOrderRepository(store),
        publisher=publisher,
        engine=build_engine(),
    )

    updated = use_case.execute(
        RESTAURANT_ID,
        DishOrderId(dish_id),
        UpdateKitchenStatusRequest(status="cooking"),
        TRACE,
    )
    assert updated.kitchenStatus == "COOKING"
    assert json.loads(publisher.messages[0][1])["event_type"] == "dish.status_changed"

    with pytest.raises(InvalidKitchenStatusError):
        use_case.execute(
            RESTAURANT_ID,
            DishOrderId(dish_id),
            UpdateKitchenStatusRequest(status="BURNT"),
            TRACE,
        )

    listed = ListTableDishes(
        account_repository=InMemoryTableAccountRepository(store),
        engine=build_engine(),
    ).execute(RESTAURANT_ID, TableId("tbl_001"))
    assert [dish.kitchenStatus for dish in listed.dishes] == ["COOKING"]


def test_link_guest_to_user_updates_participants(store: InMemoryAccountStore) -> None:
    _register(store, "tbl_001")
    _place(store, "tbl_001", OwnerRequest(guestId="gst_1", guestName="Luis"), 1000)
    publisher = FakePublisher()

    result = LinkGuestToUser(
        account_repository=InMemoryTableAccountRepository(store),
        publisher=publisher,
        engine=build_engine(),
    ).execute(
        RESTAURANT_ID,
        TableId("tbl_001"),
        LinkGuestToUserRequest(guestId="gst_1", userId="usr_9"),
        TRACE,
    )

    assert (result.updatedDishes, result.updatedParticipants, result.updatedShares) == (1, 1, 0)
    assert json.loads(publisher.messages[0][1])["event_type"] == "table.fullRefresh"

    participants = ListParticipants(
        account_repository=InMemoryTableAccountRepository(store),
        engine=build_engine(),
    ).execute(RESTAURANT_ID, TableId("tbl_001"))
    assert [p.owner.userId for p in participants.participants] == ["usr_9"]
    assert participants.participants[0].owner.displayName == "Luis"
