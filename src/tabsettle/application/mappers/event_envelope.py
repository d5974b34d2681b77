from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from tabsettle.application.use_cases.context import TraceContext
from tabsettle.domain.account.split_bill import RedistributionOutcome, SplitStatus
from tabsettle.domain.common.money import Money
from tabsettle.domain.dish.entities import DishOrder
from tabsettle.domain.sitting.entities import Sitting


def _money(money: Money | None) -> dict[str, Any] | None:
    if money is None:
        return None
    return {"amountCents": money.amount_cents, "currency": money.currency}


def _serialize_event(
    *,
    event_type: str,
    occurred_at: datetime,
    restaurant_id: str,
    payload: dict[str, Any],
    trace: TraceContext,
) -> str:
    envelope = {
        "event_id": str(uuid4()),
        "event_type": event_type,
        "occurred_at": occurred_at.isoformat(),
        **trace.envelope_fields(),
        "restaurant_id": restaurant_id,
        "payload": payload,
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)


def _dish_payload(dish: DishOrder) -> dict[str, Any]:
    return {
        "dishId": str(dish.dish_id),
        "sittingId": str(dish.sitting_id),
        "tableId": str(dish.table_id),
        "itemName": dish.item_name,
        "quantity": dish.quantity,
        "lineTotal": _money(dish.line_total),
        "kitchenStatus": dish.kitchen_status.value,
        "paymentStatus": dish.payment_status.value,
        "owner": {
            "userId": dish.owner.user_id,
            "guestId": dish.owner.guest_id,
            "guestName": dish.owner.guest_name,
        },
        "createdAt": dish.created_at.isoformat(),
    }


def serialize_dish_created_event(
    *,
    occurred_at: datetime,
    dish: DishOrder,
    trace: TraceContext,
) -> str:
    return _serialize_event(
        event_type="dish.created",
        occurred_at=occurred_at,
        restaurant_id=str(dish.restaurant_id),
        trace=trace,
        payload=_dish_payload(dish),
    )


def serialize_dish_status_changed_event(
    *,
    occurred_at: datetime,
    dish: DishOrder,
    trace: TraceContext,
) -> str:
    return _serialize_event(
        event_type="dish.status_changed",
        occurred_at=occurred_at,
        restaurant_id=str(dish.restaurant_id),
        trace=trace,
        payload={
            "dishId": str(dish.dish_id),
            "tableId": str(dish.table_id),
            "kitchenStatus": dish.kitchen_status.value,
        },
    )


def serialize_order_updated_event(
    *,
    occurred_at: datetime,
    sitting: Sitting,
    trace: TraceContext,
) -> str:
    return _serialize_event(
        event_type="order.updated",
        occurred_at=occurred_at,
        restaurant_id=str(sitting.restaurant_id),
        trace=trace,
        payload={
            "tableId": str(sitting.table_id),
            "sittingId": str(sitting.sitting_id),
            "totalAmount": _money(sitting.total),
            "paidAmount": _money(sitting.paid),
            "remainingAmount": _money(sitting.remaining),
            "noItems": sitting.item_count,
            "status": sitting.payment_state.value,
        },
    )


def serialize_split_updated_event(
    *,
    occurred_at: datetime,
    restaurant_id: str,
    table_id: str,
    reason: str,
    status: SplitStatus,
    redistribution: RedistributionOutcome | None,
    trace: TraceContext,
) -> str:
    payload: dict[str, Any] = {
        "tableId": table_id,
        "reason": reason,
        "active": status.active,
        "totalPeople": status.total_people,
        "paidPeople": status.paid_people,
        "pendingPeople": status.pending_people,
        "totalCollected": _money(status.total_collected),
        "totalRemaining": _money(status.total_remaining),
    }
    if redistribution is not None:
        payload["redistribution"] = {
            "redistributed": redistribution.redistributed,
            "newTotal": _money(redistribution.new_total),
            "amountPerPendingPerson": _money(redistribution.amount_per_pending_person),
            "pendingPeople": redistribution.pending_people,
            "newGuestsAdded": redistribution.new_guests_added,
        }
    return _serialize_event(
        event_type="split.updated",
        occurred_at=occurred_at,
        restaurant_id=restaurant_id,
        trace=trace,
        payload=payload,
    )


def serialize_full_refresh_event(
    *,
    occurred_at: datetime,
    restaurant_id: str,
    table_id: str,
    reason: str,
    trace: TraceContext,
) -> str:
    return _serialize_event(
        event_type="table.fullRefresh",
        occurred_at=occurred_at,
        restaurant_id=restaurant_id,
        trace=trace,
        payload={"tableId": table_id, "reason": reason},
    )
