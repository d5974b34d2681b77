from __future__ import annotations

from datetime import datetime, timezone

from prometheus_client import Counter, Histogram

from tabsettle.domain.dish.entities import DishOrder
from tabsettle.domain.payment.entities import PaymentRecord
from tabsettle.domain.sitting.entities import Sitting

DISH_ORDERS_TOTAL = Counter(
    "tabsettle_dish_orders_total",
    "Total number of dish orders placed.",
    ["restaurant_id"],
)

KITCHEN_TRANSITION_TOTAL = Counter(
    "tabsettle_kitchen_transition_total",
    "Total number of kitchen status changes.",
    ["from", "to"],
)

PAYMENTS_TOTAL = Counter(
    "tabsettle_payments_total",
    "Total number of payments applied by modality.",
    ["restaurant_id", "modality"],
)

PAYMENT_AMOUNT_CENTS = Histogram(
    "tabsettle_payment_amount_cents",
    "Amount of applied payments in cents.",
    ["modality"],
    buckets=(100, 500, 1000, 2500, 5000, 10000, 25000, 50000, 100000),
)

PAYMENTS_REJECTED_TOTAL = Counter(
    "tabsettle_payments_rejected_total",
    "Total number of rejected payment attempts.",
    ["restaurant_id", "reason"],
)

PAYMENT_REPLAYS_TOTAL = Counter(
    "tabsettle_payment_replays_total",
    "Total number of payments answered from an idempotency key.",
    ["restaurant_id"],
)

SITTINGS_OPENED_TOTAL = Counter(
    "tabsettle_sittings_opened_total",
    "Total number of sittings opened.",
    ["restaurant_id"],
)

SITTINGS_CLOSED_TOTAL = Counter(
    "tabsettle_sittings_closed_total",
    "Total number of sittings closed by full payment.",
    ["restaurant_id"],
)

SITTING_DURATION_SECONDS = Histogram(
    "tabsettle_sitting_duration_seconds",
    "Time between the first dish order and full payment.",
)

SPLIT_INITIALIZED_TOTAL = Counter(
    "tabsettle_split_initialized_total",
    "Total number of split bills initialized.",
    ["restaurant_id"],
)

SPLIT_REDISTRIBUTIONS_TOTAL = Counter(
    "tabsettle_split_redistributions_total",
    "Total number of split redistributions triggered by new dish orders.",
    ["restaurant_id", "result"],
)


def record_dish_order(dish: DishOrder) -> None:
    DISH_ORDERS_TOTAL.labels(restaurant_id=str(dish.restaurant_id)).inc()


def record_kitchen_transition(from_status: str, to_status: str) -> None:
    KITCHEN_TRANSITION_TOTAL.labels(**{"from": from_status, "to": to_status}).inc()


def record_payment(payment: PaymentRecord) -> None:
    PAYMENTS_TOTAL.labels(
        restaurant_id=str(payment.restaurant_id),
        modality=payment.modality.value,
    ).inc()
    PAYMENT_AMOUNT_CENTS.labels(modality=payment.modality.value).observe(
        payment.amount.amount_cents
    )


def record_payment_rejected(restaurant_id: str, reason: str) -> None:
    PAYMENTS_REJECTED_TOTAL.labels(restaurant_id=restaurant_id, reason=reason).inc()


def record_payment_replay(restaurant_id: str) -> None:
    PAYMENT_REPLAYS_TOTAL.labels(restaurant_id=restaurant_id).inc()


def record_sitting_opened(restaurant_id: str) -> None:
    SITTINGS_OPENED_TOTAL.labels(restaurant_id=restaurant_id).inc()


def record_sitting_closed(sitting: Sitting, now: datetime | None = None) -> None:
    SITTINGS_CLOSED_TOTAL.labels(restaurant_id=str(sitting.restaurant_id)).inc()
    current = sitting.closed_at or now or datetime.now(timezone.utc)
    SITTING_DURATION_SECONDS.observe(max((current - sitting.created_at).total_seconds(), 0.0))


def record_split_initialized(restaurant_id: str) -> None:
    SPLIT_INITIALIZED_TOTAL.labels(restaurant_id=restaurant_id).inc()


def record_split_redistribution(restaurant_id: str, redistributed: bool) -> None:
    SPLIT_REDISTRIBUTIONS_TOTAL.labels(
        restaurant_id=restaurant_id,
        result="redistributed" if redistributed else "skipped",
    ).inc()
