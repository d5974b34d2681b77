from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from tabsettle.domain.common.ids import RestaurantId, SittingId, TableId
from tabsettle.domain.common.money import Money


class SittingStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class PaymentState(str, Enum):
    NOT_PAID = "NOT_PAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


@dataclass(frozen=True)
class Sitting:
    sitting_id: SittingId
    restaurant_id: RestaurantId
    table_id: TableId
    status: SittingStatus
    total: Money
    paid: Money
    item_count: int
    created_at: datetime
    closed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.total.currency != self.paid.currency:
            raise ValueError("paid currency must match total currency")
        if self.paid.amount_cents > self.total.amount_cents:
            raise ValueError("paid must be <= total")
        if self.item_count < 0:
            raise ValueError("item_count must be >= 0")
        if self.status == SittingStatus.CLOSED and self.closed_at is None:
            raise ValueError("closed_at must be set when sitting status is CLOSED")

    @property
    def currency(self) -> str:
        return self.total.currency

    @property
    def remaining(self) -> Money:
        return self.total.minus(self.paid)

    @property
    def is_open(self) -> bool:
        return self.status == SittingStatus.OPEN

    @property
    def payment_state(self) -> PaymentState:
        if self.status == SittingStatus.CLOSED:
            return PaymentState.PAID
        if self.paid.is_zero():
            return PaymentState.NOT_PAID
        return PaymentState.PARTIAL

    def ensure_open(self) -> None:
        if self.status != SittingStatus.OPEN:
            raise SittingClosedError(f"sitting {self.sitting_id} is closed")

    def with_totals(self, total: Money, item_count: int) -> Sitting:
        self.ensure_open()
        if total.amount_cents < self.paid.amount_cents:
            raise ValueError("total cannot drop below the amount already paid")
        return replace(self, total=total, item_count=item_count)

    def apply_payment(self, amount: Money, now: datetime) -> Sitting:
        self.ensure_open()
        if amount.amount_cents <= 0:
            raise ValueError("payment amount must be > 0")
        remaining = self.remaining
        if amount.amount_cents > remaining.amount_cents:
            raise OverpaymentError(amount=amount, remaining=remaining)

        updated = replace(self, paid=self.paid.plus(amount))
        if updated.remaining.is_zero():
            return updated._close(now)
        return updated

    def _close(self, now: datetime) -> Sitting:
        if self.status == SittingStatus.CLOSED:
            raise SittingClosedError(f"sitting {self.sitting_id} is already closed")
        return replace(self, status=SittingStatus.CLOSED, closed_at=now)


def open_sitting(
    sitting_id: SittingId,
    restaurant_id: RestaurantId,
    table_id: TableId,
    currency: str,
    now: datetime,
) -> Sitting:
    return Sitting(
        sitting_id=sitting_id,
        restaurant_id=restaurant_id,
        table_id=table_id,
        status=SittingStatus.OPEN,
        total=Money.zero(currency),
        paid=Money.zero(currency),
        item_count=0,
        created_at=now,
    )


class SittingClosedError(Exception):
    pass


class OverpaymentError(Exception):
    def __init__(self, amount: Money, remaining: Money) -> None:
        super().__init__(
            f"payment of {amount.amount_cents} cents exceeds remaining balance "
            f"of {remaining.amount_cents} cents"
        )
        self.amount = amount
        self.remaining = remaining
        self.details = {
            "amountCents": amount.amount_cents,
            "remainingCents": remaining.amount_cents,
            "currency": remaining.currency,
        }
