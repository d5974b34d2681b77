from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from tabsettle.domain.common.ids import DishOrderId, RestaurantId, SittingId, TableId
from tabsettle.domain.common.money import Money
from tabsettle.domain.common.owner import Owner


class KitchenStatus(str, Enum):
    PENDING = "PENDING"
    COOKING = "COOKING"
    DELIVERED = "DELIVERED"

    @classmethod
    def parse(cls, value: str) -> KitchenStatus:
        try:
            return cls(value.strip().upper())
        except ValueError as exc:
            allowed = ", ".join(status.value for status in cls)
            raise InvalidKitchenStatusError(
                f"invalid kitchen status: {value} (expected one of {allowed})"
            ) from exc


class DishPaymentStatus(str, Enum):
    NOT_PAID = "NOT_PAID"
    PAID = "PAID"


@dataclass(frozen=True)
class DishOrder:
    dish_id: DishOrderId
    sitting_id: SittingId
    restaurant_id: RestaurantId
    table_id: TableId
    owner: Owner
    item_name: str
    quantity: int
    unit_price: Money
    extra_price: Money
    kitchen_status: KitchenStatus
    payment_status: DishPaymentStatus
    created_at: datetime
    images: tuple[str, ...] = ()
    custom_fields: dict[str, Any] | None = field(default=None, compare=False)
    paid_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.item_name.strip():
            raise ValueError("item_name must be non-empty")
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if self.unit_price.currency != self.extra_price.currency:
            raise ValueError("extra_price currency must match unit_price currency")
        if self.line_total.is_zero():
            # a free line could never be paid, so its sitting could never close
            raise ValueError("dish line total must be > 0")
        if self.payment_status == DishPaymentStatus.PAID and self.paid_at is None:
            raise ValueError("paid_at must be set when dish is PAID")

    @property
    def line_total(self) -> Money:
        return self.unit_price.plus(self.extra_price).times(self.quantity)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == DishPaymentStatus.PAID

    def mark_paid(self, now: datetime) -> DishOrder:
        if self.is_paid:
            raise AlreadyPaidError(f"dish order {self.dish_id} is already paid")
        return replace(self, payment_status=DishPaymentStatus.PAID, paid_at=now)

    def with_kitchen_status(self, status: KitchenStatus) -> DishOrder:
        return replace(self, kitchen_status=status)

    def with_owner(self, owner: Owner) -> DishOrder:
        return replace(self, owner=owner)


def create_dish_order(
    dish_id: DishOrderId,
    sitting_id: SittingId,
    restaurant_id: RestaurantId,
    table_id: TableId,
    owner: Owner,
    item_name: str,
    quantity: int,
    unit_price: Money,
    extra_price: Money,
    now: datetime,
    images: tuple[str, ...] = (),
    custom_fields: dict[str, Any] | None = None,
) -> DishOrder:
    return DishOrder(
        dish_id=dish_id,
        sitting_id=sitting_id,
        restaurant_id=restaurant_id,
        table_id=table_id,
        owner=owner,
        item_name=item_name,
        quantity=quantity,
        unit_price=unit_price,
        extra_price=extra_price,
        kitchen_status=KitchenStatus.PENDING,
        payment_status=DishPaymentStatus.NOT_PAID,
        created_at=now,
        images=images,
        custom_fields=custom_fields,
    )


class AlreadyPaidError(Exception):
    pass


class InvalidKitchenStatusError(Exception):
    pass
