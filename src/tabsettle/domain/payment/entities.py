from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from tabsettle.domain.common.ids import DishOrderId, PaymentId, RestaurantId, SittingId, TableId
from tabsettle.domain.common.money import Money
from tabsettle.domain.common.owner import Owner
from tabsettle.domain.participant.entities import PaymentModality


@dataclass(frozen=True)
class PaymentRecord:
    payment_id: PaymentId
    restaurant_id: RestaurantId
    table_id: TableId
    sitting_id: SittingId
    modality: PaymentModality
    amount: Money
    created_at: datetime
    owner: Owner | None = None
    dish_id: DishOrderId | None = None
    idempotency_key: str | None = None
    idempotency_hash: str | None = None
    closed_sitting: bool = False

    def __post_init__(self) -> None:
        if self.amount.amount_cents <= 0:
            raise ValueError("payment amount must be > 0")
        if self.idempotency_key is not None and not self.idempotency_hash:
            raise ValueError("idempotency_hash is required with an idempotency_key")
