from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from tabsettle.domain.account.aggregate import TableAccount
from tabsettle.domain.account.ledger import TableAccountLedger
from tabsettle.domain.account.participants import ActiveParticipantTracker
from tabsettle.domain.account.split_bill import RedistributionOutcome, SplitBillCoordinator
from tabsettle.domain.common.ids import DishOrderId, SittingId
from tabsettle.domain.common.money import Money
from tabsettle.domain.common.owner import Owner
from tabsettle.domain.dish.entities import DishOrder, KitchenStatus, create_dish_order
from tabsettle.domain.sitting.entities import Sitting


class DishOrderNotFoundError(Exception):
    pass


@dataclass(frozen=True)
class DishPlacement:
    dish: DishOrder
    sitting: Sitting
    opened_sitting: bool
    redistribution: RedistributionOutcome | None = None


class DishOrderRegistry:
    def __init__(
        self,
        ledger: TableAccountLedger,
        tracker: ActiveParticipantTracker,
        coordinator: SplitBillCoordinator,
        new_dish_id: Callable[[], DishOrderId],
        new_sitting_id: Callable[[], SittingId],
    ) -> None:
        self._ledger = ledger
        self._tracker = tracker
        self._coordinator = coordinator
        self._new_dish_id = new_dish_id
        self._new_sitting_id = new_sitting_id

    def add_dish_order(
        self,
        account: TableAccount,
        owner: Owner,
        item_name: str,
        quantity: int,
        unit_price: Money,
        extra_price: Money,
        now: datetime,
        images: tuple[str, ...] = (),
        custom_fields: dict[str, Any] | None = None,
    ) -> tuple[TableAccount, DishPlacement]:
        account, opened = self._ledger.ensure_open_sitting(
            account,
            new_sitting_id=self._new_sitting_id,
            currency=unit_price.currency,
            now=now,
        )
        sitting = self._ledger.require_open_sitting(account)
        dish = create_dish_order(
            dish_id=self._new_dish_id(),
            sitting_id=sitting.sitting_id,
            restaurant_id=sitting.restaurant_id,
            table_id=sitting.table_id,
            owner=owner,
            item_name=item_name,
            quantity=quantity,
            unit_price=unit_price,
            extra_price=extra_price,
            now=now,
            images=images,
            custom_fields=custom_fields,
        )
        account = account.with_dish(dish)
        account = self._ledger.recompute_totals(account)
        account = self._tracker.register_or_update(account, owner, now)

        redistribution = None
        if self._coordinator.is_active(account):
            account, redistribution = self._coordinator.redistribute(account, owner, now)

        return account, DishPlacement(
            dish=dish,
            sitting=self._ledger.require_open_sitting(account),
            opened_sitting=opened,
            redistribution=redistribution,
        )

    def find_dish(self, account: TableAccount, dish_id: DishOrderId) -> DishOrder:
        dish = account.find_dish(dish_id)
        if dish is None:
            raise DishOrderNotFoundError(f"dish order not found: {dish_id}")
        return dish

    def list_dish_orders(self, account: TableAccount) -> tuple[DishOrder, ...]:
        if account.open_sitting is None:
            return ()
        return account.dishes

    def update_kitchen_status(self, dish: DishOrder, status: str) -> DishOrder:
        return dish.with_kitchen_status(KitchenStatus.parse(status))
