from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, TypeVar

from tabsettle.domain.account.aggregate import TableAccount
from tabsettle.domain.common.ids import DishOrderId, RestaurantId, TableId
from tabsettle.domain.dish.entities import DishOrder, KitchenStatus
from tabsettle.domain.payment.entities import PaymentRecord
from tabsettle.domain.sitting.entities import Sitting
from tabsettle.domain.table.entities import Table, TableStatus

T = TypeVar("T")

PaymentLookup = Callable[[str], PaymentRecord | None]
AccountMutation = Callable[[TableAccount, PaymentLookup], tuple[TableAccount, T]]


class TableRepository(Protocol):
    def get(self, table_id: TableId, restaurant_id: RestaurantId) -> Table | None: ...

    def upsert(self, table: Table) -> None: ...

    def list_for_restaurant(
        self,
        restaurant_id: RestaurantId,
        status: TableStatus | None,
    ) -> list[TableListing]: ...


class TableAccountRepository(Protocol):
    def load(self, restaurant_id: RestaurantId, table_id: TableId) -> TableAccount | None:
        """Latest committed snapshot, without taking the table lock."""
        ...

    def update(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        mutate: AccountMutation[T],
    ) -> T:
        """Run `mutate` under the table lock and persist the account it returns.

        The mutation receives a lookup for payments already recorded on the table by
        idempotency key. Any exception raised by `mutate` rolls the update back.
        """
        ...


class DishOrderRepository(Protocol):
    def get(self, dish_id: DishOrderId) -> DishOrder | None: ...

    def update_kitchen_status(
        self,
        dish_id: DishOrderId,
        status: KitchenStatus,
    ) -> DishOrder | None: ...


class TableNotFoundError(Exception):
    pass


@dataclass(frozen=True)
class TableListing:
    table: Table
    sitting: Sitting | None
