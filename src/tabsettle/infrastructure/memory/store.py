from __future__ import annotations

import threading

from tabsettle.application.ports.repositories import (
    AccountMutation,
    DishOrderRepository,
    T,
    TableAccountRepository,
    TableListing,
    TableNotFoundError,
    TableRepository,
)
from tabsettle.domain.account.aggregate import TableAccount
from tabsettle.domain.common.ids import DishOrderId, RestaurantId, SittingId, TableId
from tabsettle.domain.dish.entities import DishOrder, KitchenStatus
from tabsettle.domain.participant.entities import Participant
from tabsettle.domain.payment.entities import PaymentRecord
from tabsettle.domain.sitting.entities import Sitting
from tabsettle.domain.split.entities import SplitShare
from tabsettle.domain.table.entities import Table, TableStatus

_TableKey = tuple[str, str]


class InMemoryAccountStore:
    """Process-local state shared by the in-memory repositories.

    `_guard` keeps the dictionaries consistent; the per-table locks serialize mutations of
    one table the way a row lock does in the SQL backend.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._table_locks: dict[_TableKey, threading.Lock] = {}
        self._tables: dict[_TableKey, Table] = {}
        self._sittings: dict[SittingId, Sitting] = {}
        self._open_sittings: dict[_TableKey, SittingId] = {}
        self._dishes: dict[DishOrderId, DishOrder] = {}
        self._participants: dict[_TableKey, tuple[Participant, ...]] = {}
        self._shares: dict[_TableKey, tuple[SplitShare, ...]] = {}
        self._payments: dict[_TableKey, list[PaymentRecord]] = {}

    def table_lock(self, key: _TableKey) -> threading.Lock:
        with self._guard:
            return self._table_locks.setdefault(key, threading.Lock())

    def get_table(self, key: _TableKey) -> Table | None:
        with self._guard:
            return self._tables.get(key)

    def put_table(self, table: Table) -> None:
        key = (str(table.restaurant_id), str(table.table_id))
        with self._guard:
            self._tables[key] = table

    def list_tables(self, restaurant_id: str) -> list[TableListing]:
        with self._guard:
            listings = []
            for key in sorted(self._tables):
                if key[0] != restaurant_id:
                    continue
                sitting_id = self._open_sittings.get(key)
                listings.append(
                    TableListing(
                        table=self._tables[key],
                        sitting=self._sittings[sitting_id] if sitting_id is not None else None,
                    )
                )
            return listings

    def snapshot(self, key: _TableKey) -> TableAccount | None:
        with self._guard:
            table = self._tables.get(key)
            if table is None:
                return None
            sitting_id = self._open_sittings.get(key)
            sitting = self._sittings[sitting_id] if sitting_id is not None else None
            dishes: tuple[DishOrder, ...] = ()
            payments: tuple[PaymentRecord, ...] = ()
            if sitting_id is not None:
                dishes = tuple(
                    dish for dish in self._dishes.values() if dish.sitting_id == sitting_id
                )
                payments = tuple(
                    payment
                    for payment in self._payments.get(key, [])
                    if payment.sitting_id == sitting_id
                )
            return TableAccount(
                table=table,
                sitting=sitting,
                dishes=dishes,
                participants=self._participants.get(key, ()),
                shares=self._shares.get(key, ()),
                payments=payments,
            )

    def find_payment(self, key: _TableKey, idempotency_key: str) -> PaymentRecord | None:
        with self._guard:
            for payment in self._payments.get(key, []):
                if payment.idempotency_key == idempotency_key:
                    return payment
            return None

    def commit(self, key: _TableKey, current: TableAccount, updated: TableAccount) -> None:
        with self._guard:
            self._tables[key] = updated.table
            sitting = updated.sitting
            if sitting is not None:
                self._sittings[sitting.sitting_id] = sitting
                if sitting.is_open:
                    self._open_sittings[key] = sitting.sitting_id
                elif self._open_sittings.get(key) == sitting.sitting_id:
                    del self._open_sittings[key]
            for dish in updated.dishes:
                self._dishes[dish.dish_id] = dish
            self._participants[key] = updated.participants
            self._shares[key] = updated.shares
            known = {payment.payment_id for payment in current.payments}
            history = self._payments.setdefault(key, [])
            history.extend(
                payment for payment in updated.payments if payment.payment_id not in known
            )

    def get_dish(self, dish_id: DishOrderId) -> DishOrder | None:
        with self._guard:
            return self._dishes.get(dish_id)

    def put_dish(self, dish: DishOrder) -> None:
        with self._guard:
            self._dishes[dish.dish_id] = dish


class InMemoryTableRepository(TableRepository):
    def __init__(self, store: InMemoryAccountStore) -> None:
        self._store = store

    def get(self, table_id: TableId, restaurant_id: RestaurantId) -> Table | None:
        return self._store.get_table((str(restaurant_id), str(table_id)))

    def upsert(self, table: Table) -> None:
        self._store.put_table(table)

    def list_for_restaurant(
        self,
        restaurant_id: RestaurantId,
        status: TableStatus | None,
    ) -> list[TableListing]:
        return [
            listing
            for listing in self._store.list_tables(str(restaurant_id))
            if status is None or listing.table.status == status
        ]


class InMemoryTableAccountRepository(TableAccountRepository):
    def __init__(self, store: InMemoryAccountStore) -> None:
        self._store = store

    def load(self, restaurant_id: RestaurantId, table_id: TableId) -> TableAccount | None:
        return self._store.snapshot((str(restaurant_id), str(table_id)))

    def update(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        mutate: AccountMutation[T],
    ) -> T:
        key = (str(restaurant_id), str(table_id))
        with self._store.table_lock(key):
            current = self._store.snapshot(key)
            if current is None:
                raise TableNotFoundError(
                    f"table not found for restaurant_id={restaurant_id}, table_id={table_id}"
                )
            updated, result = mutate(
                current,
                lambda idempotency_key: self._store.find_payment(key, idempotency_key),
            )
            self._store.commit(key, current, updated)
        return result


class InMemoryDishOrderRepository(DishOrderRepository):
    def __init__(self, store: InMemoryAccountStore) -> None:
        self._store = store

    def get(self, dish_id: DishOrderId) -> DishOrder | None:
        return self._store.get_dish(dish_id)

    def update_kitchen_status(
        self,
        dish_id: DishOrderId,
        status: KitchenStatus,
    ) -> DishOrder | None:
        dish = self._store.get_dish(dish_id)
        if dish is None:
            return None
        with self._store.table_lock((str(dish.restaurant_id), str(dish.table_id))):
            current = self._store.get_dish(dish_id)
            if current is None:
                return None
            updated = current.with_kitchen_status(status)
            self._store.put_dish(updated)
        return updated
