from __future__ import annotations

import logging
from datetime import datetime, timezone

from tabsettle.application.dto.requests import PlaceDishOrderRequest, UpdateKitchenStatusRequest
from tabsettle.application.dto.responses import (
    DishOrderListResponse,
    DishOrderResponse,
    DishPlacementResponse,
)
from tabsettle.application.errors import ValidationError
from tabsettle.application.mappers.account_mapper import (
    owner_from_request,
    to_account_summary_response,
    to_dish_order_response,
    to_redistribution_response,
)
from tabsettle.application.mappers.event_envelope import (
    serialize_dish_created_event,
    serialize_dish_status_changed_event,
    serialize_order_updated_event,
    serialize_split_updated_event,
)
from tabsettle.application.metrics.account_lifecycle import (
    record_dish_order,
    record_kitchen_transition,
    record_sitting_opened,
    record_split_redistribution,
)
from tabsettle.application.ports.publisher import EventPublisher
from tabsettle.application.ports.repositories import (
    DishOrderRepository,
    PaymentLookup,
    TableAccountRepository,
    TableNotFoundError,
)
from tabsettle.application.use_cases.context import TraceContext
from tabsettle.application.use_cases.engine import AccountEngine
from tabsettle.application.use_cases.notify import publish_best_effort
from tabsettle.domain.account.aggregate import TableAccount
from tabsettle.domain.account.dish_registry import DishOrderNotFoundError, DishPlacement
from tabsettle.domain.account.split_bill import SplitStatus
from tabsettle.domain.common.ids import DishOrderId, RestaurantId, TableId
from tabsettle.domain.common.money import Money
from tabsettle.domain.table.entities import Table

logger = logging.getLogger("tabsettle.application.dish_orders")


class PlaceDishOrder:
    def __init__(
        self,
        account_repository: TableAccountRepository,
        publisher: EventPublisher,
        engine: AccountEngine,
        default_currency: str = "USD",
    ) -> None:
        self._account_repository = account_repository
        self._publisher = publisher
        self._engine = engine
        self._default_currency = default_currency

    def execute(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        request_dto: PlaceDishOrderRequest,
        trace_ctx: TraceContext,
    ) -> DishPlacementResponse:
        now = datetime.now(timezone.utc)
        currency = (request_dto.currency or self._default_currency).upper()

        def mutate(
            account: TableAccount,
            _find_payment: PaymentLookup,
        ) -> tuple[TableAccount, tuple[DishPlacement, Table, SplitStatus]]:
            account, placement = self._engine.registry.add_dish_order(
                account,
                owner=owner_from_request(request_dto.owner),
                item_name=request_dto.item_name,
                quantity=request_dto.quantity,
                unit_price=Money(amount_cents=request_dto.unit_price_cents, currency=currency),
                extra_price=Money(amount_cents=request_dto.extra_price_cents, currency=currency),
                now=now,
                images=tuple(request_dto.images),
                custom_fields=request_dto.custom_fields,
            )
            split_status = self._engine.coordinator.status(account, currency)
            return account, (placement, account.table, split_status)

        try:
            placement, table, split_status = self._account_repository.update(
                restaurant_id, table_id, mutate
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        record_dish_order(placement.dish)
        if placement.opened_sitting:
            record_sitting_opened(str(restaurant_id))
        if placement.redistribution is not None:
            record_split_redistribution(str(restaurant_id), placement.redistribution.redistributed)
        logger.info(
            "dish_order_placed",
            extra={
                "restaurant_id": str(restaurant_id),
                "table_id": str(table_id),
                "sitting_id": str(placement.sitting.sitting_id),
                "dish_id": str(placement.dish.dish_id),
            },
        )

        self._publish(placement, split_status, trace_ctx, now)
        return DishPlacementResponse(
            dish=to_dish_order_response(placement.dish),
            account=to_account_summary_response(table, placement.sitting),
            openedSitting=placement.opened_sitting,
            redistribution=(
                to_redistribution_response(placement.redistribution)
                if placement.redistribution is not None
                else None
            ),
        )

    def _publish(
        self,
        placement: DishPlacement,
        split_status: SplitStatus,
        trace_ctx: TraceContext,
        now: datetime,
    ) -> None:
        restaurant_id = str(placement.dish.restaurant_id)
        publish_best_effort(
            self._publisher,
            restaurant_id,
            "dish.created",
            serialize_dish_created_event(
                occurred_at=now,
                dish=placement.dish,
                trace=trace_ctx,
            ),
        )
        publish_best_effort(
            self._publisher,
            restaurant_id,
            "order.updated",
            serialize_order_updated_event(
                occurred_at=now,
                sitting=placement.sitting,
                trace=trace_ctx,
            ),
        )
        if placement.redistribution is not None:
            publish_best_effort(
                self._publisher,
                restaurant_id,
                "split.updated",
                serialize_split_updated_event(
                    occurred_at=now,
                    restaurant_id=restaurant_id,
                    table_id=str(placement.dish.table_id),
                    reason="redistributed",
                    status=split_status,
                    redistribution=placement.redistribution,
                    trace=trace_ctx,
                ),
            )


class ListTableDishes:
    def __init__(self, account_repository: TableAccountRepository, engine: AccountEngine) -> None:
        self._account_repository = account_repository
        self._engine = engine

    def execute(self, restaurant_id: RestaurantId, table_id: TableId) -> DishOrderListResponse:
        account = self._account_repository.load(restaurant_id, table_id)
        if account is None:
            raise TableNotFoundError(
                f"table not found for restaurant_id={restaurant_id}, table_id={table_id}"
            )
        return DishOrderListResponse(
            dishes=[
                to_dish_order_response(dish)
                for dish in self._engine.registry.list_dish_orders(account)
            ]
        )


class UpdateKitchenStatus:
    def __init__(
        self,
        dish_repository: DishOrderRepository,
        publisher: EventPublisher,
        engine: AccountEngine,
    ) -> None:
        self._dish_repository = dish_repository
        self._publisher = publisher
        self._engine = engine

    def execute(
        self,
        restaurant_id: RestaurantId,
        dish_id: DishOrderId,
        request_dto: UpdateKitchenStatusRequest,
        trace_ctx: TraceContext,
    ) -> DishOrderResponse:
        dish = self._dish_repository.get(dish_id)
        if dish is None or dish.restaurant_id != restaurant_id:
            raise DishOrderNotFoundError(f"dish order not found: {dish_id}")

        changed = self._engine.registry.update_kitchen_status(dish, request_dto.status)
        updated = self._dish_repository.update_kitchen_status(dish_id, changed.kitchen_status)
        if updated is None:
            raise DishOrderNotFoundError(f"dish order not found: {dish_id}")

        record_kitchen_transition(dish.kitchen_status.value, updated.kitchen_status.value)
        publish_best_effort(
            self._publisher,
            str(updated.restaurant_id),
            "dish.status_changed",
            serialize_dish_status_changed_event(
                occurred_at=datetime.now(timezone.utc),
                dish=updated,
                trace=trace_ctx,
            ),
        )
        return to_dish_order_response(updated)
