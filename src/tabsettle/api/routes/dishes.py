from __future__ import annotations

from fastapi import APIRouter, status

from tabsettle.api.dependencies import (
    account_engine,
    account_repository,
    current_trace_context,
    dish_repository,
    event_publisher,
)
from tabsettle.application.dto.requests import PlaceDishOrderRequest, UpdateKitchenStatusRequest
from tabsettle.application.dto.responses import (
    DishOrderListResponse,
    DishOrderResponse,
    DishPlacementResponse,
)
from tabsettle.application.use_cases.dish_orders import (
    ListTableDishes,
    PlaceDishOrder,
    UpdateKitchenStatus,
)
from tabsettle.domain.common.ids import DishOrderId, RestaurantId, TableId
from tabsettle.infrastructure.config import default_currency

router = APIRouter()


def _place_dish_order_use_case() -> PlaceDishOrder:
    return PlaceDishOrder(
        account_repository=account_repository(),
        publisher=event_publisher(),
        engine=account_engine(),
        default_currency=default_currency(),
    )


def _list_dishes_use_case() -> ListTableDishes:
    return ListTableDishes(account_repository=account_repository(), engine=account_engine())


def _update_kitchen_status_use_case() -> UpdateKitchenStatus:
    return UpdateKitchenStatus(
        dish_repository=dish_repository(),
        publisher=event_publisher(),
        engine=account_engine(),
    )


@router.post(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/dishes",
    response_model=DishPlacementResponse,
    status_code=status.HTTP_201_CREATED,
)
def place_dish_order(
    restaurant_id: str,
    table_id: str,
    request_dto: PlaceDishOrderRequest,
) -> DishPlacementResponse:
    return _place_dish_order_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
        request_dto=request_dto,
        trace_ctx=current_trace_context(),
    )


@router.get(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/dishes",
    response_model=DishOrderListResponse,
)
def list_dishes(restaurant_id: str, table_id: str) -> DishOrderListResponse:
    return _list_dishes_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
    )


@router.put(
    "/v1/restaurants/{restaurant_id}/dishes/{dish_id}/status",
    response_model=DishOrderResponse,
)
def update_kitchen_status(
    restaurant_id: str,
    dish_id: str,
    request_dto: UpdateKitchenStatusRequest,
) -> DishOrderResponse:
    return _update_kitchen_status_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        dish_id=DishOrderId(dish_id),
        request_dto=request_dto,
        trace_ctx=current_trace_context(),
    )
