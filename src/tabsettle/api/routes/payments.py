from __future__ import annotations

from fastapi import APIRouter, Header

from tabsettle.api.dependencies import (
    account_engine,
    account_repository,
    current_trace_context,
    dish_repository,
    event_publisher,
)
from tabsettle.api.middleware.request_id import IDEMPOTENCY_KEY_HEADER
from tabsettle.application.dto.requests import (
    InitializeSplitBillRequest,
    PayAmountRequest,
    PaySplitShareRequest,
)
from tabsettle.application.dto.responses import (
    PaymentResponse,
    SplitBillResponse,
    SplitStatusResponse,
)
from tabsettle.application.use_cases.payments import PayAmount, PayDishOrder, PaySplitShare
from tabsettle.application.use_cases.split_bill import GetSplitStatus, InitializeSplitBill
from tabsettle.domain.common.ids import DishOrderId, RestaurantId, TableId
from tabsettle.infrastructure.config import default_currency

router = APIRouter()


def _pay_dish_order_use_case() -> PayDishOrder:
    return PayDishOrder(
        account_repository=account_repository(),
        dish_repository=dish_repository(),
        publisher=event_publisher(),
        engine=account_engine(),
    )


def _pay_amount_use_case() -> PayAmount:
    return PayAmount(
        account_repository=account_repository(),
        publisher=event_publisher(),
        engine=account_engine(),
    )


def _pay_split_share_use_case() -> PaySplitShare:
    return PaySplitShare(
        account_repository=account_repository(),
        publisher=event_publisher(),
        engine=account_engine(),
    )


def _initialize_split_bill_use_case() -> InitializeSplitBill:
    return InitializeSplitBill(
        account_repository=account_repository(),
        publisher=event_publisher(),
        engine=account_engine(),
    )


def _split_status_use_case() -> GetSplitStatus:
    return GetSplitStatus(
        account_repository=account_repository(),
        engine=account_engine(),
        default_currency=default_currency(),
    )


@router.post(
    "/v1/restaurants/{restaurant_id}/dishes/{dish_id}/pay",
    response_model=PaymentResponse,
)
def pay_dish_order(
    restaurant_id: str,
    dish_id: str,
    idempotency_key: str | None = Header(default=None, alias=IDEMPOTENCY_KEY_HEADER),
) -> PaymentResponse:
    return _pay_dish_order_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        dish_id=DishOrderId(dish_id),
        trace_ctx=current_trace_context(),
        idempotency_key=idempotency_key,
    )


@router.post(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/payments",
    response_model=PaymentResponse,
)
def pay_amount(
    restaurant_id: str,
    table_id: str,
    request_dto: PayAmountRequest,
    idempotency_key: str | None = Header(default=None, alias=IDEMPOTENCY_KEY_HEADER),
) -> PaymentResponse:
    return _pay_amount_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
        request_dto=request_dto,
        trace_ctx=current_trace_context(),
        idempotency_key=idempotency_key,
    )


@router.post(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/split-bill",
    response_model=SplitBillResponse,
)
def initialize_split_bill(
    restaurant_id: str,
    table_id: str,
    request_dto: InitializeSplitBillRequest,
) -> SplitBillResponse:
    return _initialize_split_bill_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
        request_dto=request_dto,
        trace_ctx=current_trace_context(),
    )


@router.get(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/split-bill",
    response_model=SplitStatusResponse,
)
def get_split_status(restaurant_id: str, table_id: str) -> SplitStatusResponse:
    return _split_status_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
    )


@router.post(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/split-bill/pay",
    response_model=PaymentResponse,
)
def pay_split_share(
    restaurant_id: str,
    table_id: str,
    request_dto: PaySplitShareRequest,
    idempotency_key: str | None = Header(default=None, alias=IDEMPOTENCY_KEY_HEADER),
) -> PaymentResponse:
    return _pay_split_share_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
        request_dto=request_dto,
        trace_ctx=current_trace_context(),
        idempotency_key=idempotency_key,
    )
