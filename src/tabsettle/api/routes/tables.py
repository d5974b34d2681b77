from __future__ import annotations

from fastapi import APIRouter, Query

from tabsettle.api.dependencies import (
    account_engine,
    account_repository,
    current_trace_context,
    event_publisher,
    table_repository,
)
from tabsettle.application.dto.requests import LinkGuestToUserRequest
from tabsettle.application.dto.responses import (
    AccountSummaryResponse,
    GuestLinkResponse,
    ParticipantListResponse,
    TableRegistryResponse,
    TableResponse,
)
from tabsettle.application.use_cases.table_account import (
    GetTableAccountSummary,
    LinkGuestToUser,
    ListParticipants,
)
from tabsettle.application.use_cases.table_registry import ListTables, RegisterTable
from tabsettle.domain.common.ids import RestaurantId, TableId

router = APIRouter()


def _register_table_use_case() -> RegisterTable:
    return RegisterTable(table_repository=table_repository(), publisher=event_publisher())


def _list_tables_use_case() -> ListTables:
    return ListTables(table_repository=table_repository())


def _account_summary_use_case() -> GetTableAccountSummary:
    return GetTableAccountSummary(
        account_repository=account_repository(),
        engine=account_engine(),
    )


def _list_participants_use_case() -> ListParticipants:
    return ListParticipants(account_repository=account_repository(), engine=account_engine())


def _link_guest_use_case() -> LinkGuestToUser:
    return LinkGuestToUser(
        account_repository=account_repository(),
        publisher=event_publisher(),
        engine=account_engine(),
    )


@router.get("/v1/restaurants/{restaurant_id}/tables", response_model=TableRegistryResponse)
def list_tables(
    restaurant_id: str,
    status: str = Query(default="ALL"),
) -> TableRegistryResponse:
    return _list_tables_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        status=status,
    )


@router.put("/v1/restaurants/{restaurant_id}/tables/{table_id}", response_model=TableResponse)
def register_table(restaurant_id: str, table_id: str) -> TableResponse:
    return _register_table_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
        trace_ctx=current_trace_context(),
    )


@router.get(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/account",
    response_model=AccountSummaryResponse,
)
def get_account_summary(restaurant_id: str, table_id: str) -> AccountSummaryResponse:
    return _account_summary_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
    )


@router.get(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/participants",
    response_model=ParticipantListResponse,
)
def list_participants(restaurant_id: str, table_id: str) -> ParticipantListResponse:
    return _list_participants_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
    )


@router.post(
    "/v1/restaurants/{restaurant_id}/tables/{table_id}/link-guest",
    response_model=GuestLinkResponse,
)
def link_guest_to_user(
    restaurant_id: str,
    table_id: str,
    request_dto: LinkGuestToUserRequest,
) -> GuestLinkResponse:
    return _link_guest_use_case().execute(
        restaurant_id=RestaurantId(restaurant_id),
        table_id=TableId(table_id),
        request_dto=request_dto,
        trace_ctx=current_trace_context(),
    )
