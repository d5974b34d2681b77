from __future__ import annotations

from datetime import datetime, timezone

from tabsettle.application.dto.responses import TableRegistryResponse, TableResponse
from tabsettle.application.errors import ValidationError
from tabsettle.application.mappers.account_mapper import (
    to_account_summary_response,
    to_table_response,
)
from tabsettle.application.mappers.event_envelope import serialize_full_refresh_event
from tabsettle.application.ports.publisher import EventPublisher
from tabsettle.application.ports.repositories import TableRepository
from tabsettle.application.use_cases.context import TraceContext
from tabsettle.application.use_cases.notify import publish_best_effort
from tabsettle.domain.common.ids import RestaurantId, TableId
from tabsettle.domain.table.entities import Table, TableStatus

_STATUS_MAP: dict[str, TableStatus | None] = {
    "ALL": None,
    "AVAILABLE": TableStatus.AVAILABLE,
    "OCCUPIED": TableStatus.OCCUPIED,
}


class RegisterTable:
    def __init__(
        self,
        table_repository: TableRepository,
        publisher: EventPublisher,
    ) -> None:
        self._table_repository = table_repository
        self._publisher = publisher

    def execute(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        trace_ctx: TraceContext,
    ) -> TableResponse:
        if not str(table_id).strip():
            raise ValidationError("table_id must be non-empty")

        table = self._table_repository.get(table_id=table_id, restaurant_id=restaurant_id)
        if table is not None:
            return to_table_response(table)

        table = Table(table_id=table_id, restaurant_id=restaurant_id)
        self._table_repository.upsert(table)
        message = serialize_full_refresh_event(
            occurred_at=datetime.now(timezone.utc),
            restaurant_id=str(restaurant_id),
            table_id=str(table_id),
            reason="table_registered",
            trace=trace_ctx,
        )
        publish_best_effort(self._publisher, str(restaurant_id), "table.fullRefresh", message)
        return to_table_response(table)


class ListTables:
    def __init__(self, table_repository: TableRepository) -> None:
        self._table_repository = table_repository

    def execute(
        self,
        restaurant_id: RestaurantId,
        *,
        status: str = "ALL",
    ) -> TableRegistryResponse:
        normalized_status = status.upper()
        if normalized_status not in _STATUS_MAP:
            raise ValidationError(f"invalid table status filter: {status}")

        rows = self._table_repository.list_for_restaurant(
            restaurant_id=restaurant_id,
            status=_STATUS_MAP[normalized_status],
        )
        return TableRegistryResponse(
            tables=[to_account_summary_response(row.table, row.sitting) for row in rows]
        )
