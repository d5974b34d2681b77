from __future__ import annotations

import logging
from datetime import datetime, timezone

from tabsettle.application.dto.requests import InitializeSplitBillRequest
from tabsettle.application.dto.responses import SplitBillResponse, SplitStatusResponse
from tabsettle.application.errors import ValidationError
from tabsettle.application.mappers.account_mapper import (
    owner_from_request,
    to_money_response,
    to_split_share_response,
    to_split_status_response,
)
from tabsettle.application.mappers.event_envelope import serialize_split_updated_event
from tabsettle.application.metrics.account_lifecycle import record_split_initialized
from tabsettle.application.ports.publisher import EventPublisher
from tabsettle.application.ports.repositories import (
    PaymentLookup,
    TableAccountRepository,
    TableNotFoundError,
)
from tabsettle.application.use_cases.context import TraceContext
from tabsettle.application.use_cases.engine import AccountEngine
from tabsettle.application.use_cases.notify import publish_best_effort
from tabsettle.domain.account.aggregate import TableAccount
from tabsettle.domain.account.split_bill import SplitInitialization, SplitStatus
from tabsettle.domain.common.ids import RestaurantId, TableId

logger = logging.getLogger("tabsettle.application.split_bill")


class InitializeSplitBill:
    def __init__(
        self,
        account_repository: TableAccountRepository,
        publisher: EventPublisher,
        engine: AccountEngine,
    ) -> None:
        self._account_repository = account_repository
        self._publisher = publisher
        self._engine = engine

    def execute(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        request_dto: InitializeSplitBillRequest,
        trace_ctx: TraceContext,
    ) -> SplitBillResponse:
        now = datetime.now(timezone.utc)

        def mutate(
            account: TableAccount,
            _find_payment: PaymentLookup,
        ) -> tuple[TableAccount, tuple[SplitInitialization, SplitStatus]]:
            participants = [
                owner_from_request(participant) if participant is not None else None
                for participant in request_dto.participants
            ]
            account, initialization = self._engine.coordinator.initialize_split_bill(
                account,
                number_of_people=request_dto.number_of_people,
                participants=participants,
                now=now,
            )
            status = self._engine.coordinator.status(
                account, initialization.amount_per_person.currency
            )
            return account, (initialization, status)

        try:
            initialization, status = self._account_repository.update(
                restaurant_id, table_id, mutate
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        record_split_initialized(str(restaurant_id))
        logger.info(
            "split_bill_initialized",
            extra={
                "restaurant_id": str(restaurant_id),
                "table_id": str(table_id),
                "number_of_people": initialization.number_of_people,
                "amount_cents": initialization.amount_per_person.amount_cents,
            },
        )
        publish_best_effort(
            self._publisher,
            str(restaurant_id),
            "split.updated",
            serialize_split_updated_event(
                occurred_at=now,
                restaurant_id=str(restaurant_id),
                table_id=str(table_id),
                reason="initialized",
                status=status,
                redistribution=None,
                trace=trace_ctx,
            ),
        )
        return SplitBillResponse(
            numberOfPeople=initialization.number_of_people,
            amountPerPerson=to_money_response(initialization.amount_per_person),
            originalTotal=to_money_response(initialization.original_total),
            shares=[to_split_share_response(share) for share in initialization.shares],
        )


class GetSplitStatus:
    def __init__(
        self,
        account_repository: TableAccountRepository,
        engine: AccountEngine,
        default_currency: str = "USD",
    ) -> None:
        self._account_repository = account_repository
        self._engine = engine
        self._default_currency = default_currency

    def execute(self, restaurant_id: RestaurantId, table_id: TableId) -> SplitStatusResponse:
        account = self._account_repository.load(restaurant_id, table_id)
        if account is None:
            raise TableNotFoundError(
                f"table not found for restaurant_id={restaurant_id}, table_id={table_id}"
            )
        sitting = account.open_sitting
        currency = sitting.currency if sitting is not None else self._default_currency
        return to_split_status_response(self._engine.coordinator.status(account, currency))
