from __future__ import annotations

from datetime import datetime, timezone

from tabsettle.application.dto.requests import LinkGuestToUserRequest
from tabsettle.application.dto.responses import (
    AccountSummaryResponse,
    GuestLinkResponse,
    ParticipantListResponse,
)
from tabsettle.application.mappers.account_mapper import (
    to_account_summary_response,
    to_guest_link_response,
    to_participant_response,
)
from tabsettle.application.mappers.event_envelope import serialize_full_refresh_event
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
from tabsettle.domain.account.participants import GuestLinkResult
from tabsettle.domain.common.ids import RestaurantId, TableId


def _load_or_raise(
    repository: TableAccountRepository,
    restaurant_id: RestaurantId,
    table_id: TableId,
) -> TableAccount:
    account = repository.load(restaurant_id, table_id)
    if account is None:
        raise TableNotFoundError(
            f"table not found for restaurant_id={restaurant_id}, table_id={table_id}"
        )
    return account


class GetTableAccountSummary:
    """Reads the open sitting; a table without one answers with an inactive summary."""

    def __init__(self, account_repository: TableAccountRepository, engine: AccountEngine) -> None:
        self._account_repository = account_repository
        self._engine = engine

    def execute(self, restaurant_id: RestaurantId, table_id: TableId) -> AccountSummaryResponse:
        account = _load_or_raise(self._account_repository, restaurant_id, table_id)
        return to_account_summary_response(
            account.table,
            self._engine.ledger.get_summary(account),
        )


class ListParticipants:
    def __init__(self, account_repository: TableAccountRepository, engine: AccountEngine) -> None:
        self._account_repository = account_repository
        self._engine = engine

    def execute(self, restaurant_id: RestaurantId, table_id: TableId) -> ParticipantListResponse:
        account = _load_or_raise(self._account_repository, restaurant_id, table_id)
        return ParticipantListResponse(
            participants=[
                to_participant_response(participant)
                for participant in self._engine.tracker.list_participants(account)
            ]
        )


class LinkGuestToUser:
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
        request_dto: LinkGuestToUserRequest,
        trace_ctx: TraceContext,
    ) -> GuestLinkResponse:
        now = datetime.now(timezone.utc)

        def mutate(
            account: TableAccount,
            _find_payment: PaymentLookup,
        ) -> tuple[TableAccount, GuestLinkResult]:
            return self._engine.tracker.link_guest_to_user(
                account,
                guest_id=request_dto.guest_id,
                user_id=request_dto.user_id,
                now=now,
            )

        result = self._account_repository.update(restaurant_id, table_id, mutate)
        if result.updated_dishes or result.updated_participants or result.updated_shares:
            publish_best_effort(
                self._publisher,
                str(restaurant_id),
                "table.fullRefresh",
                serialize_full_refresh_event(
                    occurred_at=now,
                    restaurant_id=str(restaurant_id),
                    table_id=str(table_id),
                    reason="guest_linked",
                    trace=trace_ctx,
                ),
            )
        return to_guest_link_response(result)
