from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from tabsettle.application.dto.requests import PayAmountRequest, PaySplitShareRequest
from tabsettle.application.dto.responses import PaymentResponse
from tabsettle.application.errors import IdempotencyReplayMismatchError, ValidationError
from tabsettle.application.mappers.account_mapper import (
    owner_from_request,
    to_account_summary_response,
    to_money_response,
    to_owner_response,
)
from tabsettle.application.mappers.event_envelope import (
    serialize_full_refresh_event,
    serialize_order_updated_event,
    serialize_split_updated_event,
)
from tabsettle.application.metrics.account_lifecycle import (
    record_payment,
    record_payment_rejected,
    record_payment_replay,
    record_sitting_closed,
)
from tabsettle.application.ports.publisher import EventPublisher
from tabsettle.application.ports.repositories import (
    DishOrderRepository,
    PaymentLookup,
    TableAccountRepository,
)
from tabsettle.application.use_cases.context import TraceContext
from tabsettle.application.use_cases.engine import AccountEngine
from tabsettle.application.use_cases.notify import publish_best_effort
from tabsettle.domain.account.aggregate import TableAccount
from tabsettle.domain.account.dish_registry import DishOrderNotFoundError
from tabsettle.domain.account.ledger import NoActiveSittingError
from tabsettle.domain.account.payments import PaymentOutcome
from tabsettle.domain.account.split_bill import SplitStatus
from tabsettle.domain.common.ids import DishOrderId, RestaurantId, TableId
from tabsettle.domain.common.money import Money
from tabsettle.domain.dish.entities import AlreadyPaidError
from tabsettle.domain.payment.entities import PaymentRecord
from tabsettle.domain.sitting.entities import OverpaymentError, Sitting
from tabsettle.domain.split.entities import NoPendingShareError
from tabsettle.domain.table.entities import Table

logger = logging.getLogger("tabsettle.application.payments")

_REJECTIONS = (OverpaymentError, AlreadyPaidError, NoPendingShareError, NoActiveSittingError)

ApplyPayment = Callable[
    [TableAccount, str | None, str | None],
    tuple[TableAccount, PaymentOutcome],
]


@dataclass(frozen=True)
class _Settlement:
    payment: PaymentRecord
    table: Table
    sitting: Sitting | None
    replayed: bool
    split_status: SplitStatus | None = None


class _PaymentUseCase:
    def __init__(
        self,
        account_repository: TableAccountRepository,
        publisher: EventPublisher,
        engine: AccountEngine,
    ) -> None:
        self._account_repository = account_repository
        self._publisher = publisher
        self._engine = engine

    def _settle(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        payload: dict[str, Any],
        idempotency_key: str | None,
        apply: ApplyPayment,
        trace_ctx: TraceContext,
    ) -> PaymentResponse:
        payload_hash = _payload_hash(payload) if idempotency_key else None

        def mutate(
            account: TableAccount,
            find_payment: PaymentLookup,
        ) -> tuple[TableAccount, _Settlement]:
            if idempotency_key:
                prior = find_payment(idempotency_key)
                if prior is not None:
                    if prior.idempotency_hash != payload_hash:
                        raise IdempotencyReplayMismatchError(
                            f"idempotency key {idempotency_key} was used with a different payload"
                        )
                    return account, _Settlement(
                        payment=prior,
                        table=account.table,
                        sitting=account.open_sitting,
                        replayed=True,
                    )

            account, outcome = apply(account, idempotency_key, payload_hash)
            split_status = None
            if outcome.share is not None or account.shares:
                split_status = self._engine.coordinator.status(account, outcome.sitting.currency)
            return account, _Settlement(
                payment=outcome.payment,
                table=account.table,
                sitting=outcome.sitting,
                replayed=False,
                split_status=split_status,
            )

        try:
            settlement = self._account_repository.update(restaurant_id, table_id, mutate)
        except ValueError as exc:
            record_payment_rejected(str(restaurant_id), "validation")
            raise ValidationError(str(exc)) from exc
        except _REJECTIONS as exc:
            record_payment_rejected(str(restaurant_id), type(exc).__name__)
            logger.info(
                "payment_rejected",
                extra={
                    "restaurant_id": str(restaurant_id),
                    "table_id": str(table_id),
                    "reason": type(exc).__name__,
                },
            )
            raise

        if settlement.replayed:
            record_payment_replay(str(restaurant_id))
            logger.info(
                "payment_replayed",
                extra={
                    "restaurant_id": str(restaurant_id),
                    "table_id": str(table_id),
                    "payment_id": str(settlement.payment.payment_id),
                    "idempotency_key": idempotency_key,
                },
            )
        else:
            self._after_commit(settlement, trace_ctx)
        return _to_payment_response(settlement)

    def _after_commit(self, settlement: _Settlement, trace_ctx: TraceContext) -> None:
        payment = settlement.payment
        sitting = settlement.sitting
        restaurant_id = str(payment.restaurant_id)
        now = payment.created_at

        record_payment(payment)
        logger.info(
            "payment_applied",
            extra={
                "restaurant_id": restaurant_id,
                "table_id": str(payment.table_id),
                "sitting_id": str(payment.sitting_id),
                "payment_id": str(payment.payment_id),
                "modality": payment.modality.value,
                "amount_cents": payment.amount.amount_cents,
            },
        )
        if sitting is not None:
            publish_best_effort(
                self._publisher,
                restaurant_id,
                "order.updated",
                serialize_order_updated_event(
                    occurred_at=now,
                    sitting=sitting,
                    trace=trace_ctx,
                ),
            )
        if settlement.split_status is not None:
            publish_best_effort(
                self._publisher,
                restaurant_id,
                "split.updated",
                serialize_split_updated_event(
                    occurred_at=now,
                    restaurant_id=restaurant_id,
                    table_id=str(payment.table_id),
                    reason="payment",
                    status=settlement.split_status,
                    redistribution=None,
                    trace=trace_ctx,
                ),
            )
        if payment.closed_sitting and sitting is not None:
            record_sitting_closed(sitting)
            logger.info(
                "sitting_closed",
                extra={
                    "restaurant_id": restaurant_id,
                    "table_id": str(payment.table_id),
                    "sitting_id": str(sitting.sitting_id),
                },
            )
            publish_best_effort(
                self._publisher,
                restaurant_id,
                "table.fullRefresh",
                serialize_full_refresh_event(
                    occurred_at=now,
                    restaurant_id=restaurant_id,
                    table_id=str(payment.table_id),
                    reason="sitting_closed",
                    trace=trace_ctx,
                ),
            )


class PayDishOrder(_PaymentUseCase):
    def __init__(
        self,
        account_repository: TableAccountRepository,
        dish_repository: DishOrderRepository,
        publisher: EventPublisher,
        engine: AccountEngine,
    ) -> None:
        super().__init__(account_repository, publisher, engine)
        self._dish_repository = dish_repository

    def execute(
        self,
        restaurant_id: RestaurantId,
        dish_id: DishOrderId,
        trace_ctx: TraceContext,
        idempotency_key: str | None = None,
    ) -> PaymentResponse:
        dish = self._dish_repository.get(dish_id)
        if dish is None or dish.restaurant_id != restaurant_id:
            raise DishOrderNotFoundError(f"dish order not found: {dish_id}")
        now = datetime.now(timezone.utc)

        def apply(
            account: TableAccount,
            key: str | None,
            payload_hash: str | None,
        ) -> tuple[TableAccount, PaymentOutcome]:
            if account.find_dish(dish_id) is None:
                # the dish belongs to a sitting that is already closed
                if dish.is_paid:
                    raise AlreadyPaidError(f"dish order {dish_id} is already paid")
                raise NoActiveSittingError(f"dish order {dish_id} is not part of an open sitting")
            return self._engine.payments.pay_dish_order(
                account,
                dish_id,
                now,
                idempotency_key=key,
                idempotency_hash=payload_hash,
            )

        return self._settle(
            restaurant_id=dish.restaurant_id,
            table_id=dish.table_id,
            payload={"modality": "INDIVIDUAL", "dishId": str(dish_id)},
            idempotency_key=idempotency_key,
            apply=apply,
            trace_ctx=trace_ctx,
        )


class PayAmount(_PaymentUseCase):
    def execute(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        request_dto: PayAmountRequest,
        trace_ctx: TraceContext,
        idempotency_key: str | None = None,
    ) -> PaymentResponse:
        now = datetime.now(timezone.utc)

        def apply(
            account: TableAccount,
            key: str | None,
            payload_hash: str | None,
        ) -> tuple[TableAccount, PaymentOutcome]:
            sitting = self._engine.ledger.require_open_sitting(account)
            amount = Money(
                amount_cents=request_dto.amount_cents,
                currency=(request_dto.currency or sitting.currency).upper(),
            )
            owner = owner_from_request(request_dto.owner) if request_dto.owner else None
            return self._engine.payments.pay_amount(
                account,
                amount,
                now,
                owner=owner,
                idempotency_key=key,
                idempotency_hash=payload_hash,
            )

        return self._settle(
            restaurant_id=restaurant_id,
            table_id=table_id,
            payload={"modality": "AMOUNT", **request_dto.model_dump(mode="json", by_alias=True)},
            idempotency_key=idempotency_key,
            apply=apply,
            trace_ctx=trace_ctx,
        )


class PaySplitShare(_PaymentUseCase):
    def execute(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        request_dto: PaySplitShareRequest,
        trace_ctx: TraceContext,
        idempotency_key: str | None = None,
    ) -> PaymentResponse:
        now = datetime.now(timezone.utc)

        def apply(
            account: TableAccount,
            key: str | None,
            payload_hash: str | None,
        ) -> tuple[TableAccount, PaymentOutcome]:
            return self._engine.payments.pay_split_share(
                account,
                owner_from_request(request_dto.owner),
                now,
                idempotency_key=key,
                idempotency_hash=payload_hash,
            )

        return self._settle(
            restaurant_id=restaurant_id,
            table_id=table_id,
            payload={"modality": "SPLIT", **request_dto.model_dump(mode="json", by_alias=True)},
            idempotency_key=idempotency_key,
            apply=apply,
            trace_ctx=trace_ctx,
        )


def _to_payment_response(settlement: _Settlement) -> PaymentResponse:
    payment = settlement.payment
    return PaymentResponse(
        paymentId=str(payment.payment_id),
        modality=payment.modality.value,
        amount=to_money_response(payment.amount),
        owner=to_owner_response(payment.owner) if payment.owner is not None else None,
        dishId=str(payment.dish_id) if payment.dish_id is not None else None,
        closedSitting=payment.closed_sitting,
        replayed=settlement.replayed,
        createdAt=payment.created_at,
        account=to_account_summary_response(settlement.table, settlement.sitting),
    )


def _payload_hash(payload: dict[str, Any]) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
