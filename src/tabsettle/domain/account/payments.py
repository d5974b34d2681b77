from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from tabsettle.domain.account.aggregate import TableAccount
from tabsettle.domain.account.dish_registry import DishOrderRegistry
from tabsettle.domain.account.ledger import TableAccountLedger
from tabsettle.domain.account.participants import ActiveParticipantTracker
from tabsettle.domain.account.split_bill import SplitBillCoordinator
from tabsettle.domain.common.ids import DishOrderId, PaymentId
from tabsettle.domain.common.money import Money
from tabsettle.domain.common.owner import Owner
from tabsettle.domain.dish.entities import DishOrder
from tabsettle.domain.participant.entities import PaymentModality
from tabsettle.domain.payment.entities import PaymentRecord
from tabsettle.domain.sitting.entities import Sitting
from tabsettle.domain.split.entities import NoPendingShareError, SplitShare


@dataclass(frozen=True)
class PaymentOutcome:
    payment: PaymentRecord
    sitting: Sitting
    closed: bool
    dish: DishOrder | None = None
    share: SplitShare | None = None


class PaymentApplicator:
    """Entry point for the three payment modalities.

    Every modality ends in `TableAccountLedger.apply_payment`; participant credits and split
    progress are only recorded while the sitting stays open afterwards.
    """

    def __init__(
        self,
        ledger: TableAccountLedger,
        tracker: ActiveParticipantTracker,
        coordinator: SplitBillCoordinator,
        registry: DishOrderRegistry,
        new_payment_id: Callable[[], PaymentId],
    ) -> None:
        self._ledger = ledger
        self._tracker = tracker
        self._coordinator = coordinator
        self._registry = registry
        self._new_payment_id = new_payment_id

    def pay_dish_order(
        self,
        account: TableAccount,
        dish_id: DishOrderId,
        now: datetime,
        idempotency_key: str | None = None,
        idempotency_hash: str | None = None,
    ) -> tuple[TableAccount, PaymentOutcome]:
        dish = self._registry.find_dish(account, dish_id)
        sitting = self._ledger.require_open_sitting(account)
        paid_dish = dish.mark_paid(now)
        amount = dish.line_total

        account = account.with_dish(paid_dish)
        account = self._ledger.apply_payment(account, amount, now)
        if account.open_sitting is not None:
            account = self._tracker.credit_payment(
                account, dish.owner, PaymentModality.INDIVIDUAL, amount, now
            )
            account = self._coordinator.record_progress(account, dish.owner, amount, now)

        return self._record(
            account,
            sitting=sitting,
            modality=PaymentModality.INDIVIDUAL,
            amount=amount,
            now=now,
            owner=dish.owner,
            dish=paid_dish,
            idempotency_key=idempotency_key,
            idempotency_hash=idempotency_hash,
        )

    def pay_amount(
        self,
        account: TableAccount,
        amount: Money,
        now: datetime,
        owner: Owner | None = None,
        idempotency_key: str | None = None,
        idempotency_hash: str | None = None,
    ) -> tuple[TableAccount, PaymentOutcome]:
        if amount.amount_cents <= 0:
            raise ValueError("payment amount must be > 0")
        sitting = self._ledger.require_open_sitting(account)

        account = self._ledger.apply_payment(account, amount, now)
        if owner is not None and account.open_sitting is not None:
            account = self._tracker.credit_payment(
                account, owner, PaymentModality.AMOUNT, amount, now
            )
            account = self._coordinator.record_progress(
                account, owner, amount, now, force_paid=True
            )

        return self._record(
            account,
            sitting=sitting,
            modality=PaymentModality.AMOUNT,
            amount=amount,
            now=now,
            owner=owner,
            idempotency_key=idempotency_key,
            idempotency_hash=idempotency_hash,
        )

    def pay_split_share(
        self,
        account: TableAccount,
        owner: Owner,
        now: datetime,
        idempotency_key: str | None = None,
        idempotency_hash: str | None = None,
    ) -> tuple[TableAccount, PaymentOutcome]:
        sitting = self._ledger.require_open_sitting(account)
        share = self._coordinator.pending_share_for(account, owner)
        if share is None:
            raise NoPendingShareError(f"no pending split share for {owner.key}")

        # the last pending share absorbs whatever rounding left on the balance
        if self._coordinator.pending_count(account) == 1:
            amount = sitting.remaining
        else:
            amount = share.expected
        if amount.is_zero():
            raise NoPendingShareError(f"split share for {owner.key} has nothing to pay")

        settled = share.settle(amount, now)
        account = account.with_share(settled)
        account = self._ledger.apply_payment(account, amount, now)
        if account.open_sitting is not None:
            account = self._tracker.credit_payment(
                account, share.owner, PaymentModality.SPLIT, amount, now
            )

        return self._record(
            account,
            sitting=sitting,
            modality=PaymentModality.SPLIT,
            amount=amount,
            now=now,
            owner=share.owner,
            share=settled,
            idempotency_key=idempotency_key,
            idempotency_hash=idempotency_hash,
        )

    def _record(
        self,
        account: TableAccount,
        sitting: Sitting,
        modality: PaymentModality,
        amount: Money,
        now: datetime,
        owner: Owner | None = None,
        dish: DishOrder | None = None,
        share: SplitShare | None = None,
        idempotency_key: str | None = None,
        idempotency_hash: str | None = None,
    ) -> tuple[TableAccount, PaymentOutcome]:
        after = account.sitting
        if after is None:
            raise RuntimeError(f"sitting {sitting.sitting_id} vanished while applying a payment")
        closed = not after.is_open
        payment = PaymentRecord(
            payment_id=self._new_payment_id(),
            restaurant_id=sitting.restaurant_id,
            table_id=sitting.table_id,
            sitting_id=sitting.sitting_id,
            modality=modality,
            amount=amount,
            created_at=now,
            owner=owner,
            dish_id=dish.dish_id if dish is not None else None,
            idempotency_key=idempotency_key,
            idempotency_hash=idempotency_hash,
            closed_sitting=closed,
        )
        account = account.with_payment(payment)
        return account, PaymentOutcome(
            payment=payment,
            sitting=after,
            closed=closed,
            dish=dish,
            share=share,
        )
