from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from tabsettle.domain.account.dish_registry import DishOrderRegistry
from tabsettle.domain.account.ledger import TableAccountLedger
from tabsettle.domain.account.participants import ActiveParticipantTracker
from tabsettle.domain.account.payments import PaymentApplicator
from tabsettle.domain.account.split_bill import SplitBillCoordinator
from tabsettle.domain.common.ids import DishOrderId, PaymentId, SittingId, SplitShareId
from tabsettle.domain.participant.entities import MaterialContributionPolicy

DEFAULT_MATERIALITY_THRESHOLD_CENTS = 1000


@dataclass(frozen=True)
class AccountEngine:
    tracker: ActiveParticipantTracker
    ledger: TableAccountLedger
    coordinator: SplitBillCoordinator
    registry: DishOrderRegistry
    payments: PaymentApplicator


def _new_sitting_id() -> SittingId:
    return SittingId(f"sit_{uuid4().hex[:12]}")


def _new_dish_id() -> DishOrderId:
    return DishOrderId(f"dsh_{uuid4().hex[:12]}")


def _new_share_id() -> SplitShareId:
    return SplitShareId(f"spl_{uuid4().hex[:12]}")


def _new_payment_id() -> PaymentId:
    return PaymentId(f"pay_{uuid4().hex[:12]}")


def build_engine(
    materiality_threshold_cents: int = DEFAULT_MATERIALITY_THRESHOLD_CENTS,
) -> AccountEngine:
    tracker = ActiveParticipantTracker()
    ledger = TableAccountLedger(tracker)
    coordinator = SplitBillCoordinator(
        ledger=ledger,
        tracker=tracker,
        policy=MaterialContributionPolicy(threshold_cents=materiality_threshold_cents),
        new_share_id=_new_share_id,
    )
    registry = DishOrderRegistry(
        ledger=ledger,
        tracker=tracker,
        coordinator=coordinator,
        new_dish_id=_new_dish_id,
        new_sitting_id=_new_sitting_id,
    )
    payments = PaymentApplicator(
        ledger=ledger,
        tracker=tracker,
        coordinator=coordinator,
        registry=registry,
        new_payment_id=_new_payment_id,
    )
    return AccountEngine(
        tracker=tracker,
        ledger=ledger,
        coordinator=coordinator,
        registry=registry,
        payments=payments,
    )
