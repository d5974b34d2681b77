from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from tabsettle.domain.common.ids import DishOrderId, RestaurantId, SittingId, SplitShareId, TableId
from tabsettle.domain.common.money import Money
from tabsettle.domain.common.owner import Owner
from tabsettle.domain.dish.entities import (
    AlreadyPaidError,
    InvalidKitchenStatusError,
    KitchenStatus,
    create_dish_order,
)
from tabsettle.domain.participant.entities import (
    Contributions,
    MaterialContributionPolicy,
    Participant,
    PaymentModality,
)
from tabsettle.domain.sitting.entities import (
    OverpaymentError,
    PaymentState,
    SittingClosedError,
    SittingStatus,
    open_sitting,
)
from tabsettle.domain.split.entities import NoPendingShareError, create_pending_share

NOW = datetime(2026, 10, 18, 19, 30, tzinfo=timezone.utc)


def _usd(cents: int) -> Money:
    return Money(amount_cents=cents, currency="USD")


def _sitting_with_total(total_cents: int):
    sitting = open_sitting(
        sitting_id=SittingId("sit_001"),
        restaurant_id=RestaurantId("rst_001"),
        table_id=TableId("tbl_001"),
        currency="USD",
        now=NOW,
    )
    return sitting.with_totals(_usd(total_cents), item_count=2)


def test_open_sitting_starts_empty() -> None:
    sitting = _sitting_with_total(0)
    assert sitting.status == SittingStatus.OPEN
    assert sitting.remaining == _usd(0)
    assert sitting.payment_state == PaymentState.NOT_PAID


def test_partial_payment_keeps_sitting_open() -> None:
    sitting = _sitting_with_total(9000).apply_payment(_usd(5000), NOW)
    assert sitting.is_open
    assert sitting.remaining == _usd(4000)
    assert sitting.payment_state == PaymentState.PARTIAL


def test_exact_payment_closes_sitting() -> None:
    sitting = _sitting_with_total(9000).apply_payment(_usd(9000), NOW)
    assert sitting.status == SittingStatus.CLOSED
    assert sitting.closed_at == NOW
    assert sitting.payment_state == PaymentState.PAID


def test_overpayment_is_rejected_with_details() -> None:
    sitting = _sitting_with_total(2300)
    with pytest.raises(OverpaymentError) as exc_info:
        sitting.apply_payment(_usd(5000), NOW)
    assert exc_info.value.details == {
        "amountCents": 5000,
        "remainingCents": 2300,
        "currency": "USD",
    }


def test_closed_sitting_rejects_payments_and_totals() -> None:
    closed = _sitting_with_total(1000).apply_payment(_usd(1000), NOW)
    with pytest.raises(SittingClosedError):
        closed.apply_payment(_usd(100), NOW)
    with pytest.raises(SittingClosedError):
        closed.with_totals(_usd(2000), item_count=3)


def test_zero_payment_is_invalid() -> None:
    with pytest.raises(ValueError):
        _sitting_with_total(1000).apply_payment(_usd(0), NOW)


def _dish():
    return create_dish_order(
        dish_id=DishOrderId("dsh_001"),
        sitting_id=SittingId("sit_001"),
        restaurant_id=RestaurantId("rst_001"),
        table_id=TableId("tbl_001"),
        owner=Owner(guest_name="Dana"),
        item_name="Churros",
        quantity=2,
        unit_price=_usd(350),
        extra_price=_usd(50),
        now=NOW,
    )


def test_dish_line_total_includes_extras_per_unit() -> None:
    assert _dish().line_total == _usd(800)


def test_dish_cannot_be_paid_twice() -> None:
    paid = _dish().mark_paid(NOW)
    assert paid.is_paid
    with pytest.raises(AlreadyPaidError):
        paid.mark_paid(NOW)


def test_dish_requires_positive_quantity() -> None:
    with pytest.raises(ValueError):
        create_dish_order(
            dish_id=DishOrderId("dsh_002"),
            sitting_id=SittingId("sit_001"),
            restaurant_id=RestaurantId("rst_001"),
            table_id=TableId("tbl_001"),
            owner=Owner(guest_name="Dana"),
            item_name="Churros",
            quantity=0,
            unit_price=_usd(350),
            extra_price=_usd(0),
            now=NOW,
        )


def test_dish_with_zero_line_total_is_refused() -> None:
    with pytest.raises(ValueError, match="line total"):
        create_dish_order(
            dish_id=DishOrderId("dsh_003"),
            sitting_id=SittingId("sit_001"),
            restaurant_id=RestaurantId("rst_001"),
            table_id=TableId("tbl_001"),
            owner=Owner(guest_name="Dana"),
            item_name="Tap water",
            quantity=2,
            unit_price=_usd(0),
            extra_price=_usd(0),
            now=NOW,
        )


def test_kitchen_status_parse_is_case_insensitive() -> None:
    assert KitchenStatus.parse(" cooking ") == KitchenStatus.COOKING
    with pytest.raises(InvalidKitchenStatusError):
        KitchenStatus.parse("BURNT")


def test_contributions_credit_each_modality() -> None:
    contributions = (
        Contributions()
        .credit(PaymentModality.INDIVIDUAL, 500)
        .credit(PaymentModality.AMOUNT, 300)
        .credit(PaymentModality.SPLIT, 200)
    )
    assert contributions == Contributions(individual_cents=500, amount_cents=300, split_cents=200)
    assert contributions.total_cents == 1000


def test_materiality_policy_sums_all_modalities() -> None:
    policy = MaterialContributionPolicy(threshold_cents=1000)
    participant = Participant(
        owner=Owner(guest_name="Ana"),
        contributions=Contributions(individual_cents=600, amount_cents=400),
        joined_at=NOW,
        updated_at=NOW,
    )
    assert policy.is_material_contribution(participant)
    assert not policy.is_material_contribution(None)
    assert not MaterialContributionPolicy(threshold_cents=1001).is_material_contribution(
        participant
    )


def test_split_share_progress_and_settle() -> None:
    share = create_pending_share(
        share_id=SplitShareId("spl_001"),
        owner=Owner(guest_name="Ana"),
        expected=_usd(2667),
        original_total=_usd(8000),
        now=NOW,
    )
    partial = share.record_progress(_usd(1000), NOW)
    assert partial.is_pending
    assert partial.outstanding == _usd(1667)

    forced = share.record_progress(_usd(100), NOW, force_paid=True)
    assert not forced.is_pending

    settled = share.settle(_usd(2667), NOW)
    assert not settled.is_pending
    assert settled.outstanding == _usd(0)
    with pytest.raises(NoPendingShareError):
        settled.settle(_usd(1), NOW)

    settled_after_progress = partial.settle(_usd(2667), NOW)
    assert settled_after_progress.amount_paid == _usd(2667)
    assert settled_after_progress.outstanding == _usd(0)
