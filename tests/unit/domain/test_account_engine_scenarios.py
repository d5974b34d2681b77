from __future__ import annotations

import itertools
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from tabsettle.domain.account.aggregate import TableAccount
from tabsettle.domain.account.dish_registry import DishOrderNotFoundError, DishOrderRegistry
from tabsettle.domain.account.ledger import NoActiveSittingError, TableAccountLedger
from tabsettle.domain.account.participants import ActiveParticipantTracker
from tabsettle.domain.account.payments import PaymentApplicator
from tabsettle.domain.account.split_bill import SplitBillCoordinator
from tabsettle.domain.common.ids import (
    DishOrderId,
    PaymentId,
    RestaurantId,
    SittingId,
    SplitShareId,
    TableId,
)
from tabsettle.domain.common.money import Money
from tabsettle.domain.common.owner import Owner
from tabsettle.domain.dish.entities import AlreadyPaidError
from tabsettle.domain.participant.entities import MaterialContributionPolicy, PaymentModality
from tabsettle.domain.sitting.entities import OverpaymentError, SittingStatus
from tabsettle.domain.split.entities import NoPendingShareError
from tabsettle.domain.table.entities import Table, TableStatus

NOW = datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc)

ANA = Owner(guest_name="Ana")
LUIS = Owner(guest_name="Luis")
CARMEN = Owner(guest_name="Carmen")
DANA = Owner(guest_name="Dana")


class Engine:
    def __init__(self, threshold_cents: int = 1000) -> None:
        counter = itertools.count(1)
        self.tracker = ActiveParticipantTracker()
        self.ledger = TableAccountLedger(self.tracker)
        self.coordinator = SplitBillCoordinator(
            ledger=self.ledger,
            tracker=self.tracker,
            policy=MaterialContributionPolicy(threshold_cents=threshold_cents),
            new_share_id=lambda: SplitShareId(f"spl_{next(counter):03d}"),
        )
        self.registry = DishOrderRegistry(
            ledger=self.ledger,
            tracker=self.tracker,
            coordinator=self.coordinator,
            new_dish_id=lambda: DishOrderId(f"dsh_{next(counter):03d}"),
            new_sitting_id=lambda: SittingId(f"sit_{next(counter):03d}"),
        )
        self.payments = PaymentApplicator(
            ledger=self.ledger,
            tracker=self.tracker,
            coordinator=self.coordinator,
            registry=self.registry,
            new_payment_id=lambda: PaymentId(f"pay_{next(counter):03d}"),
        )


def _usd(cents: int) -> Money:
    return Money(amount_cents=cents, currency="USD")


def _empty_account() -> TableAccount:
    return TableAccount(
        table=Table(table_id=TableId("tbl_001"), restaurant_id=RestaurantId("rst_001"))
    )


def _add(engine: Engine, account: TableAccount, owner: Owner, cents: int, quantity: int = 1):
    return engine.registry.add_dish_order(
        account,
        owner=owner,
        item_name=f"dish for {owner.display_name}",
        quantity=quantity,
        unit_price=_usd(cents),
        extra_price=_usd(0),
        now=NOW,
    )


def test_free_amount_payments_close_the_sitting() -> None:
    engine = Engine()
    account, placement = _add(engine, _empty_account(), ANA, 4500)
    assert placement.opened_sitting
    assert account.table.status == TableStatus.OCCUPIED
    account, _ = _add(engine, account, LUIS, 2850)
    account, _ = _add(engine, account, CARMEN, 1650)

    summary = engine.ledger.get_summary(account)
    assert summary is not None
    assert summary.total == _usd(9000)
    assert summary.paid == _usd(0)
    assert summary.item_count == 3

    account, outcome = engine.payments.pay_amount(account, _usd(5000), NOW)
    assert outcome.sitting.remaining == _usd(4000)
    assert not outcome.closed

    account, placement = _add(engine, account, DANA, 400, quantity=2)
    assert not placement.opened_sitting
    assert placement.sitting.total == _usd(9800)
    assert placement.sitting.remaining == _usd(4800)

    account, outcome = engine.payments.pay_amount(account, _usd(2500), NOW)
    assert outcome.sitting.remaining == _usd(2300)

    with pytest.raises(OverpaymentError):
        engine.payments.pay_amount(account, _usd(5000), NOW)

    account, outcome = engine.payments.pay_amount(account, _usd(2300), NOW)
    assert outcome.closed
    assert outcome.payment.closed_sitting
    assert outcome.sitting.status == SittingStatus.CLOSED
    assert engine.ledger.get_summary(account) is None
    assert account.participants == ()
    assert account.table.status == TableStatus.AVAILABLE
    with pytest.raises(NoActiveSittingError):
        engine.payments.pay_amount(account, _usd(100), NOW)


def test_split_with_redistribution_for_a_late_dish() -> None:
    engine = Engine()
    account, _ = _add(engine, _empty_account(), ANA, 3000)
    account, _ = _add(engine, account, LUIS, 2500)
    account, _ = _add(engine, account, CARMEN, 2500)

    account, initialization = engine.coordinator.initialize_split_bill(
        account, number_of_people=3, participants=[ANA, LUIS, CARMEN], now=NOW
    )
    assert initialization.amount_per_person == _usd(2667)
    shares_total = sum(share.expected.amount_cents for share in account.shares)
    assert abs(shares_total - account.open_sitting.remaining.amount_cents) <= 1
    assert [share.expected for share in account.shares] == [_usd(2667)] * 3

    account, outcome = engine.payments.pay_split_share(account, ANA, NOW)
    assert outcome.sitting.remaining == _usd(5333)
    account, outcome = engine.payments.pay_split_share(account, LUIS, NOW)
    assert outcome.sitting.remaining == _usd(2666)

    account, placement = _add(engine, account, DANA, 1800)
    assert placement.sitting.total == _usd(9800)
    assert placement.sitting.remaining == _usd(4466)
    redistribution = placement.redistribution
    assert redistribution is not None
    assert redistribution.redistributed
    assert redistribution.pending_people == 2
    assert redistribution.total_people == 4
    assert redistribution.new_guests_added == 1
    assert redistribution.amount_per_pending_person == _usd(2233)
    assert redistribution.total_paid_by_split == _usd(5334)

    pending = [share for share in account.shares if share.is_pending]
    assert [share.owner.guest_name for share in pending] == ["Carmen", "Dana"]
    assert all(share.expected == _usd(2233) for share in pending)

    account, outcome = engine.payments.pay_split_share(account, CARMEN, NOW)
    assert outcome.payment.amount == _usd(2233)
    assert outcome.sitting.remaining == _usd(2233)

    account, outcome = engine.payments.pay_amount(account, _usd(2233), NOW, owner=ANA)
    assert outcome.closed
    assert account.shares == ()
    assert account.participants == ()


def test_split_that_rounds_down_leaves_the_last_share_to_absorb_the_cent() -> None:
    engine = Engine()
    account, _ = _add(engine, _empty_account(), ANA, 100)

    account, initialization = engine.coordinator.initialize_split_bill(
        account, number_of_people=3, participants=[ANA, LUIS, CARMEN], now=NOW
    )
    assert initialization.amount_per_person == _usd(33)
    shares_total = sum(share.expected.amount_cents for share in account.shares)
    assert shares_total == 99
    assert abs(shares_total - account.open_sitting.remaining.amount_cents) <= 1

    account, _ = engine.payments.pay_split_share(account, ANA, NOW)
    account, _ = engine.payments.pay_split_share(account, LUIS, NOW)
    account, outcome = engine.payments.pay_split_share(account, CARMEN, NOW)
    assert outcome.payment.amount == _usd(34)
    assert outcome.closed

def test_redistribution_skips_diners_with_material_contributions() -> None:
    engine = Engine()
    account, _ = _add(engine, _empty_account(), ANA, 3000)
    account, _ = _add(engine, account, LUIS, 2500)
    account, carmen_dish = _add(engine, account, CARMEN, 2500)
    account, _ = engine.coordinator.initialize_split_bill(
        account, number_of_people=3, participants=[ANA, LUIS, CARMEN], now=NOW
    )

    account, outcome = engine.payments.pay_dish_order(account, carmen_dish.dish.dish_id, NOW)
    assert outcome.payment.modality == PaymentModality.INDIVIDUAL
    carmen_share = engine.coordinator.pending_share_for(account, CARMEN)
    assert carmen_share is not None
    assert carmen_share.amount_paid == _usd(2500)

    account, placement = _add(engine, account, DANA, 1800)
    assert placement.sitting.remaining == _usd(7300)
    redistribution = placement.redistribution
    assert redistribution is not None
    assert redistribution.pending_people == 3
    assert redistribution.amount_per_pending_person == _usd(2433)

    expected = {share.owner.guest_name: share.expected for share in account.shares}
    assert expected == {
        "Ana": _usd(2433),
        "Luis": _usd(2433),
        "Carmen": _usd(2667),
        "Dana": _usd(2433),
    }


def test_dish_from_a_diner_left_out_of_the_split_only_adds_the_orderer() -> None:
    engine = Engine()
    account, _ = _add(engine, _empty_account(), ANA, 3000)
    account, _ = _add(engine, account, LUIS, 3000)
    account, _ = engine.coordinator.initialize_split_bill(
        account, number_of_people=1, participants=[ANA], now=NOW
    )

    account, placement = _add(engine, account, DANA, 1000)

    owners = [share.owner.guest_name for share in account.shares]
    assert owners == ["Ana", "Dana"]
    assert placement.redistribution is not None
    assert placement.redistribution.new_guests_added == 1


def test_last_pending_share_absorbs_rounding() -> None:
    engine = Engine()
    account, _ = _add(engine, _empty_account(), ANA, 100)
    account, initialization = engine.coordinator.initialize_split_bill(
        account, number_of_people=3, participants=[], now=NOW
    )
    assert initialization.amount_per_person == _usd(33)
    names = [share.owner.guest_name for share in account.shares]
    assert names == ["Guest 1", "Guest 2", "Guest 3"]

    account, _ = engine.payments.pay_split_share(account, Owner(guest_name="Guest 1"), NOW)
    account, _ = engine.payments.pay_split_share(account, Owner(guest_name="Guest 2"), NOW)
    account, outcome = engine.payments.pay_split_share(account, Owner(guest_name="Guest 3"), NOW)

    assert outcome.payment.amount == _usd(34)
    assert outcome.closed


def test_split_initialization_validates_input() -> None:
    engine = Engine()
    with pytest.raises(NoActiveSittingError):
        engine.coordinator.initialize_split_bill(
            _empty_account(), number_of_people=2, participants=[], now=NOW
        )

    account, _ = _add(engine, _empty_account(), ANA, 1000)
    with pytest.raises(ValueError):
        engine.coordinator.initialize_split_bill(
            account, number_of_people=0, participants=[], now=NOW
        )
    with pytest.raises(ValueError):
        engine.coordinator.initialize_split_bill(
            account, number_of_people=1, participants=[ANA, LUIS], now=NOW
        )
    with pytest.raises(ValueError):
        engine.coordinator.initialize_split_bill(
            account, number_of_people=2, participants=[ANA, ANA], now=NOW
        )


def test_paying_a_share_without_one_is_rejected() -> None:
    engine = Engine()
    account, _ = _add(engine, _empty_account(), ANA, 1000)
    with pytest.raises(NoPendingShareError):
        engine.payments.pay_split_share(account, ANA, NOW)


def test_dish_payment_credits_owner_and_cannot_repeat() -> None:
    engine = Engine()
    account, first = _add(engine, _empty_account(), ANA, 1200)
    account, _ = _add(engine, account, LUIS, 800)

    account, outcome = engine.payments.pay_dish_order(account, first.dish.dish_id, NOW)
    assert outcome.dish is not None and outcome.dish.is_paid
    assert outcome.sitting.remaining == _usd(800)
    participant = engine.tracker.find(account, ANA)
    assert participant is not None
    assert participant.contributions.individual_cents == 1200

    with pytest.raises(AlreadyPaidError):
        engine.payments.pay_dish_order(account, first.dish.dish_id, NOW)
    with pytest.raises(DishOrderNotFoundError):
        engine.payments.pay_dish_order(account, DishOrderId("dsh_missing"), NOW)


def test_new_dish_after_closure_opens_a_fresh_sitting() -> None:
    engine = Engine()
    account, first = _add(engine, _empty_account(), ANA, 1000)
    account, _ = engine.payments.pay_amount(account, _usd(1000), NOW, owner=ANA)
    assert engine.registry.list_dish_orders(account) == ()

    account, placement = _add(engine, account, LUIS, 700)

    assert placement.opened_sitting
    assert placement.sitting.sitting_id != first.sitting.sitting_id
    assert placement.sitting.total == _usd(700)
    assert [dish.dish_id for dish in account.dishes] == [placement.dish.dish_id]
    assert account.payments == ()
    assert [participant.owner for participant in account.participants] == [LUIS]


def test_link_guest_to_user_rewrites_owned_rows() -> None:
    engine = Engine()
    guest = Owner(guest_id="gst_1", guest_name="Luis")
    account, _ = _add(engine, _empty_account(), guest, 1500)
    account, _ = _add(engine, account, ANA, 1500)
    account, _ = engine.coordinator.initialize_split_bill(
        account, number_of_people=2, participants=[guest, ANA], now=NOW
    )

    account, result = engine.tracker.link_guest_to_user(
        account, guest_id="gst_1", user_id="usr_9", now=NOW
    )

    assert (result.updated_dishes, result.updated_participants, result.updated_shares) == (1, 1, 1)
    assert account.dishes[0].owner.user_id == "usr_9"
    assert engine.tracker.find(account, Owner(user_id="usr_9")) is not None
    assert engine.coordinator.pending_share_for(account, Owner(user_id="usr_9")) is not None

    account, again = engine.tracker.link_guest_to_user(
        account, guest_id="gst_1", user_id="usr_9", now=NOW
    )
    assert (again.updated_dishes, again.updated_participants, again.updated_shares) == (0, 0, 0)
