from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from tabsettle.domain.common.money import Money
from tabsettle.domain.common.owner import Owner


def test_money_rejects_negative_amount_and_bad_currency() -> None:
    with pytest.raises(ValueError):
        Money(amount_cents=-1, currency="USD")
    with pytest.raises(ValueError):
        Money(amount_cents=100, currency="usd")
    with pytest.raises(ValueError):
        Money(amount_cents=100, currency="US")


def test_money_arithmetic_keeps_currency() -> None:
    total = Money(amount_cents=4500, currency="USD").plus(Money(amount_cents=2850, currency="USD"))
    assert total == Money(amount_cents=7350, currency="USD")
    assert total.minus(Money(amount_cents=350, currency="USD")).amount_cents == 7000
    assert Money(amount_cents=400, currency="USD").times(2).amount_cents == 800


def test_money_refuses_mixed_currencies() -> None:
    with pytest.raises(ValueError):
        Money(amount_cents=100, currency="USD").plus(Money(amount_cents=100, currency="EUR"))


def test_divided_by_rounds_half_up_to_the_cent() -> None:
    assert Money(amount_cents=8000, currency="USD").divided_by(3).amount_cents == 2667
    assert Money(amount_cents=4466, currency="USD").divided_by(2).amount_cents == 2233
    assert Money(amount_cents=5, currency="USD").divided_by(2).amount_cents == 3
    assert Money(amount_cents=100, currency="USD").divided_by(3).amount_cents == 33
    with pytest.raises(ValueError):
        Money(amount_cents=100, currency="USD").divided_by(0)


def test_owner_requires_an_identity() -> None:
    with pytest.raises(ValueError):
        Owner()


def test_owner_matching_prefers_user_then_guest_then_name() -> None:
    ana_user = Owner(user_id="usr_ana", guest_name="Ana")
    assert ana_user.matches(Owner(user_id="usr_ana"))
    assert not ana_user.matches(Owner(user_id="usr_luis", guest_name="Ana"))

    guest = Owner(guest_id="gst_1")
    assert guest.matches(Owner(guest_id="gst_1", guest_name="Luis"))
    assert not guest.matches(Owner(guest_id="gst_2"))

    assert Owner(guest_name="Carmen").matches(Owner(guest_name="Carmen"))
    assert not Owner(guest_name="Carmen").matches(Owner(guest_name="Dana"))


def test_owner_key_and_display_name() -> None:
    assert Owner(user_id="usr_1", guest_name="Ana").key == "user:usr_1"
    assert Owner(guest_id="gst_1").key == "guest:gst_1"
    assert Owner(guest_name="Ana").key == "name:Ana"
    assert Owner(user_id="usr_1", guest_name="Ana").display_name == "Ana"


def test_owner_merge_and_link() -> None:
    merged = Owner(guest_id="gst_1").merged_with(Owner(guest_id="gst_1", guest_name="Luis"))
    assert merged == Owner(guest_id="gst_1", guest_name="Luis")

    linked = Owner(guest_id="gst_1", guest_name="Luis").linked_to_user("usr_9")
    assert linked.user_id == "usr_9"
    assert linked.guest_id == "gst_1"
