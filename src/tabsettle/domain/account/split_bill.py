from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Sequence

from tabsettle.domain.account.aggregate import TableAccount
from tabsettle.domain.account.ledger import TableAccountLedger
from tabsettle.domain.account.participants import ActiveParticipantTracker
from tabsettle.domain.common.ids import SplitShareId
from tabsettle.domain.common.money import Money
from tabsettle.domain.common.owner import Owner
from tabsettle.domain.participant.entities import MaterialContributionPolicy
from tabsettle.domain.split.entities import SplitShare, create_pending_share


@dataclass(frozen=True)
class SplitInitialization:
    shares: tuple[SplitShare, ...]
    amount_per_person: Money
    original_total: Money
    number_of_people: int


@dataclass(frozen=True)
class RedistributionOutcome:
    redistributed: bool
    new_total: Money | None = None
    amount_per_pending_person: Money | None = None
    pending_people: int = 0
    total_people: int = 0
    total_paid_by_split: Money | None = None
    new_guests_added: int = 0


@dataclass(frozen=True)
class SplitStatus:
    active: bool
    shares: tuple[SplitShare, ...]
    total_people: int
    paid_people: int
    pending_people: int
    total_collected: Money
    total_remaining: Money


class SplitBillCoordinator:
    """Optional overlay that divides the remaining balance into per-diner shares.

    Shares never move the ledger on their own: paying a share goes through the payment
    applicator, and the ledger purges every share when the sitting closes.
    """

    def __init__(
        self,
        ledger: TableAccountLedger,
        tracker: ActiveParticipantTracker,
        policy: MaterialContributionPolicy,
        new_share_id: Callable[[], SplitShareId],
    ) -> None:
        self._ledger = ledger
        self._tracker = tracker
        self._policy = policy
        self._new_share_id = new_share_id

    def is_active(self, account: TableAccount) -> bool:
        return bool(account.shares)

    def initialize_split_bill(
        self,
        account: TableAccount,
        number_of_people: int,
        participants: Sequence[Owner | None],
        now: datetime,
    ) -> tuple[TableAccount, SplitInitialization]:
        sitting = self._ledger.require_open_sitting(account)
        if number_of_people < 1:
            raise ValueError("number_of_people must be >= 1")
        if len(participants) > number_of_people:
            raise ValueError(
                f"{len(participants)} participants given for a split between "
                f"{number_of_people} people"
            )

        owners: list[Owner] = []
        for index in range(number_of_people):
            named = participants[index] if index < len(participants) else None
            if named is None:
                owner = Owner(guest_name=f"Guest {index + 1}")
            else:
                known = self._tracker.find(account, named)
                owner = named.merged_with(known.owner) if known is not None else named
            if any(existing.matches(owner) for existing in owners):
                raise ValueError(f"participant {owner.key} appears more than once in the split")
            owners.append(owner)

        amount_per_person = sitting.remaining.divided_by(number_of_people)
        shares = tuple(
            create_pending_share(
                share_id=self._new_share_id(),
                owner=owner,
                expected=amount_per_person,
                original_total=sitting.total,
                now=now,
            )
            for owner in owners
        )
        return replace(account, shares=shares), SplitInitialization(
            shares=shares,
            amount_per_person=amount_per_person,
            original_total=sitting.total,
            number_of_people=number_of_people,
        )

    def redistribute(
        self,
        account: TableAccount,
        triggering_owner: Owner,
        now: datetime,
    ) -> tuple[TableAccount, RedistributionOutcome]:
        if not account.shares:
            return account, RedistributionOutcome(redistributed=False)
        sitting = self._ledger.require_open_sitting(account)

        dish_owners: list[Owner] = []
        for dish in account.dishes:
            if not any(owner.matches(dish.owner) for owner in dish_owners):
                dish_owners.append(dish.owner)

        shares = list(account.shares)
        new_guests_added = 0
        for owner in dish_owners:
            if any(share.owner.matches(owner) for share in shares):
                continue
            # only the diner who just ordered joins the split; earlier diners without a
            # share were deliberately left out when the split was set up
            if not owner.matches(triggering_owner):
                continue
            known = self._tracker.find(account, owner)
            shares.append(
                create_pending_share(
                    share_id=self._new_share_id(),
                    owner=owner.merged_with(known.owner) if known is not None else owner,
                    expected=Money.zero(sitting.currency),
                    original_total=sitting.total,
                    now=now,
                )
            )
            new_guests_added += 1

        pending_ids = {
            share.share_id
            for share in shares
            if share.is_pending
            and not self._policy.is_material_contribution(self._tracker.find(account, share.owner))
        }
        account = replace(account, shares=tuple(shares))
        if not pending_ids:
            return account, RedistributionOutcome(
                redistributed=False,
                total_people=len(shares),
                new_guests_added=new_guests_added,
            )

        amount_per_pending_person = sitting.remaining.divided_by(len(pending_ids))
        repriced = tuple(
            share.repriced(expected=amount_per_pending_person, original_total=sitting.total)
            if share.share_id in pending_ids
            else share
            for share in shares
        )
        account = replace(account, shares=repriced)
        return account, RedistributionOutcome(
            redistributed=True,
            new_total=sitting.total,
            amount_per_pending_person=amount_per_pending_person,
            pending_people=len(pending_ids),
            total_people=len(repriced),
            total_paid_by_split=_sum_paid(repriced, sitting.currency),
            new_guests_added=new_guests_added,
        )

    def pending_share_for(self, account: TableAccount, owner: Owner) -> SplitShare | None:
        for share in account.shares:
            if share.is_pending and share.owner.matches(owner):
                return share
        return None

    def pending_count(self, account: TableAccount) -> int:
        return sum(1 for share in account.shares if share.is_pending)

    def record_progress(
        self,
        account: TableAccount,
        owner: Owner,
        amount: Money,
        now: datetime,
        force_paid: bool = False,
    ) -> TableAccount:
        share = self.pending_share_for(account, owner)
        if share is None:
            return account
        return account.with_share(share.record_progress(amount, now, force_paid=force_paid))

    def status(self, account: TableAccount, currency: str) -> SplitStatus:
        shares = account.shares
        if shares:
            currency = shares[0].expected.currency
        total_remaining = Money.zero(currency)
        for share in shares:
            total_remaining = total_remaining.plus(share.outstanding)
        paid_people = sum(1 for share in shares if not share.is_pending)
        return SplitStatus(
            active=bool(shares),
            shares=shares,
            total_people=len(shares),
            paid_people=paid_people,
            pending_people=len(shares) - paid_people,
            total_collected=_sum_paid(shares, currency),
            total_remaining=total_remaining,
        )


def _sum_paid(shares: Sequence[SplitShare], currency: str) -> Money:
    total = Money.zero(currency)
    for share in shares:
        total = total.plus(share.amount_paid)
    return total
