from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Callable

from tabsettle.domain.account.aggregate import TableAccount
from tabsettle.domain.account.participants import ActiveParticipantTracker
from tabsettle.domain.common.ids import SittingId
from tabsettle.domain.common.money import Money
from tabsettle.domain.sitting.entities import Sitting, open_sitting


class NoActiveSittingError(Exception):
    pass


class TableAccountLedger:
    """Owns total/paid/remaining for the open sitting and is the only place it closes."""

    def __init__(self, tracker: ActiveParticipantTracker) -> None:
        self._tracker = tracker

    def get_summary(self, account: TableAccount) -> Sitting | None:
        return account.open_sitting

    def require_open_sitting(self, account: TableAccount) -> Sitting:
        sitting = account.open_sitting
        if sitting is None:
            raise NoActiveSittingError(
                f"no active sitting for restaurant_id={account.table.restaurant_id}, "
                f"table_id={account.table.table_id}"
            )
        return sitting

    def ensure_open_sitting(
        self,
        account: TableAccount,
        new_sitting_id: Callable[[], SittingId],
        currency: str,
        now: datetime,
    ) -> tuple[TableAccount, bool]:
        if account.open_sitting is not None:
            return account, False

        sitting = open_sitting(
            sitting_id=new_sitting_id(),
            restaurant_id=account.table.restaurant_id,
            table_id=account.table.table_id,
            currency=currency,
            now=now,
        )
        # dishes and payments of a previous sitting are history, not part of this account
        opened = TableAccount(
            table=account.table.occupy(),
            sitting=sitting,
            participants=account.participants,
        )
        return opened, True

    def recompute_totals(self, account: TableAccount) -> TableAccount:
        sitting = self.require_open_sitting(account)
        dishes = [dish for dish in account.dishes if dish.sitting_id == sitting.sitting_id]
        total = Money.zero(sitting.currency)
        for dish in dishes:
            total = total.plus(dish.line_total)
        return replace(account, sitting=sitting.with_totals(total, item_count=len(dishes)))

    def apply_payment(self, account: TableAccount, amount: Money, now: datetime) -> TableAccount:
        sitting = self.require_open_sitting(account)
        if amount.currency != sitting.currency:
            raise ValueError(
                f"payment currency {amount.currency} does not match sitting currency "
                f"{sitting.currency}"
            )
        updated = sitting.apply_payment(amount, now)
        account = replace(account, sitting=updated)
        if updated.is_open:
            return account

        account = self._tracker.clear(account)
        return replace(account, shares=(), table=account.table.release())
