from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from tabsettle.domain.common.ids import SplitShareId
from tabsettle.domain.common.money import Money
from tabsettle.domain.common.owner import Owner


class SplitShareStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


@dataclass(frozen=True)
class SplitShare:
    share_id: SplitShareId
    owner: Owner
    expected: Money
    amount_paid: Money
    status: SplitShareStatus
    original_total: Money
    created_at: datetime
    paid_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.status == SplitShareStatus.PAID and self.paid_at is None:
            raise ValueError("paid_at must be set when share is PAID")

    @property
    def is_pending(self) -> bool:
        return self.status == SplitShareStatus.PENDING

    @property
    def outstanding(self) -> Money:
        if self.amount_paid.amount_cents >= self.expected.amount_cents:
            return Money.zero(self.expected.currency)
        return self.expected.minus(self.amount_paid)

    def settle(self, amount: Money, now: datetime) -> SplitShare:
        """Mark the share paid by a split charge of ``amount``.

        ``amount_paid`` becomes the split charge itself; progress recorded earlier through
        individual or amount payments is not added on top of it.
        """
        if not self.is_pending:
            raise NoPendingShareError(f"split share {self.share_id} is already paid")
        return replace(
            self,
            amount_paid=amount,
            status=SplitShareStatus.PAID,
            paid_at=now,
        )

    def record_progress(self, amount: Money, now: datetime, force_paid: bool = False) -> SplitShare:
        if not self.is_pending:
            return self
        amount_paid = self.amount_paid.plus(amount)
        if force_paid or amount_paid.amount_cents >= self.expected.amount_cents:
            return replace(
                self,
                amount_paid=amount_paid,
                status=SplitShareStatus.PAID,
                paid_at=now,
            )
        return replace(self, amount_paid=amount_paid)

    def repriced(self, expected: Money, original_total: Money) -> SplitShare:
        return replace(self, expected=expected, original_total=original_total)

    def with_owner(self, owner: Owner) -> SplitShare:
        return replace(self, owner=owner)


def create_pending_share(
    share_id: SplitShareId,
    owner: Owner,
    expected: Money,
    original_total: Money,
    now: datetime,
) -> SplitShare:
    return SplitShare(
        share_id=share_id,
        owner=owner,
        expected=expected,
        amount_paid=Money.zero(expected.currency),
        status=SplitShareStatus.PENDING,
        original_total=original_total,
        created_at=now,
    )


class NoPendingShareError(Exception):
    pass
