from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from tabsettle.domain.common.owner import Owner


class PaymentModality(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    AMOUNT = "AMOUNT"
    SPLIT = "SPLIT"


@dataclass(frozen=True)
class Contributions:
    individual_cents: int = 0
    amount_cents: int = 0
    split_cents: int = 0

    def __post_init__(self) -> None:
        if min(self.individual_cents, self.amount_cents, self.split_cents) < 0:
            raise ValueError("contributions must be >= 0")

    @property
    def total_cents(self) -> int:
        return self.individual_cents + self.amount_cents + self.split_cents

    def credit(self, modality: PaymentModality, amount_cents: int) -> Contributions:
        if amount_cents < 0:
            raise ValueError("credited amount must be >= 0")
        if modality == PaymentModality.INDIVIDUAL:
            return replace(self, individual_cents=self.individual_cents + amount_cents)
        if modality == PaymentModality.AMOUNT:
            return replace(self, amount_cents=self.amount_cents + amount_cents)
        return replace(self, split_cents=self.split_cents + amount_cents)


@dataclass(frozen=True)
class Participant:
    owner: Owner
    contributions: Contributions
    joined_at: datetime
    updated_at: datetime

    def credited(self, modality: PaymentModality, amount_cents: int, now: datetime) -> Participant:
        return replace(
            self,
            contributions=self.contributions.credit(modality, amount_cents),
            updated_at=now,
        )

    def with_owner(self, owner: Owner, now: datetime) -> Participant:
        return replace(self, owner=owner, updated_at=now)


@dataclass(frozen=True)
class MaterialContributionPolicy:
    """Decides whether a diner already funded their part outside an active split."""

    threshold_cents: int = 1000

    def __post_init__(self) -> None:
        if self.threshold_cents < 0:
            raise ValueError("threshold_cents must be >= 0")

    def is_material_contribution(self, participant: Participant | None) -> bool:
        if participant is None:
            return False
        return participant.contributions.total_cents >= self.threshold_cents
