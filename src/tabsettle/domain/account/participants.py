from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from tabsettle.domain.account.aggregate import TableAccount
from tabsettle.domain.common.money import Money
from tabsettle.domain.common.owner import Owner
from tabsettle.domain.participant.entities import Contributions, Participant, PaymentModality


@dataclass(frozen=True)
class GuestLinkResult:
    updated_dishes: int
    updated_participants: int
    updated_shares: int


class ActiveParticipantTracker:
    def find(self, account: TableAccount, owner: Owner) -> Participant | None:
        for participant in account.participants:
            if participant.owner.matches(owner):
                return participant
        return None

    def list_participants(self, account: TableAccount) -> tuple[Participant, ...]:
        return account.participants

    def register_or_update(
        self, account: TableAccount, owner: Owner, now: datetime
    ) -> TableAccount:
        existing = self.find(account, owner)
        if existing is None:
            participant = Participant(
                owner=owner,
                contributions=Contributions(),
                joined_at=now,
                updated_at=now,
            )
            return replace(account, participants=account.participants + (participant,))

        updated = existing.with_owner(owner.merged_with(existing.owner), now)
        return self._replace(account, existing, updated)

    def credit_payment(
        self,
        account: TableAccount,
        owner: Owner,
        modality: PaymentModality,
        amount: Money,
        now: datetime,
    ) -> TableAccount:
        account = self.register_or_update(account, owner, now)
        participant = self.find(account, owner)
        if participant is None:
            raise RuntimeError(f"participant {owner.key} missing after registration")
        return self._replace(
            account,
            participant,
            participant.credited(modality, amount.amount_cents, now),
        )

    def clear(self, account: TableAccount) -> TableAccount:
        return replace(account, participants=())

    def link_guest_to_user(
        self,
        account: TableAccount,
        guest_id: str,
        user_id: str,
        now: datetime,
    ) -> tuple[TableAccount, GuestLinkResult]:
        def _linkable(owner: Owner) -> bool:
            return owner.guest_id == guest_id and owner.user_id is None

        dishes = []
        updated_dishes = 0
        for dish in account.dishes:
            if _linkable(dish.owner):
                dish = dish.with_owner(dish.owner.linked_to_user(user_id))
                updated_dishes += 1
            dishes.append(dish)

        participants = []
        updated_participants = 0
        for participant in account.participants:
            if _linkable(participant.owner):
                participant = participant.with_owner(participant.owner.linked_to_user(user_id), now)
                updated_participants += 1
            participants.append(participant)

        shares = []
        updated_shares = 0
        for share in account.shares:
            if _linkable(share.owner):
                share = share.with_owner(share.owner.linked_to_user(user_id))
                updated_shares += 1
            shares.append(share)

        linked = replace(
            account,
            dishes=tuple(dishes),
            participants=tuple(participants),
            shares=tuple(shares),
        )
        return linked, GuestLinkResult(
            updated_dishes=updated_dishes,
            updated_participants=updated_participants,
            updated_shares=updated_shares,
        )

    def _replace(
        self,
        account: TableAccount,
        current: Participant,
        updated: Participant,
    ) -> TableAccount:
        return replace(
            account,
            participants=tuple(
                updated if participant is current else participant
                for participant in account.participants
            ),
        )
