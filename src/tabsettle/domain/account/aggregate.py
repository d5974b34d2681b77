from __future__ import annotations

from dataclasses import dataclass, replace

from tabsettle.domain.common.ids import DishOrderId
from tabsettle.domain.dish.entities import DishOrder
from tabsettle.domain.participant.entities import Participant
from tabsettle.domain.payment.entities import PaymentRecord
from tabsettle.domain.sitting.entities import Sitting
from tabsettle.domain.split.entities import SplitShare
from tabsettle.domain.table.entities import Table


@dataclass(frozen=True)
class TableAccount:
    """Everything one table owes and has paid during its current sitting.

    Participants and split shares are keyed by table; dishes and payments belong to the
    sitting. After a closing payment `sitting` holds the CLOSED sitting so it can be
    persisted; the next load starts from an empty account.
    """

    table: Table
    sitting: Sitting | None = None
    dishes: tuple[DishOrder, ...] = ()
    participants: tuple[Participant, ...] = ()
    shares: tuple[SplitShare, ...] = ()
    payments: tuple[PaymentRecord, ...] = ()

    @property
    def open_sitting(self) -> Sitting | None:
        if self.sitting is None or not self.sitting.is_open:
            return None
        return self.sitting

    def find_dish(self, dish_id: DishOrderId) -> DishOrder | None:
        for dish in self.dishes:
            if dish.dish_id == dish_id:
                return dish
        return None

    def with_dish(self, dish: DishOrder) -> TableAccount:
        dishes = tuple(
            dish if existing.dish_id == dish.dish_id else existing for existing in self.dishes
        )
        if self.find_dish(dish.dish_id) is None:
            dishes = dishes + (dish,)
        return replace(self, dishes=dishes)

    def with_share(self, share: SplitShare) -> TableAccount:
        shares = tuple(
            share if existing.share_id == share.share_id else existing for existing in self.shares
        )
        return replace(self, shares=shares)

    def with_payment(self, payment: PaymentRecord) -> TableAccount:
        return replace(self, payments=self.payments + (payment,))
