from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from tabsettle.application.ports.repositories import (
    AccountMutation,
    T,
    TableAccountRepository,
    TableNotFoundError,
)
from tabsettle.domain.account.aggregate import TableAccount
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
from tabsettle.domain.dish.entities import DishOrder, DishPaymentStatus, KitchenStatus
from tabsettle.domain.participant.entities import Contributions, Participant, PaymentModality
from tabsettle.domain.payment.entities import PaymentRecord
from tabsettle.domain.sitting.entities import Sitting, SittingStatus
from tabsettle.domain.split.entities import SplitShare, SplitShareStatus
from tabsettle.domain.table.entities import Table, TableStatus
from tabsettle.infrastructure.db.models.participant import ParticipantModel, SplitShareModel
from tabsettle.infrastructure.db.models.sitting import DishOrderModel, PaymentModel, SittingModel
from tabsettle.infrastructure.db.models.table import TableModel
from tabsettle.infrastructure.db.session import get_engine


class SqlAlchemyTableAccountRepository(TableAccountRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def load(self, restaurant_id: RestaurantId, table_id: TableId) -> TableAccount | None:
        with Session(self._engine) as session:
            table_model = session.execute(
                _table_statement(restaurant_id, table_id)
            ).scalar_one_or_none()
            if table_model is None:
                return None
            return self._load_account(session, table_model)

    def update(
        self,
        restaurant_id: RestaurantId,
        table_id: TableId,
        mutate: AccountMutation[T],
    ) -> T:
        with Session(self._engine) as session, session.begin():
            table_model = session.execute(
                _table_statement(restaurant_id, table_id).with_for_update()
            ).scalar_one_or_none()
            if table_model is None:
                raise TableNotFoundError(
                    f"table not found for restaurant_id={restaurant_id}, table_id={table_id}"
                )

            current = self._load_account(session, table_model)

            def find_payment(key: str) -> PaymentRecord | None:
                model = session.execute(
                    select(PaymentModel).where(
                        PaymentModel.restaurant_id == str(restaurant_id),
                        PaymentModel.table_id == str(table_id),
                        PaymentModel.idempotency_key == key,
                    )
                ).scalar_one_or_none()
                return payment_to_domain(model) if model is not None else None

            updated, result = mutate(current, find_payment)
            self._persist(session, table_model, current, updated)
        return result

    def _load_account(self, session: Session, table_model: TableModel) -> TableAccount:
        sitting_model = session.execute(
            select(SittingModel).where(
                SittingModel.restaurant_id == table_model.restaurant_id,
                SittingModel.table_id == table_model.id,
                SittingModel.status == SittingStatus.OPEN.value,
            )
        ).scalar_one_or_none()

        dishes: tuple[DishOrder, ...] = ()
        payments: tuple[PaymentRecord, ...] = ()
        if sitting_model is not None:
            dishes = tuple(
                dish_to_domain(model)
                for model in session.execute(
                    select(DishOrderModel)
                    .where(DishOrderModel.sitting_id == sitting_model.id)
                    .order_by(DishOrderModel.created_at, DishOrderModel.id)
                ).scalars()
            )
            payments = tuple(
                payment_to_domain(model)
                for model in session.execute(
                    select(PaymentModel)
                    .where(PaymentModel.sitting_id == sitting_model.id)
                    .order_by(PaymentModel.created_at, PaymentModel.id)
                ).scalars()
            )

        participants = tuple(
            _participant_to_domain(model)
            for model in session.execute(
                select(ParticipantModel)
                .where(
                    ParticipantModel.restaurant_id == table_model.restaurant_id,
                    ParticipantModel.table_id == table_model.id,
                )
                .order_by(ParticipantModel.position)
            ).scalars()
        )
        shares = tuple(
            _share_to_domain(model)
            for model in session.execute(
                select(SplitShareModel)
                .where(
                    SplitShareModel.restaurant_id == table_model.restaurant_id,
                    SplitShareModel.table_id == table_model.id,
                )
                .order_by(SplitShareModel.position)
            ).scalars()
        )

        return TableAccount(
            table=table_to_domain(table_model),
            sitting=sitting_to_domain(sitting_model) if sitting_model is not None else None,
            dishes=dishes,
            participants=participants,
            shares=shares,
            payments=payments,
        )

    def _persist(
        self,
        session: Session,
        table_model: TableModel,
        current: TableAccount,
        updated: TableAccount,
    ) -> None:
        table_model.status = updated.table.status.value
        if updated.sitting is not None:
            session.merge(_sitting_to_model(updated.sitting))
            session.flush()

        for dish in updated.dishes:
            dish_model = session.get(DishOrderModel, str(dish.dish_id))
            if dish_model is None:
                session.add(_dish_to_model(dish))
                continue
            # kitchen status is written separately and must not be overwritten here
            dish_model.payment_status = dish.payment_status.value
            dish_model.paid_at = dish.paid_at
            dish_model.user_id = dish.owner.user_id
            dish_model.guest_id = dish.owner.guest_id
            dish_model.guest_name = dish.owner.guest_name

        known_payments = {payment.payment_id for payment in current.payments}
        for payment in updated.payments:
            if payment.payment_id not in known_payments:
                session.add(_payment_to_model(payment))

        restaurant_id = table_model.restaurant_id
        table_id = table_model.id
        session.execute(
            delete(ParticipantModel).where(
                ParticipantModel.restaurant_id == restaurant_id,
                ParticipantModel.table_id == table_id,
            )
        )
        session.execute(
            delete(SplitShareModel).where(
                SplitShareModel.restaurant_id == restaurant_id,
                SplitShareModel.table_id == table_id,
            )
        )
        for position, participant in enumerate(updated.participants):
            session.add(_participant_to_model(participant, restaurant_id, table_id, position))
        for position, share in enumerate(updated.shares):
            session.add(_share_to_model(share, restaurant_id, table_id, position))


def _table_statement(restaurant_id: RestaurantId, table_id: TableId):
    return select(TableModel).where(
        TableModel.restaurant_id == str(restaurant_id),
        TableModel.id == str(table_id),
    )


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _owner(user_id: str | None, guest_id: str | None, guest_name: str | None) -> Owner:
    return Owner(user_id=user_id, guest_id=guest_id, guest_name=guest_name)


def table_to_domain(model: TableModel) -> Table:
    return Table(
        table_id=TableId(model.id),
        restaurant_id=RestaurantId(model.restaurant_id),
        status=TableStatus(model.status),
    )


def sitting_to_domain(model: SittingModel) -> Sitting:
    return Sitting(
        sitting_id=SittingId(model.id),
        restaurant_id=RestaurantId(model.restaurant_id),
        table_id=TableId(model.table_id),
        status=SittingStatus(model.status),
        total=Money(amount_cents=model.total_cents, currency=model.currency),
        paid=Money(amount_cents=model.paid_cents, currency=model.currency),
        item_count=model.item_count,
        created_at=_aware(model.created_at),
        closed_at=_aware(model.closed_at),
    )


def _sitting_to_model(sitting: Sitting) -> SittingModel:
    return SittingModel(
        id=str(sitting.sitting_id),
        restaurant_id=str(sitting.restaurant_id),
        table_id=str(sitting.table_id),
        status=sitting.status.value,
        total_cents=sitting.total.amount_cents,
        paid_cents=sitting.paid.amount_cents,
        currency=sitting.currency,
        item_count=sitting.item_count,
        created_at=sitting.created_at,
        closed_at=sitting.closed_at,
    )


def dish_to_domain(model: DishOrderModel) -> DishOrder:
    return DishOrder(
        dish_id=DishOrderId(model.id),
        sitting_id=SittingId(model.sitting_id),
        restaurant_id=RestaurantId(model.restaurant_id),
        table_id=TableId(model.table_id),
        owner=_owner(model.user_id, model.guest_id, model.guest_name),
        item_name=model.item_name,
        quantity=model.quantity,
        unit_price=Money(amount_cents=model.unit_price_cents, currency=model.currency),
        extra_price=Money(amount_cents=model.extra_price_cents, currency=model.currency),
        kitchen_status=KitchenStatus(model.kitchen_status),
        payment_status=DishPaymentStatus(model.payment_status),
        created_at=_aware(model.created_at),
        images=tuple(model.images or ()),
        custom_fields=model.custom_fields,
        paid_at=_aware(model.paid_at),
    )


def _dish_to_model(dish: DishOrder) -> DishOrderModel:
    return DishOrderModel(
        id=str(dish.dish_id),
        sitting_id=str(dish.sitting_id),
        restaurant_id=str(dish.restaurant_id),
        table_id=str(dish.table_id),
        user_id=dish.owner.user_id,
        guest_id=dish.owner.guest_id,
        guest_name=dish.owner.guest_name,
        item_name=dish.item_name,
        quantity=dish.quantity,
        unit_price_cents=dish.unit_price.amount_cents,
        extra_price_cents=dish.extra_price.amount_cents,
        currency=dish.unit_price.currency,
        kitchen_status=dish.kitchen_status.value,
        payment_status=dish.payment_status.value,
        images=list(dish.images),
        custom_fields=dish.custom_fields,
        created_at=dish.created_at,
        paid_at=dish.paid_at,
    )


def _participant_to_domain(model: ParticipantModel) -> Participant:
    return Participant(
        owner=_owner(model.user_id, model.guest_id, model.guest_name),
        contributions=Contributions(
            individual_cents=model.individual_cents,
            amount_cents=model.amount_cents,
            split_cents=model.split_cents,
        ),
        joined_at=_aware(model.joined_at),
        updated_at=_aware(model.updated_at),
    )


def _participant_to_model(
    participant: Participant,
    restaurant_id: str,
    table_id: str,
    position: int,
) -> ParticipantModel:
    return ParticipantModel(
        restaurant_id=restaurant_id,
        table_id=table_id,
        position=position,
        user_id=participant.owner.user_id,
        guest_id=participant.owner.guest_id,
        guest_name=participant.owner.guest_name,
        individual_cents=participant.contributions.individual_cents,
        amount_cents=participant.contributions.amount_cents,
        split_cents=participant.contributions.split_cents,
        joined_at=participant.joined_at,
        updated_at=participant.updated_at,
    )


def _share_to_domain(model: SplitShareModel) -> SplitShare:
    return SplitShare(
        share_id=SplitShareId(model.id),
        owner=_owner(model.user_id, model.guest_id, model.guest_name),
        expected=Money(amount_cents=model.expected_cents, currency=model.currency),
        amount_paid=Money(amount_cents=model.amount_paid_cents, currency=model.currency),
        status=SplitShareStatus(model.status),
        original_total=Money(amount_cents=model.original_total_cents, currency=model.currency),
        created_at=_aware(model.created_at),
        paid_at=_aware(model.paid_at),
    )


def _share_to_model(
    share: SplitShare,
    restaurant_id: str,
    table_id: str,
    position: int,
) -> SplitShareModel:
    return SplitShareModel(
        id=str(share.share_id),
        restaurant_id=restaurant_id,
        table_id=table_id,
        position=position,
        user_id=share.owner.user_id,
        guest_id=share.owner.guest_id,
        guest_name=share.owner.guest_name,
        expected_cents=share.expected.amount_cents,
        amount_paid_cents=share.amount_paid.amount_cents,
        original_total_cents=share.original_total.amount_cents,
        currency=share.expected.currency,
        status=share.status.value,
        created_at=share.created_at,
        paid_at=share.paid_at,
    )


def payment_to_domain(model: PaymentModel) -> PaymentRecord:
    owner = None
    if model.user_id or model.guest_id or model.guest_name:
        owner = _owner(model.user_id, model.guest_id, model.guest_name)
    return PaymentRecord(
        payment_id=PaymentId(model.id),
        restaurant_id=RestaurantId(model.restaurant_id),
        table_id=TableId(model.table_id),
        sitting_id=SittingId(model.sitting_id),
        modality=PaymentModality(model.modality),
        amount=Money(amount_cents=model.amount_cents, currency=model.currency),
        created_at=_aware(model.created_at),
        owner=owner,
        dish_id=DishOrderId(model.dish_id) if model.dish_id else None,
        idempotency_key=model.idempotency_key,
        idempotency_hash=model.idempotency_hash,
        closed_sitting=model.closed_sitting,
    )


def _payment_to_model(payment: PaymentRecord) -> PaymentModel:
    owner = payment.owner
    return PaymentModel(
        id=str(payment.payment_id),
        restaurant_id=str(payment.restaurant_id),
        table_id=str(payment.table_id),
        sitting_id=str(payment.sitting_id),
        modality=payment.modality.value,
        amount_cents=payment.amount.amount_cents,
        currency=payment.amount.currency,
        user_id=owner.user_id if owner else None,
        guest_id=owner.guest_id if owner else None,
        guest_name=owner.guest_name if owner else None,
        dish_id=str(payment.dish_id) if payment.dish_id else None,
        idempotency_key=payment.idempotency_key,
        idempotency_hash=payment.idempotency_hash,
        closed_sitting=payment.closed_sitting,
        created_at=payment.created_at,
    )
