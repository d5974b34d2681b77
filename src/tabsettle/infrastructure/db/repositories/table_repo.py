from __future__ import annotations

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from tabsettle.application.ports.repositories import TableListing, TableRepository
from tabsettle.domain.common.ids import RestaurantId, TableId
from tabsettle.domain.sitting.entities import SittingStatus
from tabsettle.domain.table.entities import Table, TableStatus
from tabsettle.infrastructure.db.models.restaurant import RestaurantModel
from tabsettle.infrastructure.db.models.sitting import SittingModel
from tabsettle.infrastructure.db.models.table import TableModel
from tabsettle.infrastructure.db.repositories.account_repo import (
    sitting_to_domain,
    table_to_domain,
)
from tabsettle.infrastructure.db.session import get_engine


class SqlAlchemyTableRepository(TableRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, table_id: TableId, restaurant_id: RestaurantId) -> Table | None:
        statement = select(TableModel).where(
            TableModel.id == str(table_id),
            TableModel.restaurant_id == str(restaurant_id),
        )
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()

        if model is None:
            return None

        return table_to_domain(model)

    def upsert(self, table: Table) -> None:
        with Session(self._engine) as session, session.begin():
            if session.get(RestaurantModel, str(table.restaurant_id)) is None:
                session.add(
                    RestaurantModel(id=str(table.restaurant_id), name=str(table.restaurant_id))
                )
                session.flush()

            model = session.execute(
                select(TableModel).where(
                    TableModel.id == str(table.table_id),
                    TableModel.restaurant_id == str(table.restaurant_id),
                )
            ).scalar_one_or_none()
            if model is None:
                session.add(
                    TableModel(
                        id=str(table.table_id),
                        restaurant_id=str(table.restaurant_id),
                        status=table.status.value,
                    )
                )
            else:
                model.status = table.status.value

    def list_for_restaurant(
        self,
        restaurant_id: RestaurantId,
        status: TableStatus | None,
    ) -> list[TableListing]:
        statement = select(TableModel).where(TableModel.restaurant_id == str(restaurant_id))
        if status is not None:
            statement = statement.where(TableModel.status == status.value)
        statement = statement.order_by(TableModel.id)

        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
            sittings = {
                sitting.table_id: sitting_to_domain(sitting)
                for sitting in session.execute(
                    select(SittingModel).where(
                        SittingModel.restaurant_id == str(restaurant_id),
                        SittingModel.status == SittingStatus.OPEN.value,
                    )
                ).scalars()
            }

        return [
            TableListing(table=table_to_domain(model), sitting=sittings.get(model.id))
            for model in models
        ]
