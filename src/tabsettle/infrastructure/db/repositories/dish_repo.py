from __future__ import annotations

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from tabsettle.application.ports.repositories import DishOrderRepository
from tabsettle.domain.common.ids import DishOrderId
from tabsettle.domain.dish.entities import DishOrder, KitchenStatus
from tabsettle.infrastructure.db.models.sitting import DishOrderModel
from tabsettle.infrastructure.db.repositories.account_repo import dish_to_domain
from tabsettle.infrastructure.db.session import get_engine


class SqlAlchemyDishOrderRepository(DishOrderRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, dish_id: DishOrderId) -> DishOrder | None:
        with Session(self._engine) as session:
            model = session.get(DishOrderModel, str(dish_id))
            if model is None:
                return None
            return dish_to_domain(model)

    def update_kitchen_status(
        self,
        dish_id: DishOrderId,
        status: KitchenStatus,
    ) -> DishOrder | None:
        with Session(self._engine) as session, session.begin():
            model = session.get(DishOrderModel, str(dish_id), with_for_update=True)
            if model is None:
                return None
            model.kitchen_status = status.value
            session.flush()
            return dish_to_domain(model)
