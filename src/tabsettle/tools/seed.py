from __future__ import annotations

from sqlalchemy import inspect

from tabsettle.domain.common.ids import RestaurantId, TableId
from tabsettle.domain.table.entities import Table
from tabsettle.infrastructure.db.repositories.table_repo import SqlAlchemyTableRepository
from tabsettle.infrastructure.db.session import get_engine

SEED_RESTAURANT_ID = "rst_001"
SEED_TABLE_IDS = ("tbl_001", "tbl_002", "tbl_003", "tbl_004")


def main() -> None:
    engine = get_engine(timeout_seconds=2.0)
    required_tables = {"restaurants", "tables", "sittings", "dish_orders"}
    if not required_tables.issubset(set(inspect(engine).get_table_names())):
        print("no schema yet")
        return

    repository = SqlAlchemyTableRepository(engine=engine)
    restaurant_id = RestaurantId(SEED_RESTAURANT_ID)
    for table_id in SEED_TABLE_IDS:
        # an existing table keeps its current status
        if repository.get(table_id=TableId(table_id), restaurant_id=restaurant_id) is not None:
            continue
        repository.upsert(Table(table_id=TableId(table_id), restaurant_id=restaurant_id))
    print("seed complete")


if __name__ == "__main__":
    main()
