from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from tabsettle.domain.common.ids import RestaurantId, TableId


class TableStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"


@dataclass(frozen=True)
class Table:
    table_id: TableId
    restaurant_id: RestaurantId
    status: TableStatus = TableStatus.AVAILABLE

    def occupy(self) -> Table:
        if self.status == TableStatus.OCCUPIED:
            return self
        return replace(self, status=TableStatus.OCCUPIED)

    def release(self) -> Table:
        if self.status == TableStatus.AVAILABLE:
            return self
        return replace(self, status=TableStatus.AVAILABLE)
