from __future__ import annotations

from typing import NewType

RestaurantId = NewType("RestaurantId", str)
TableId = NewType("TableId", str)
SittingId = NewType("SittingId", str)
DishOrderId = NewType("DishOrderId", str)
SplitShareId = NewType("SplitShareId", str)
PaymentId = NewType("PaymentId", str)
