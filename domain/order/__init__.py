from .entity import (
    Booking,
    Currency,
    Customer,
    Level3Item,
    Order,
    OrderStatus,
)
from .repository import OrderRepository

__all__ = [
    "Booking",
    "Currency",
    "Customer",
    "Level3Item",
    "Order",
    "OrderStatus",
    "OrderRepository",
]
