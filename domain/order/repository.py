"""
Order repository interface - what the payment flows need from order storage.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional

from .entity import Order


class OrderRepository(ABC):
    """Order repository port: defines what can be done, not how."""

    collection = "orders"

    @abstractmethod
    async def get(self, order_id: str) -> Optional[Order]:
        """Load an order, or None when it does not exist."""
        pass

    @abstractmethod
    async def merge(self, order_id: str, fields: dict[str, Any]) -> None:
        """Merge-write fields onto the order without touching unrelated ones."""
        pass
