"""
Order repository backed by the document store.
"""
from typing import Any, Optional

from application.ports.document_store import DocumentStore
from domain.order.entity import Order
from domain.order.repository import OrderRepository


class DocumentOrderRepository(OrderRepository):
    """Orders live in the ``orders`` collection keyed by order id."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, order_id: str) -> Optional[Order]:
        data = await self.store.get(self.collection, order_id)
        if data is None:
            return None
        return Order.from_document(order_id, data)

    async def merge(self, order_id: str, fields: dict[str, Any]) -> None:
        await self.store.set(self.collection, order_id, fields, merge=True)
