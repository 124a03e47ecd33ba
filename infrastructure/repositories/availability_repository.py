"""
Availability repository backed by the document store (read side only; writes
go through the capacity ledger's batches).
"""
from typing import Optional

from application.ports.document_store import DocumentStore
from domain.availability.entity import Availability
from domain.availability.repository import AvailabilityRepository


class DocumentAvailabilityRepository(AvailabilityRepository):
    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, date: str) -> Optional[Availability]:
        data = await self.store.get(self.collection, date)
        if data is None:
            return None
        return Availability.from_document(date, data)
