"""
Capacity ledger writer: per-date ``huntersBooked`` increments for a confirmed
booking.

Not idempotent on its own; callers must make sure it fires once per order.
The webhook reconciler does so by staging the increments into the same batch
as the pending -> paid transition.
"""
from __future__ import annotations

from application.ports.document_store import DocumentStore, Increment, WriteBatch
from core.logging_config import get_logger
from domain.availability.repository import AvailabilityRepository
from domain.order.entity import Booking


logger = get_logger(__name__)


class CapacityLedgerWriter:
    collection = AvailabilityRepository.collection

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def stage(self, batch: WriteBatch, booking: Booking | None) -> int:
        """Add the booking's increments to ``batch``; returns the number of dates staged."""
        if booking is None or not booking.consumes_capacity():
            return 0
        dates = booking.unique_dates()
        party_deck = set(booking.party_deck_dates)
        for date in dates:
            data = {"id": date, "date": date, "huntersBooked": Increment(booking.number_of_hunters)}
            if date in party_deck:
                data["partyDeckBooked"] = True
            batch.set(self.collection, date, data, merge=True)
        return len(dates)

    async def apply(self, booking: Booking | None) -> int:
        """Commit the booking's increments as one atomic batch of their own."""
        batch = self.store.batch()
        staged = self.stage(batch, booking)
        if not staged:
            logger.info("capacity_skipped", reason="no dates or hunters")
            return 0
        await batch.commit()
        logger.info("capacity_applied", dates=staged, hunters=booking.number_of_hunters)
        return staged
