"""
Per-date availability record - the capacity ledger entry.

``hunters_booked`` only ever grows in this service; cancellations are handled
elsewhere.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class Availability:
    date: str
    hunters_booked: int = 0
    party_deck_booked: bool = False
    is_off_season: bool = False

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "Availability":
        return cls(
            date=str(data.get("id") or doc_id),
            hunters_booked=int(data.get("huntersBooked") or 0),
            party_deck_booked=bool(data.get("partyDeckBooked")),
            is_off_season=bool(data.get("isOffSeason")),
        )
