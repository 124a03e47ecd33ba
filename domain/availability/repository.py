"""
Availability repository interface.
"""
from abc import ABC, abstractmethod
from typing import Optional

from .entity import Availability


class AvailabilityRepository(ABC):
    collection = "availability"

    @abstractmethod
    async def get(self, date: str) -> Optional[Availability]:
        """Load the availability record for an ISO date."""
        pass
