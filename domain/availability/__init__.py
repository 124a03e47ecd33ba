from .entity import Availability
from .repository import AvailabilityRepository

__all__ = ["Availability", "AvailabilityRepository"]
