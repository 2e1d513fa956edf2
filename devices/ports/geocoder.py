"""
Geocoder port (interface).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


class Geocoder(ABC):
    """Converts a free-text location name into coordinates."""

    @abstractmethod
    async def geocode(self, query: str) -> Coordinates:
        """
        Look up coordinates for a location name.

        Args:
            query: Free-text location

        Returns:
            Coordinates of the best match

        Raises:
            ExternalServiceError: If the lookup fails or finds nothing
        """
        pass
