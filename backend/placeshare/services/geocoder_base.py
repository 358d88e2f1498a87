"""
PlaceShare Backend — Abstract Geocoder Interface
==================================================

What:  Contract for services that turn a postal address into coordinates.
How:   Concrete implementations inherit from Geocoder and implement geocode().
Who:   Called by PlaceService before any write during place creation.
"""

from abc import ABC, abstractmethod

from placeshare.schemas.place import Coordinates


class Geocoder(ABC):
    """
    Resolves addresses to coordinates.

    Contract:
        - geocode() returns Coordinates or raises GeocodeError
        - implementations bound their own latency and handle their own retries
        - provider-specific errors never escape as anything but GeocodeError

    Implementations:
        - GoogleGeocoder: Google Maps Geocoding API over httpx
    """

    @abstractmethod
    async def geocode(self, address: str) -> Coordinates:
        """
        Resolve `address` to a point.

        Raises:
            GeocodeError: zero results, provider error, network failure or timeout
        """
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the geocoder has what it needs to make calls (e.g. an API key)."""
        ...
