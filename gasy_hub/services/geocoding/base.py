from abc import ABC, abstractmethod
from typing import Dict, Optional


class GeocodingProvider(ABC):
    """
    Turns a place name typed by a resident ("Analakely, Antananarivo")
    into coordinates.

    geocode() returns a dict with latitude, longitude, display_name and
    provider. On any failure the coordinates are None; providers never
    raise, because a missing position must not block an alert.
    """

    @abstractmethod
    def geocode(self, query: str) -> Dict[str, Optional[object]]:
        raise NotImplementedError


def empty_result(provider: str) -> Dict[str, Optional[object]]:
    return dict(latitude=None, longitude=None, display_name=None, provider=provider)


class NoOpProvider(GeocodingProvider):
    """Used when geocoding is disabled."""

    def geocode(self, query: str) -> Dict[str, Optional[object]]:
        return empty_result("noop")
