"""
Best-effort forward geocoding for alert locations.
"""

from .base import GeocodingProvider, NoOpProvider
from .nominatim_provider import NominatimProvider
from .resolver import get_geocoding_provider, reset_geocoding_provider, resolve_coordinates

__all__ = [
    "GeocodingProvider",
    "NoOpProvider",
    "NominatimProvider",
    "get_geocoding_provider",
    "reset_geocoding_provider",
    "resolve_coordinates",
]
