import logging
from typing import Optional, Tuple

from gasy_hub.core.settings import settings
from .base import GeocodingProvider, NoOpProvider
from .nominatim_provider import NominatimProvider

logger = logging.getLogger(__name__)

_provider_instance: Optional[GeocodingProvider] = None


def get_geocoding_provider() -> GeocodingProvider:
    """
    Resolve the active geocoding provider based on settings.

    Rules:
    - GEOCODING_ENABLED false (default): no-op provider, no network calls.
    - Otherwise: Nominatim restricted to GEOCODING_COUNTRY_CODES.
    """
    global _provider_instance
    if _provider_instance is not None:
        return _provider_instance

    if not settings.GEOCODING_ENABLED:
        _provider_instance = NoOpProvider()
        return _provider_instance

    _provider_instance = NominatimProvider(
        user_agent=settings.GEOCODING_USER_AGENT,
        country_codes=settings.GEOCODING_COUNTRY_CODES or None,
    )
    logger.info("Geocoding provider initialized: nominatim")
    return _provider_instance


def reset_geocoding_provider() -> None:
    global _provider_instance
    _provider_instance = None


def resolve_coordinates(
    location: str,
    latitude: Optional[float],
    longitude: Optional[float],
) -> Tuple[Optional[float], Optional[float]]:
    """
    Keep client coordinates when both are present; otherwise try the
    provider. Best-effort: returns the inputs unchanged on any miss.
    """
    if latitude is not None and longitude is not None:
        return latitude, longitude

    result = get_geocoding_provider().geocode(location)
    if result.get("latitude") is None or result.get("longitude") is None:
        return latitude, longitude

    logger.info(f"Geocoded '{location}' via {result.get('provider')}")
    return result["latitude"], result["longitude"]
