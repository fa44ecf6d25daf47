import logging
from typing import Any, Dict, List, Optional

import requests

from .base import GeocodingProvider, empty_result

logger = logging.getLogger(__name__)

SEARCH_TIMEOUT_SECONDS = 3.0


class NominatimProvider(GeocodingProvider):
    """
    Forward geocoding through the OpenStreetMap Nominatim search API.

    Results are restricted to `country_codes` (Madagascar by default) and
    only the best match is used. Nominatim requires an identifying
    User-Agent and allows no API key.
    """

    BASE_URL = "https://nominatim.openstreetmap.org/search"

    def __init__(self, user_agent: str = "gasy-hub/0.1", country_codes: Optional[str] = "mg"):
        self.user_agent = user_agent
        self.country_codes = country_codes

    def _search_params(self, query: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {"q": query, "format": "json", "limit": 1}
        if self.country_codes:
            params["countrycodes"] = self.country_codes
        return params

    def geocode(self, query: str) -> Dict[str, Optional[object]]:
        query = (query or "").strip()
        if not query:
            return empty_result("nominatim")

        try:
            resp = requests.get(
                self.BASE_URL,
                params=self._search_params(query),
                headers={"User-Agent": self.user_agent},
                timeout=SEARCH_TIMEOUT_SECONDS,
            )
            if resp.status_code != 200:
                logger.warning(f"Nominatim search for '{query}' returned {resp.status_code}")
                return empty_result("nominatim")

            matches: List[Dict[str, Any]] = resp.json()
        except (requests.RequestException, ValueError) as e:
            # Geocoding is optional; the alert is stored without coordinates
            logger.warning(f"Nominatim search for '{query}' failed: {e}")
            return empty_result("nominatim")

        if not matches:
            return empty_result("nominatim")

        best = matches[0]
        try:
            latitude, longitude = float(best["lat"]), float(best["lon"])
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Nominatim returned an unusable match for '{query}': {best}")
            return empty_result("nominatim")

        return {
            "latitude": latitude,
            "longitude": longitude,
            "display_name": best.get("display_name"),
            "provider": "nominatim",
        }
