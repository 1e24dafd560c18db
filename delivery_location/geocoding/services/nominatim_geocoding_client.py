import asyncio
import logging
from typing import Any, Dict, List, Optional

from delivery_location.config.settings import settings
from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.location_errors import GeocodeUnavailable
from delivery_location.core.domain.resolved_address import ResolvedAddress
from delivery_location.geocoding.adapters.geocoding_http_client import GeocodingHttpClient
from delivery_location.geocoding.domain.search_candidate import SearchCandidate
from delivery_location.geocoding.interfaces.geocoding_client import GeocodingClient
from delivery_location.geocoding.services.address_payload_parser import (
    address_confidence,
    address_from_payload,
)

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 10

# Appended to free-text queries when a region bias is given
REGION_QUALIFIERS = {
    "in": "India",
}


class NominatimGeocodingClient(GeocodingClient):
    """
    Reverse and forward geocoding against OpenStreetMap Nominatim.
    Stateless; the blocking HTTP call runs in a worker thread.
    """

    def __init__(self, http: Optional[GeocodingHttpClient] = None):
        self.http = http or GeocodingHttpClient()

    async def reverse_geocode(self, coord: Coordinate) -> ResolvedAddress:
        params = {
            "format": "json",
            "lat": coord.latitude,
            "lon": coord.longitude,
            "addressdetails": 1,
            "accept-language": settings.ACCEPT_LANGUAGE,
        }
        payload = await asyncio.to_thread(self.http.get_json, "reverse", params)
        address = address_from_payload(payload, source_coordinate=coord)

        components = payload.get("address") or {}
        logger.info(
            f"Reverse geocoded ({coord.latitude}, {coord.longitude}) -> {address.city}, {address.state} "
            f"(confidence={address_confidence(components, address):.2f}, complete={address.is_complete})"
        )
        return address

    async def forward_search(self, query: str, region_bias: Optional[str] = None) -> List[SearchCandidate]:
        if not query or not query.strip():
            return []

        text = query.strip()
        params: Dict[str, Any] = {
            "format": "json",
            "limit": min(settings.SEARCH_RESULT_LIMIT, MAX_CANDIDATES),
            "addressdetails": 1,
            "accept-language": settings.ACCEPT_LANGUAGE,
        }
        if region_bias:
            code = region_bias.strip().lower()
            text = f"{text}, {REGION_QUALIFIERS.get(code, region_bias.strip())}"
            params["countrycodes"] = code
        params["q"] = text

        payload = await asyncio.to_thread(self.http.get_json, "search", params)
        if not isinstance(payload, list):
            raise GeocodeUnavailable("Malformed search payload")

        candidates = []
        for item in payload:
            candidate = self._to_candidate(item)
            if candidate is not None:
                candidates.append(candidate)
            if len(candidates) >= MAX_CANDIDATES:
                break

        logger.info(f"Place search '{text}' returned {len(candidates)} candidates")
        return candidates

    @staticmethod
    def _to_candidate(item: Any) -> Optional[SearchCandidate]:
        if not isinstance(item, dict):
            return None
        try:
            coordinate = Coordinate(float(item["lat"]), float(item["lon"]))
            display_name = str(item["display_name"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping unparseable search result: {e}")
            return None
        return SearchCandidate(display_name=display_name, coordinate=coordinate, raw_provider_payload=item)


def address_from_candidate(candidate: SearchCandidate) -> ResolvedAddress:
    """Selected candidates carry no source coordinate: they are not GPS-derived."""
    payload = dict(candidate.raw_provider_payload)
    payload.setdefault("display_name", candidate.display_name)
    return address_from_payload(payload)
