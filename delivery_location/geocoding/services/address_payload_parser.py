"""
Turns Nominatim reverse/search payloads into ResolvedAddress values.

Street line precedence: house_number, road, suburb, neighbourhood. When none
of these are present the first three comma-separated fragments of the
provider's display_name are used instead.
"""
import logging
from typing import Any, Dict, Optional

from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.location_errors import GeocodeNoResult, GeocodeUnavailable
from delivery_location.core.domain.resolved_address import ResolvedAddress, is_valid_postal_code

logger = logging.getLogger(__name__)

UNKNOWN_CITY = "Unknown City"
UNKNOWN_STATE = "Unknown State"

STREET_TOKENS = ("house_number", "road", "suburb", "neighbourhood")
CITY_CHAIN = ("city", "town", "village", "county")
STATE_CHAIN = ("state",)
DISPLAY_NAME_FRAGMENTS = 3


def _token(components: Dict[str, Any], key: str) -> str:
    value = components.get(key)
    if isinstance(value, str):
        return value.strip()
    return ""


def _first_of(components: Dict[str, Any], chain, fallback: str) -> str:
    for key in chain:
        value = _token(components, key)
        if value:
            return value
    return fallback


def build_street_line(components: Dict[str, Any], display_name: str) -> str:
    parts = [_token(components, key) for key in STREET_TOKENS]
    parts = [p for p in parts if p]
    if parts:
        return ", ".join(parts)
    fragments = [f.strip() for f in (display_name or "").split(",") if f.strip()]
    return ", ".join(fragments[:DISPLAY_NAME_FRAGMENTS])


def resolve_city(components: Dict[str, Any]) -> str:
    return _first_of(components, CITY_CHAIN, UNKNOWN_CITY)


def resolve_state(components: Dict[str, Any]) -> str:
    return _first_of(components, STATE_CHAIN, UNKNOWN_STATE)


def address_from_payload(
        payload: Any,
        source_coordinate: Optional[Coordinate] = None
) -> ResolvedAddress:
    if not isinstance(payload, dict):
        raise GeocodeUnavailable("Malformed geocoding payload")
    if payload.get("error"):
        raise GeocodeNoResult(str(payload["error"]))

    components = payload.get("address")
    display_name = payload.get("display_name")
    if components is None and not display_name:
        raise GeocodeUnavailable("Geocoding payload has no address data")
    if components is not None and not isinstance(components, dict):
        raise GeocodeUnavailable("Malformed address components")
    components = components or {}
    display_name = display_name if isinstance(display_name, str) else ""

    landmark = _token(components, "landmark") or None
    return ResolvedAddress(
        street_line=build_street_line(components, display_name),
        city=resolve_city(components),
        state=resolve_state(components),
        postal_code=_token(components, "postcode"),
        landmark=landmark,
        source_coordinate=source_coordinate,
    )


def address_confidence(components: Dict[str, Any], address: ResolvedAddress) -> float:
    """
    Completeness score in [0, 1] for a resolved address.
    """
    score = 0
    if _token(components, "house_number") or _token(components, "building"):
        score += 20
    if _token(components, "road") or _token(components, "street"):
        score += 20
    if _token(components, "neighbourhood") or _token(components, "suburb"):
        score += 15
    if address.city and address.city != UNKNOWN_CITY:
        score += 20
    if address.state and address.state != UNKNOWN_STATE:
        score += 15
    if is_valid_postal_code(address.postal_code):
        score += 10
    return min(score / 100, 1.0)
