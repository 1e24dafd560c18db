import asyncio
import logging
from typing import Any, List, Optional

from delivery_location.config.settings import settings
from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.location_errors import GeocodeUnavailable, ValidationFailed
from delivery_location.core.domain.resolved_address import ResolvedAddress, is_valid_postal_code
from delivery_location.geocoding.adapters.geocoding_http_client import GeocodingHttpClient
from delivery_location.geocoding.domain.pincode_locality import PincodeLocality, PincodeSource

logger = logging.getLogger(__name__)

# (first, last, city, district, state) for major-city pincode ranges
OFFLINE_PINCODE_RANGES = [
    (110000, 110099, "New Delhi", "New Delhi", "Delhi"),
    (400000, 400099, "Mumbai", "Mumbai", "Maharashtra"),
    (700000, 700099, "Kolkata", "Kolkata", "West Bengal"),
    (600000, 600099, "Chennai", "Chennai", "Tamil Nadu"),
    (500000, 500099, "Hyderabad", "Hyderabad", "Telangana"),
    (560000, 560099, "Bangalore", "Bangalore", "Karnataka"),
    (380000, 380099, "Ahmedabad", "Ahmedabad", "Gujarat"),
    (302000, 302099, "Jaipur", "Jaipur", "Rajasthan"),
    (226000, 226099, "Lucknow", "Lucknow", "Uttar Pradesh"),
    (800000, 800099, "Patna", "Patna", "Bihar"),
    (411000, 411099, "Pune", "Pune", "Maharashtra"),
]


class PincodeDirectory:
    """
    Postal-code to locality lookup.
    Sources are tried in order (India Post, Nominatim, offline table) and the
    first one with results wins. Online failures fall through to the next source.
    """

    def __init__(
            self,
            india_post: Optional[GeocodingHttpClient] = None,
            nominatim: Optional[GeocodingHttpClient] = None
    ):
        self.india_post = india_post or GeocodingHttpClient(base_url=settings.INDIA_POST_BASE_URL)
        self.nominatim = nominatim or GeocodingHttpClient()

    async def lookup(self, postal_code: str) -> List[PincodeLocality]:
        code = (postal_code or "").strip()
        if not is_valid_postal_code(code):
            raise ValidationFailed({"postal_code": "invalid"})

        for source in (self._from_india_post, self._from_nominatim):
            try:
                results = await asyncio.to_thread(source, code)
            except GeocodeUnavailable as e:
                logger.warning(f"Pincode source {source.__name__} failed for {code}: {e}")
                continue
            if results:
                return results

        offline = self._from_offline_table(code)
        if not offline:
            logger.info(f"No locality found for pincode {code}")
        return offline

    def _from_india_post(self, code: str) -> List[PincodeLocality]:
        payload = self.india_post.get_json(f"pincode/{code}")
        if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
            return []
        entry = payload[0]
        offices = entry.get("PostOffice") or []
        if entry.get("Status") != "Success" or not offices:
            return []

        office = offices[0]
        return [PincodeLocality(
            postal_code=code,
            post_office=office.get("Name", ""),
            district=office.get("District", ""),
            city=office.get("Block") or office.get("District", ""),
            state=office.get("State", ""),
            source=PincodeSource.INDIA_POST,
            coordinate=_coordinate(office.get("Latitude"), office.get("Longitude")),
        )]

    def _from_nominatim(self, code: str) -> List[PincodeLocality]:
        params = {"postalcode": code, "country": "in", "format": "json", "limit": 5}
        payload = self.nominatim.get_json("search", params)
        if not isinstance(payload, list):
            return []

        results = []
        for item in payload:
            if not isinstance(item, dict) or not item.get("display_name"):
                continue
            parts = [p.strip() for p in str(item["display_name"]).split(",") if p.strip()]
            if not parts:
                continue
            # display_name ends "..., district, state, postcode, country" in most cases
            region = [p for p in parts if p != code and p.lower() != "india"]
            district = region[-2] if len(region) >= 2 else "Unknown"
            results.append(PincodeLocality(
                postal_code=code,
                post_office=parts[0],
                district=district,
                city=district,
                state=region[-1] if region else "Unknown",
                source=PincodeSource.NOMINATIM,
                coordinate=_coordinate(item.get("lat"), item.get("lon")),
            ))
        return results

    @staticmethod
    def _from_offline_table(code: str) -> List[PincodeLocality]:
        number = int(code)
        for first, last, city, district, state in OFFLINE_PINCODE_RANGES:
            if first <= number <= last:
                return [PincodeLocality(
                    postal_code=code,
                    post_office="Main Post Office",
                    district=district,
                    city=city,
                    state=state,
                    source=PincodeSource.OFFLINE_TABLE,
                )]
        return []


def address_from_locality(locality: PincodeLocality) -> ResolvedAddress:
    return ResolvedAddress(
        street_line=locality.post_office,
        city=locality.city,
        state=locality.state,
        postal_code=locality.postal_code,
    )


def _coordinate(lat: Any, lon: Any) -> Optional[Coordinate]:
    try:
        return Coordinate(float(lat), float(lon))
    except (TypeError, ValueError):
        return None
