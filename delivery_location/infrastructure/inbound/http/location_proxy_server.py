import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
import uvicorn

from delivery_location.config.settings import settings
from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.location_errors import (
    GeocodeNoResult,
    GeocodeUnavailable,
    ValidationFailed,
)
from delivery_location.core.domain.resolved_address import ResolvedAddress
from delivery_location.geocoding.domain.pincode_locality import PincodeLocality
from delivery_location.geocoding.domain.search_candidate import SearchCandidate
from delivery_location.geocoding.interfaces.geocoding_client import GeocodingClient
from delivery_location.geocoding.services.nominatim_geocoding_client import NominatimGeocodingClient
from delivery_location.geocoding.services.pincode_directory import PincodeDirectory
from delivery_location.infrastructure.logging.structured_status_logger import StructuredStatusLogger

app = FastAPI()

# Dependencies (Injected in real app)
geocoder: GeocodingClient = None  # type: ignore
pincode_directory: PincodeDirectory = None  # type: ignore
runtime_logger = StructuredStatusLogger(component="location_proxy")


def setup_dependencies(
    geocoding_client: Optional[GeocodingClient] = None,
    pincodes: Optional[PincodeDirectory] = None,
    logger: Optional[StructuredStatusLogger] = None,
):
    global geocoder, pincode_directory, runtime_logger
    geocoder = geocoding_client or NominatimGeocodingClient()
    pincode_directory = pincodes or PincodeDirectory()
    runtime_logger = logger or StructuredStatusLogger(component="location_proxy")


def _coordinate_dict(coord: Optional[Coordinate]) -> Optional[dict]:
    if coord is None:
        return None
    return {"latitude": coord.latitude, "longitude": coord.longitude, "accuracy_meters": coord.accuracy_meters}


def _address_dict(address: ResolvedAddress) -> dict:
    return {
        "street_line": address.street_line,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "landmark": address.landmark,
        "complete": address.is_complete,
        "source_coordinate": _coordinate_dict(address.source_coordinate),
    }


def _candidate_dict(candidate: SearchCandidate) -> dict:
    return {
        "display_name": candidate.display_name,
        "coordinate": _coordinate_dict(candidate.coordinate),
    }


def _locality_dict(locality: PincodeLocality) -> dict:
    return {
        "postal_code": locality.postal_code,
        "post_office": locality.post_office,
        "district": locality.district,
        "city": locality.city,
        "state": locality.state,
        "full_address": locality.full_address,
        "source": locality.source.value,
        "coordinate": _coordinate_dict(locality.coordinate),
    }


@app.get("/location/reverse")
async def reverse(lat: float, lon: float):
    try:
        coord = Coordinate(lat, lon)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        address = await geocoder.reverse_geocode(coord)
    except GeocodeNoResult as e:
        runtime_logger.emit(event_type="PROXY_REVERSE_NO_RESULT", status="not_found", lat=lat, lon=lon)
        raise HTTPException(status_code=404, detail=e.user_message)
    except GeocodeUnavailable as e:
        runtime_logger.emit(
            event_type="PROXY_REVERSE_FAILED",
            status="unavailable",
            level=logging.WARNING,
            error=str(e),
        )
        raise HTTPException(status_code=502, detail=e.user_message)

    runtime_logger.emit(event_type="PROXY_REVERSE_OK", status="ok", complete=address.is_complete)
    return _address_dict(address)


@app.get("/location/search")
async def search(q: str = Query(""), region: Optional[str] = None):
    try:
        candidates = await geocoder.forward_search(q, region or settings.DEFAULT_REGION)
    except GeocodeUnavailable as e:
        runtime_logger.emit(
            event_type="PROXY_SEARCH_FAILED",
            status="unavailable",
            level=logging.WARNING,
            error=str(e),
        )
        raise HTTPException(status_code=502, detail="Failed to load location suggestions")

    runtime_logger.emit(event_type="PROXY_SEARCH_OK", status="ok", results=len(candidates))
    return {"candidates": [_candidate_dict(c) for c in candidates]}


@app.get("/location/pincode/{code}")
async def pincode(code: str):
    try:
        localities = await pincode_directory.lookup(code)
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=e.user_message)

    if not localities:
        runtime_logger.emit(event_type="PROXY_PINCODE_NO_RESULT", status="not_found", postal_code=code)
        raise HTTPException(status_code=404, detail="No address found for this pincode")

    runtime_logger.emit(
        event_type="PROXY_PINCODE_OK",
        status="ok",
        postal_code=code,
        source=localities[0].source.value,
    )
    return {"localities": [_locality_dict(l) for l in localities]}


def run_server(host="0.0.0.0", port=8000):
    uvicorn.run(app, host=host, port=port)
