import asyncio
import json

import pytest
import requests

from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.location_errors import GeocodeNoResult, GeocodeUnavailable
from delivery_location.geocoding.adapters.geocoding_http_client import GeocodingHttpClient
from delivery_location.geocoding.domain.search_candidate import SearchCandidate
from delivery_location.geocoding.services.address_payload_parser import (
    UNKNOWN_CITY,
    UNKNOWN_STATE,
    address_confidence,
    address_from_payload,
)
from delivery_location.geocoding.services.nominatim_geocoding_client import (
    NominatimGeocodingClient,
    address_from_candidate,
)


# --- Helpers ---

class _RecordingHttp:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.calls = []

    def get_json(self, path, params=None):
        self.calls.append((path, dict(params or {})))
        if self.error is not None:
            raise self.error
        return self.payload


class _Response:
    def __init__(self, status_code=200, body="{}"):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._body = body

    def json(self):
        return json.loads(self._body)


def _search_item(name, lat="12.97", lon="77.59"):
    return {"display_name": name, "lat": lat, "lon": lon, "address": {"city": "Bengaluru"}}


MG_ROAD = Coordinate(12.9716, 77.6412)


# --- Reverse geocoding ---

def test_reverse_geocode_structured_components():
    http = _RecordingHttp({
        "display_name": "MG Road, Indiranagar, Bengaluru, Karnataka, 560038, India",
        "address": {
            "road": "MG Road",
            "suburb": "Indiranagar",
            "city": "Bengaluru",
            "state": "Karnataka",
            "postcode": "560038",
        },
    })
    client = NominatimGeocodingClient(http)

    address = asyncio.run(client.reverse_geocode(MG_ROAD))

    assert address.street_line == "MG Road, Indiranagar"
    assert address.city == "Bengaluru"
    assert address.state == "Karnataka"
    assert address.postal_code == "560038"
    assert address.source_coordinate == MG_ROAD
    assert address.is_complete
    assert len(http.calls) == 1
    path, params = http.calls[0]
    assert path == "reverse"
    assert params["lat"] == MG_ROAD.latitude and params["lon"] == MG_ROAD.longitude


def test_street_line_token_precedence():
    address = address_from_payload({"address": {
        "neighbourhood": "HAL 2nd Stage",
        "suburb": "Indiranagar",
        "road": "100 Feet Road",
        "house_number": "42",
        "city": "Bengaluru",
        "state": "Karnataka",
    }})
    assert address.street_line == "42, 100 Feet Road, Indiranagar, HAL 2nd Stage"


def test_street_line_falls_back_to_display_name_fragments():
    address = address_from_payload({
        "display_name": "Cubbon Park, Sampangi Rama Nagar, Bengaluru, Karnataka, India",
        "address": {"city": "Bengaluru", "state": "Karnataka"},
    })
    assert address.street_line == "Cubbon Park, Sampangi Rama Nagar, Bengaluru"


@pytest.mark.parametrize("components, expected_city", [
    ({"town": "Hosur", "village": "X", "county": "Y"}, "Hosur"),
    ({"village": "Melkote", "county": "Mandya"}, "Melkote"),
    ({"county": "Mandya"}, "Mandya"),
    ({}, UNKNOWN_CITY),
    ({"city": "  "}, UNKNOWN_CITY),
])
def test_city_fallback_chain(components, expected_city):
    address = address_from_payload({"display_name": "somewhere", "address": components})
    assert address.city == expected_city


def test_missing_state_uses_placeholder():
    address = address_from_payload({"display_name": "x", "address": {"city": "Pune"}})
    assert address.state == UNKNOWN_STATE


def test_invalid_postcode_marks_address_incomplete_without_truncation():
    address = address_from_payload({"address": {
        "road": "Main Road", "city": "Mysuru", "state": "Karnataka", "postcode": "5700 01",
    }})
    assert address.postal_code == "5700 01"
    assert not address.is_complete


def test_provider_error_is_no_result():
    client = NominatimGeocodingClient(_RecordingHttp({"error": "Unable to geocode"}))
    with pytest.raises(GeocodeNoResult):
        asyncio.run(client.reverse_geocode(MG_ROAD))


@pytest.mark.parametrize("payload", [[], "oops", {"address": "not-a-dict", "display_name": "x"}, {}])
def test_malformed_payload_is_unavailable(payload):
    client = NominatimGeocodingClient(_RecordingHttp(payload))
    with pytest.raises(GeocodeUnavailable):
        asyncio.run(client.reverse_geocode(MG_ROAD))


def test_transport_failure_is_unavailable_and_not_retried():
    http = _RecordingHttp(error=GeocodeUnavailable("HTTP 503"))
    client = NominatimGeocodingClient(http)

    with pytest.raises(GeocodeUnavailable):
        asyncio.run(client.reverse_geocode(MG_ROAD))

    assert len(http.calls) == 1


def test_address_confidence_scores_completeness():
    components = {"house_number": "1", "road": "MG Road", "suburb": "Indiranagar"}
    full = address_from_payload({"address": dict(components, city="Bengaluru", state="Karnataka", postcode="560038")})
    bare = address_from_payload({"display_name": "somewhere", "address": {}})

    assert address_confidence(dict(components, city="Bengaluru"), full) == pytest.approx(1.0)
    assert address_confidence({}, bare) == pytest.approx(0.0)


# --- Forward search ---

def test_blank_query_makes_no_network_call():
    http = _RecordingHttp([])
    client = NominatimGeocodingClient(http)

    assert asyncio.run(client.forward_search("   ")) == []
    assert asyncio.run(client.forward_search("")) == []
    assert http.calls == []


def test_region_bias_appends_qualifier():
    http = _RecordingHttp([])
    client = NominatimGeocodingClient(http)

    asyncio.run(client.forward_search("Indiranagar", region_bias="in"))

    path, params = http.calls[0]
    assert path == "search"
    assert params["q"] == "Indiranagar, India"
    assert params["countrycodes"] == "in"
    assert params["limit"] == 10


def test_no_region_bias_leaves_query_alone():
    http = _RecordingHttp([])
    client = NominatimGeocodingClient(http)

    asyncio.run(client.forward_search("Indiranagar"))

    _, params = http.calls[0]
    assert params["q"] == "Indiranagar"
    assert "countrycodes" not in params


def test_forward_search_preserves_provider_order_and_caps_at_ten():
    items = [_search_item(f"Place {i}") for i in range(12)]
    client = NominatimGeocodingClient(_RecordingHttp(items))

    candidates = asyncio.run(client.forward_search("place"))

    assert [c.display_name for c in candidates] == [f"Place {i}" for i in range(10)]
    assert candidates[0].coordinate == Coordinate(12.97, 77.59)


def test_forward_search_skips_unparseable_items():
    items = [_search_item("Good"), {"display_name": "Bad", "lat": "north"}, "junk", _search_item("Also good")]
    client = NominatimGeocodingClient(_RecordingHttp(items))

    candidates = asyncio.run(client.forward_search("x"))

    assert [c.display_name for c in candidates] == ["Good", "Also good"]


def test_forward_search_non_list_payload_is_unavailable():
    client = NominatimGeocodingClient(_RecordingHttp({"error": "bad"}))
    with pytest.raises(GeocodeUnavailable):
        asyncio.run(client.forward_search("x"))


def test_candidate_address_has_no_source_coordinate():
    candidate = SearchCandidate(
        display_name="Koramangala, Bengaluru, Karnataka, India",
        coordinate=Coordinate(12.93, 77.62),
        raw_provider_payload={"address": {
            "suburb": "Koramangala", "city": "Bengaluru", "state": "Karnataka", "postcode": "560034",
        }},
    )

    address = address_from_candidate(candidate)

    assert address.street_line == "Koramangala"
    assert address.postal_code == "560034"
    assert address.source_coordinate is None


# --- HTTP adapter ---

def test_http_client_normalizes_non_success_status():
    http = GeocodingHttpClient(base_url="https://geo.example")
    http.session.get = lambda url, params=None, timeout=None: _Response(503, "{}")

    with pytest.raises(GeocodeUnavailable):
        http.get_json("reverse", {})


def test_http_client_normalizes_invalid_json():
    http = GeocodingHttpClient(base_url="https://geo.example")
    http.session.get = lambda url, params=None, timeout=None: _Response(200, "<html>")

    with pytest.raises(GeocodeUnavailable):
        http.get_json("reverse", {})


def test_http_client_normalizes_network_errors():
    http = GeocodingHttpClient(base_url="https://geo.example")

    def _fail(url, params=None, timeout=None):
        raise requests.ConnectionError("no route to host")

    http.session.get = _fail

    with pytest.raises(GeocodeUnavailable):
        http.get_json("search", {"q": "x"})


def test_http_client_builds_url_and_sends_user_agent():
    http = GeocodingHttpClient(base_url="https://geo.example/", user_agent="TestAgent/1.0")
    seen = {}

    def _get(url, params=None, timeout=None):
        seen["url"] = url
        return _Response(200, "[]")

    http.session.get = _get

    assert http.get_json("/search", {"q": "x"}) == []
    assert seen["url"] == "https://geo.example/search"
    assert http.session.headers["User-Agent"] == "TestAgent/1.0"
