import asyncio
from typing import List, Optional

import pytest

from delivery_location.address_form.domain.form_sync_state import ApplyOutcome, FormOrigin
from delivery_location.address_form.interfaces.delivery_form import DeliveryForm
from delivery_location.address_form.services.address_form_synchronizer import AddressFormSynchronizer
from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.location_errors import GeocodeUnavailable, ValidationFailed
from delivery_location.core.domain.resolved_address import ResolvedAddress
from delivery_location.core.domain.status_event import Operation, StatusKind
from delivery_location.geocoding.domain.pincode_locality import PincodeLocality, PincodeSource
from delivery_location.geocoding.domain.search_candidate import SearchCandidate
from delivery_location.geocoding.interfaces.geocoding_client import GeocodingClient
from delivery_location.geolocation.services.geolocation_acquirer import GeolocationAcquirer
from delivery_location.infrastructure.adapters.scripted_location_platform import ScriptedLocationPlatform
from delivery_location.orchestration.services.location_resolution_service import LocationResolutionService
from delivery_location.permission.domain.permission_state import PermissionState
from delivery_location.permission.interfaces.location_platform import (
    PlatformErrorCode,
    PlatformPositionError,
)
from delivery_location.permission.services.permission_monitor import PermissionMonitor
from delivery_location.recents.services.recent_location_store import RecentLocationStore
from delivery_location.recents.store.key_value_store import InMemoryKeyValueStore
from delivery_location.suggestions.services.suggestion_debouncer import SuggestionDebouncer

BENGALURU = Coordinate(12.97, 77.59, 15.0)


# --- Fakes ---

class FakeGeocoder(GeocodingClient):
    """Deterministic provider: no network."""

    def __init__(self, address: Optional[ResolvedAddress] = None, error: Optional[Exception] = None):
        self.address = address
        self.error = error
        self.reverse_calls: List[Coordinate] = []
        self.gate: Optional[asyncio.Event] = None

    async def reverse_geocode(self, coord: Coordinate) -> ResolvedAddress:
        self.reverse_calls.append(coord)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return ResolvedAddress(
            street_line=self.address.street_line,
            city=self.address.city,
            state=self.address.state,
            postal_code=self.address.postal_code,
            source_coordinate=coord,
        )

    async def forward_search(self, query: str, region_bias: Optional[str] = None):
        return []


class RecordingDeliveryForm(DeliveryForm):
    def __init__(self):
        self.applied = []
        self.saved = []

    def on_address_applied(self, address, origin):
        self.applied.append((address, origin))

    def on_address_saved(self, address):
        self.saved.append(address)


class RecordingSink:
    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)

    def of(self, operation):
        return [e for e in self.events if e.operation == operation]


MG_ROAD = ResolvedAddress("MG Road, Indiranagar", "Bengaluru", "Karnataka", "560038")


def build(platform, geocoder, sink=None, kv=None):
    sink = sink or RecordingSink()
    form = RecordingDeliveryForm()
    acquirer = GeolocationAcquirer(platform)
    service = LocationResolutionService(
        monitor=PermissionMonitor(platform, acquirer),
        acquirer=acquirer,
        geocoder=geocoder,
        debouncer=SuggestionDebouncer(geocoder, quiet_interval_ms=20, status_sink=sink),
        recents=RecentLocationStore(kv or InMemoryKeyValueStore(), status_sink=sink),
        synchronizer=AddressFormSynchronizer(form, sink),
        status_sink=sink,
    )
    return service, form, sink


# --- Tests ---

def test_end_to_end_permission_detection_and_save():
    platform = ScriptedLocationPlatform(
        permission=PermissionState.UNKNOWN,
        outcomes=[BENGALURU, BENGALURU],
    )
    geocoder = FakeGeocoder(MG_ROAD)
    service, form, sink = build(platform, geocoder)

    async def scenario():
        assert await service.start() == PermissionState.UNKNOWN
        assert await service.request_permission() == PermissionState.GRANTED
        return await service.detect_location()

    address = asyncio.run(scenario())

    assert address.is_complete
    assert geocoder.reverse_calls == [BENGALURU]
    assert service.synchronizer.state.origin == FormOrigin.GPS_RESOLUTION
    assert service.synchronizer.state.dirty is False

    saved = service.synchronizer.save()

    assert form.saved == [saved]
    assert saved.street_line == "MG Road, Indiranagar"
    assert saved.source_coordinate == BENGALURU
    statuses = [e.status for e in sink.of(Operation.GPS_DETECTION)]
    assert statuses == [StatusKind.DETECTING, StatusKind.DETECTING, StatusKind.SUCCESS]


def test_denied_permission_skips_acquisition():
    platform = ScriptedLocationPlatform(permission=PermissionState.DENIED, outcomes=[BENGALURU])
    service, _, sink = build(platform, FakeGeocoder(MG_ROAD))

    async def scenario():
        await service.start()
        return await service.detect_location()

    assert asyncio.run(scenario()) is None
    assert platform.position_requests == []
    failure = sink.of(Operation.GPS_DETECTION)[-1]
    assert failure.error_code == "PERMISSION_DENIED"
    assert "manually" in failure.message


def test_gps_timeout_reports_retry_or_manual_message():
    platform = ScriptedLocationPlatform(outcomes=[PlatformPositionError(PlatformErrorCode.TIMEOUT)])
    service, _, sink = build(platform, FakeGeocoder(MG_ROAD))

    assert asyncio.run(service.detect_location()) is None

    failure = sink.of(Operation.GPS_DETECTION)[-1]
    assert failure.status == StatusKind.FAILURE
    assert failure.error_code == "TIMEOUT"
    assert "try again" in failure.message and "manually" in failure.message


def test_geocode_unavailable_asks_for_manual_entry():
    platform = ScriptedLocationPlatform(outcomes=[BENGALURU])
    service, form, sink = build(platform, FakeGeocoder(error=GeocodeUnavailable("HTTP 502")))

    assert asyncio.run(service.detect_location()) is None

    failure = sink.of(Operation.GPS_DETECTION)[-1]
    assert failure.error_code == "GEOCODE_UNAVAILABLE"
    assert "enter your address manually" in failure.message
    assert form.applied == []


def test_detection_is_ignored_while_form_is_dirty():
    platform = ScriptedLocationPlatform(outcomes=[BENGALURU])
    service, form, sink = build(platform, FakeGeocoder(MG_ROAD))
    service.synchronizer.apply_manual_edit({"street_line": "5 Palace Road"})

    assert asyncio.run(service.detect_location()) is None

    assert service.synchronizer.fields.street_line == "5 Palace Road"
    assert sink.of(Operation.GPS_DETECTION)[-1].status == StatusKind.IGNORED


def test_newer_detection_supersedes_older_one():
    platform = ScriptedLocationPlatform(outcomes=[Coordinate(12.0, 77.0), Coordinate(13.0, 78.0)])
    geocoder = FakeGeocoder(MG_ROAD)
    service, form, _ = build(platform, geocoder)

    async def scenario():
        geocoder.gate = asyncio.Event()
        first = asyncio.ensure_future(service.detect_location())
        await asyncio.sleep(0.01)  # first is waiting on reverse geocoding
        second = asyncio.ensure_future(service.detect_location())
        await asyncio.sleep(0.01)
        geocoder.gate.set()
        return await first, await second

    first, second = asyncio.run(scenario())

    assert first is None
    assert second.source_coordinate == Coordinate(13.0, 78.0)
    assert len(form.applied) == 1


def test_dispose_ignores_in_flight_detection():
    platform = ScriptedLocationPlatform(outcomes=[BENGALURU])
    geocoder = FakeGeocoder(MG_ROAD)
    service, form, _ = build(platform, geocoder)

    async def scenario():
        geocoder.gate = asyncio.Event()
        detection = asyncio.ensure_future(service.detect_location())
        await asyncio.sleep(0.01)
        service.dispose()
        geocoder.gate.set()
        return await detection

    assert asyncio.run(scenario()) is None
    assert form.applied == []


def test_select_candidate_records_recent_and_applies():
    kv = InMemoryKeyValueStore()
    service, form, _ = build(ScriptedLocationPlatform(), FakeGeocoder(MG_ROAD), kv=kv)
    candidate = SearchCandidate(
        display_name="Koramangala, Bengaluru, Karnataka, India",
        coordinate=Coordinate(12.93, 77.62),
        raw_provider_payload={"address": {
            "suburb": "Koramangala", "city": "Bengaluru", "state": "Karnataka", "postcode": "560034",
        }},
    )

    outcome = service.select_candidate(candidate)

    assert outcome == ApplyOutcome.APPLIED
    assert service.recents.list() == ["Koramangala, Bengaluru, Karnataka, India"]
    assert form.applied[0][1] == FormOrigin.CANDIDATE_SELECTION
    assert service.candidates == []


def test_select_recent_promotes_label():
    service, _, _ = build(ScriptedLocationPlatform(), FakeGeocoder(MG_ROAD))
    service.recents.record("A")
    service.recents.record("B")

    service.select_recent("A")

    assert service.recents.list() == ["A", "B"]


class _StaticPincodes:
    def __init__(self, localities):
        self.localities = localities

    async def lookup(self, postal_code):
        if len(postal_code) != 6:
            raise ValidationFailed({"postal_code": "invalid"})
        return self.localities


def test_pincode_lookup_and_apply():
    locality = PincodeLocality(
        postal_code="570001",
        post_office="Mysore Head Post Office",
        district="Mysuru",
        city="Mysuru",
        state="Karnataka",
        source=PincodeSource.INDIA_POST,
    )
    service, _, sink = build(ScriptedLocationPlatform(), FakeGeocoder(MG_ROAD))
    service.pincodes = _StaticPincodes([locality])

    localities = asyncio.run(service.lookup_pincode("570001"))
    outcome = service.apply_pincode_locality(localities[0])

    assert outcome == ApplyOutcome.APPLIED
    assert service.synchronizer.fields.city == "Mysuru"
    assert service.recents.list() == ["Mysore Head Post Office, Mysuru, Karnataka - 570001"]
    assert sink.of(Operation.PINCODE_LOOKUP)[-1].status == StatusKind.SUCCESS


def test_invalid_pincode_lookup_reports_failure():
    service, _, sink = build(ScriptedLocationPlatform(), FakeGeocoder(MG_ROAD))
    service.pincodes = _StaticPincodes([])

    with pytest.raises(ValidationFailed):
        asyncio.run(service.lookup_pincode("123"))

    assert sink.of(Operation.PINCODE_LOOKUP)[-1].error_code == "VALIDATION_FAILED"


def test_denied_detection_closes_the_gate_without_platform_events():
    platform = ScriptedLocationPlatform(
        permission_api=False,
        pushes_changes=False,
        outcomes=[PlatformPositionError(PlatformErrorCode.PERMISSION_DENIED), BENGALURU],
    )
    service, _, _ = build(platform, FakeGeocoder(MG_ROAD))

    async def scenario():
        await service.start()
        first = await service.detect_location()
        second = await service.detect_location()
        return first, second

    first, second = asyncio.run(scenario())

    assert (first, second) == (None, None)
    assert service.monitor.current_state() == PermissionState.DENIED
    assert len(platform.position_requests) == 1


def test_successful_detection_grants_without_platform_events():
    platform = ScriptedLocationPlatform(permission_api=False, pushes_changes=False, outcomes=[BENGALURU])
    service, _, _ = build(platform, FakeGeocoder(MG_ROAD))

    async def scenario():
        await service.start()
        return await service.detect_location()

    assert asyncio.run(scenario()) is not None
    assert service.monitor.current_state() == PermissionState.GRANTED


def test_unavailable_detection_leaves_permission_unchanged():
    platform = ScriptedLocationPlatform(
        permission_api=False,
        pushes_changes=False,
        outcomes=[PlatformPositionError(PlatformErrorCode.POSITION_UNAVAILABLE)],
    )
    service, _, _ = build(platform, FakeGeocoder(MG_ROAD))

    async def scenario():
        await service.start()
        return await service.detect_location()

    assert asyncio.run(scenario()) is None
    assert service.monitor.current_state() == PermissionState.UNKNOWN
