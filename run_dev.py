import asyncio
import logging
import sys

from delivery_location.address_form.services.address_form_synchronizer import AddressFormSynchronizer
from delivery_location.config.settings import settings
from delivery_location.geocoding.services.nominatim_geocoding_client import NominatimGeocodingClient
from delivery_location.geocoding.services.pincode_directory import PincodeDirectory
from delivery_location.geolocation.services.geolocation_acquirer import GeolocationAcquirer
from delivery_location.infrastructure.adapters.ip_geolocation_platform import IpGeolocationPlatform
from delivery_location.infrastructure.inbound.http import location_proxy_server
from delivery_location.infrastructure.logging.structured_status_logger import LoggingStatusSink
from delivery_location.orchestration.services.location_resolution_service import LocationResolutionService
from delivery_location.permission.services.permission_monitor import PermissionMonitor
from delivery_location.recents.services.recent_location_store import RecentLocationStore
from delivery_location.recents.store.key_value_store import SqlKeyValueStore
from delivery_location.suggestions.services.suggestion_debouncer import SuggestionDebouncer


def build_service() -> LocationResolutionService:
    sink = LoggingStatusSink()
    platform = IpGeolocationPlatform()
    acquirer = GeolocationAcquirer(platform)
    geocoder = NominatimGeocodingClient()

    kv = SqlKeyValueStore.from_url(settings.LOCAL_STORE_URL)
    kv.ensure_schema()

    return LocationResolutionService(
        monitor=PermissionMonitor(platform, acquirer),
        acquirer=acquirer,
        geocoder=geocoder,
        debouncer=SuggestionDebouncer(geocoder, status_sink=sink),
        recents=RecentLocationStore(kv, status_sink=sink),
        synchronizer=AddressFormSynchronizer(status_sink=sink),
        pincodes=PincodeDirectory(),
        status_sink=sink,
    )


async def detect_once():
    service = build_service()
    await service.start()

    # 1. Detect via IP and reverse geocode
    address = await service.detect_location()
    if address is None:
        print("Detection failed, see log output.")
        return
    print(f"Detected: {address.street_line} | {address.city}, {address.state} {address.postal_code}")

    # 2. Save as-is when complete
    if address.is_complete and address.postal_code:
        saved = service.synchronizer.save()
        print(f"Saved: {saved}")

    print(f"Recent locations: {service.recents.list()}")
    service.dispose()


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    if len(sys.argv) > 1 and sys.argv[1] == "serve":
        print("Starting location proxy on :8000...")
        location_proxy_server.setup_dependencies()
        location_proxy_server.run_server()
        return

    print("Initializing DEV environment...")
    asyncio.run(detect_once())
    print("Dev run complete.")


if __name__ == "__main__":
    main()
