import logging
from typing import List, Optional

from delivery_location.address_form.domain.form_sync_state import ApplyOutcome
from delivery_location.address_form.services.address_form_synchronizer import AddressFormSynchronizer
from delivery_location.core.domain.location_errors import LocationError, PermissionDenied
from delivery_location.core.domain.resolved_address import ResolvedAddress
from delivery_location.core.domain.status_event import Operation, StatusEvent, StatusKind
from delivery_location.core.interfaces.status_sink import NullStatusSink, StatusSink
from delivery_location.geocoding.domain.pincode_locality import PincodeLocality
from delivery_location.geocoding.domain.search_candidate import SearchCandidate
from delivery_location.geocoding.interfaces.geocoding_client import GeocodingClient
from delivery_location.geocoding.services.nominatim_geocoding_client import address_from_candidate
from delivery_location.geocoding.services.pincode_directory import PincodeDirectory, address_from_locality
from delivery_location.geolocation.domain.accuracy_grade import AccuracyGrade
from delivery_location.geolocation.domain.acquisition_options import AcquisitionOptions
from delivery_location.geolocation.services.geolocation_acquirer import GeolocationAcquirer
from delivery_location.permission.domain.permission_state import PermissionState
from delivery_location.permission.services.permission_monitor import PermissionMonitor
from delivery_location.recents.services.recent_location_store import RecentLocationStore
from delivery_location.suggestions.services.suggestion_debouncer import SuggestionDebouncer

logger = logging.getLogger(__name__)


class LocationResolutionService:
    """
    Wires the location components into the checkout flows:

    * GPS detection: permission gate -> acquire -> reverse geocode -> form
    * place search: keystrokes -> debouncer -> forward search -> candidates
    * selection: candidate / recent label / pincode locality -> recents -> form

    Each flow reports DETECTING/SUCCESS/FAILURE/IGNORED through the status sink.
    Nothing here retries; a retry is a new user-triggered call.
    """

    def __init__(
            self,
            monitor: PermissionMonitor,
            acquirer: GeolocationAcquirer,
            geocoder: GeocodingClient,
            debouncer: SuggestionDebouncer,
            recents: RecentLocationStore,
            synchronizer: AddressFormSynchronizer,
            pincodes: Optional[PincodeDirectory] = None,
            status_sink: Optional[StatusSink] = None,
    ):
        self.monitor = monitor
        self.acquirer = acquirer
        self.geocoder = geocoder
        self.debouncer = debouncer
        self.recents = recents
        self.synchronizer = synchronizer
        self.pincodes = pincodes
        self.status_sink = status_sink or NullStatusSink()
        self._detection_sequence = 0
        self._disposed = False

    async def start(self) -> PermissionState:
        return await self.monitor.start()

    async def request_permission(self) -> PermissionState:
        state = await self.monitor.request()
        if state == PermissionState.GRANTED:
            self._emit(Operation.PERMISSION_REQUEST, StatusKind.SUCCESS, "Location permission granted!")
        elif state == PermissionState.DENIED:
            self._emit(
                Operation.PERMISSION_REQUEST, StatusKind.FAILURE,
                PermissionDenied.user_message, error_code=PermissionDenied.code,
            )
        return state

    async def detect_location(self) -> Optional[ResolvedAddress]:
        """
        One GPS detection. Returns the resolved address, or None when the flow
        failed, was superseded by a newer detection or the form ignored it.
        """
        if self._disposed:
            return None
        self._detection_sequence += 1
        sequence = self._detection_sequence

        if self.monitor.current_state() == PermissionState.DENIED:
            self._fail(Operation.GPS_DETECTION, PermissionDenied("permission previously denied"))
            return None

        self._emit(Operation.GPS_DETECTION, StatusKind.DETECTING, "Getting your current location...")
        try:
            try:
                coordinate = await self.acquirer.acquire(AcquisitionOptions.for_detection())
            except LocationError as e:
                if not self._disposed:
                    self.monitor.record_acquisition_outcome(e)
                raise
            if not self._disposed:
                self.monitor.record_acquisition_outcome(None)
            if not self._is_current(sequence):
                return None
            self._emit(
                Operation.GPS_DETECTION, StatusKind.DETECTING, "Converting location to address...",
                accuracy=AccuracyGrade.from_meters(coordinate.accuracy_meters).value,
            )
            address = await self.geocoder.reverse_geocode(coordinate)
        except LocationError as e:
            if self._is_current(sequence):
                self._fail(Operation.GPS_DETECTION, e)
            return None

        if not self._is_current(sequence):
            logger.info(f"Discarding superseded detection #{sequence}")
            return None

        if self.synchronizer.apply_gps_resolution(address) == ApplyOutcome.IGNORED_DIRTY:
            return None
        self._emit(
            Operation.GPS_DETECTION, StatusKind.SUCCESS,
            "Address detected successfully! Please review and edit if needed.",
            complete=address.is_complete,
        )
        return address

    def on_search_input(self, text: str) -> None:
        self.debouncer.on_input(text)

    @property
    def candidates(self) -> List[SearchCandidate]:
        return self.debouncer.candidates

    def select_candidate(self, candidate: SearchCandidate) -> ApplyOutcome:
        self.recents.record(candidate.display_name)
        outcome = self.synchronizer.apply_candidate_selection(address_from_candidate(candidate))
        self.debouncer.on_input("")
        if outcome == ApplyOutcome.APPLIED:
            self._emit(Operation.CANDIDATE_SELECTION, StatusKind.SUCCESS, "Location selected!")
        return outcome

    def select_recent(self, label: str) -> None:
        self.recents.record(label)
        self._emit(Operation.RECENT_SELECTION, StatusKind.SUCCESS, "Recent location selected!")

    async def lookup_pincode(self, postal_code: str) -> List[PincodeLocality]:
        if self.pincodes is None:
            raise RuntimeError("No pincode directory configured")
        self._emit(Operation.PINCODE_LOOKUP, StatusKind.DETECTING, "Looking up pincode...")
        try:
            localities = await self.pincodes.lookup(postal_code)
        except LocationError as e:
            self._fail(Operation.PINCODE_LOOKUP, e)
            raise
        if not localities:
            self._emit(
                Operation.PINCODE_LOOKUP, StatusKind.FAILURE,
                "No address found for this pincode. Please enter your address manually.",
            )
        else:
            self._emit(Operation.PINCODE_LOOKUP, StatusKind.SUCCESS, f"Found {len(localities)} locality(s)")
        return localities

    def apply_pincode_locality(self, locality: PincodeLocality) -> ApplyOutcome:
        self.recents.record(locality.full_address)
        return self.synchronizer.apply_candidate_selection(address_from_locality(locality))

    def dispose(self) -> None:
        self._disposed = True
        self.debouncer.dispose()
        self.monitor.dispose()

    def _is_current(self, sequence: int) -> bool:
        return not self._disposed and sequence == self._detection_sequence

    def _fail(self, operation: Operation, error: LocationError) -> None:
        logger.warning(f"{operation.value} failed: {error.code}: {error}")
        self._emit(operation, StatusKind.FAILURE, error.user_message, error_code=error.code)

    def _emit(self, operation: Operation, status: StatusKind, message: str,
              error_code: Optional[str] = None, **detail) -> None:
        self.status_sink.emit(StatusEvent(
            operation=operation,
            status=status,
            message=message,
            error_code=error_code,
            detail=detail,
        ))
