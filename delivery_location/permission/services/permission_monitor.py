import logging
from typing import Callable, List, Optional

from delivery_location.core.domain.location_errors import LocationError, PermissionDenied
from delivery_location.core.domain.subscription import Subscription
from delivery_location.geolocation.domain.acquisition_options import AcquisitionOptions
from delivery_location.geolocation.services.geolocation_acquirer import GeolocationAcquirer
from delivery_location.permission.domain.permission_state import PermissionState
from delivery_location.permission.interfaces.location_platform import LocationPlatform

logger = logging.getLogger(__name__)

PermissionHandler = Callable[[PermissionState], None]


class PermissionMonitor:
    """
    Tracks the platform location-permission state.

    State only changes on platform-pushed events or on the outcome of an
    acquisition attempt made through request(). There is no polling loop:
    the platform is queried once in start() and followed by subscription.
    """

    def __init__(self, platform: LocationPlatform, acquirer: GeolocationAcquirer):
        self.platform = platform
        self.acquirer = acquirer
        self._state = PermissionState.UNKNOWN
        self._handlers: List[PermissionHandler] = []
        self._platform_subscription: Optional[Subscription] = None
        self._started = False

    def current_state(self) -> PermissionState:
        return self._state

    def on_change(self, handler: PermissionHandler) -> Subscription:
        self._handlers.append(handler)

        def _remove():
            if handler in self._handlers:
                self._handlers.remove(handler)

        return Subscription(_remove)

    async def start(self) -> PermissionState:
        if self._started:
            return self._state
        self._started = True

        if not self.platform.has_location_capability():
            # permanent property of the environment: never queried again
            logger.info("No location capability on this platform; permission is DENIED")
            self._transition(PermissionState.DENIED)
            return self._state

        if not self.platform.has_permission_api():
            logger.info("Platform has no permission API; permission stays UNKNOWN")
            return self._state

        # subscribe first so an event racing the initial query is not lost
        self._platform_subscription = self.platform.subscribe_permission_changes(self._on_platform_event)
        try:
            initial = await self.platform.query_permission()
        except Exception as e:
            logger.warning(f"Permission query failed, state stays UNKNOWN: {e}")
            return self._state

        if self._state == PermissionState.UNKNOWN:
            self._transition(initial)
        return self._state

    async def request(self) -> PermissionState:
        """
        Elicit the native permission prompt through one acquisition attempt.
        """
        if not self.platform.has_location_capability():
            self._transition(PermissionState.DENIED)
            return self._state

        try:
            await self.acquirer.acquire(AcquisitionOptions.for_permission_prompt())
        except LocationError as e:
            self.record_acquisition_outcome(e)
        else:
            self.record_acquisition_outcome(None)
        return self._state

    def record_acquisition_outcome(self, error: Optional[LocationError]) -> PermissionState:
        """
        Feed the result of any acquisition attempt into the state.
        None means a position was delivered.
        """
        if error is None:
            self._transition(PermissionState.GRANTED)
        elif isinstance(error, PermissionDenied):
            self._transition(PermissionState.DENIED)
        else:
            # unavailable or timed out: says nothing about the permission itself
            logger.info(f"Acquisition inconclusive ({error.code}); permission stays {self._state.name}")
        return self._state

    def dispose(self) -> None:
        if self._platform_subscription is not None:
            self._platform_subscription.cancel()
            self._platform_subscription = None
        self._handlers.clear()

    def _on_platform_event(self, state: PermissionState) -> None:
        self._transition(state)

    def _transition(self, new_state: PermissionState) -> None:
        if new_state == self._state:
            return
        logger.info(f"Location permission {self._state.name} -> {new_state.name}")
        self._state = new_state
        for handler in list(self._handlers):
            handler(new_state)
