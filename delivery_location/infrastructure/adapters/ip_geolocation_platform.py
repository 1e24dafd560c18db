import asyncio
import logging
from typing import Callable, Optional

import requests

from delivery_location.config.settings import settings
from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.subscription import Subscription
from delivery_location.permission.domain.permission_state import PermissionState
from delivery_location.permission.interfaces.location_platform import (
    LocationPlatform,
    PlatformErrorCode,
    PlatformPositionError,
)

logger = logging.getLogger(__name__)


class IpGeolocationPlatform(LocationPlatform):
    """
    Coarse, permission-free position source for hosts without a GPS
    (servers, CLI tools). Resolves the caller's public IP to a coordinate.
    """

    def __init__(self, url: Optional[str] = None, session: Optional[requests.Session] = None):
        self.url = url or settings.IP_GEOLOCATION_URL
        self.session = session or requests.Session()

    def has_location_capability(self) -> bool:
        return True

    def has_permission_api(self) -> bool:
        return False

    async def query_permission(self) -> PermissionState:
        return PermissionState.UNKNOWN

    def subscribe_permission_changes(self, handler: Callable[[PermissionState], None]) -> Subscription:
        return Subscription()

    async def get_current_position(
            self,
            high_accuracy: bool,
            timeout_ms: int,
            max_cached_age_ms: int
    ) -> Coordinate:
        return await asyncio.to_thread(self._fetch, timeout_ms / 1000.0)

    def _fetch(self, timeout_s: float) -> Coordinate:
        try:
            response = self.session.get(self.url, timeout=timeout_s)
        except requests.Timeout as e:
            raise PlatformPositionError(PlatformErrorCode.TIMEOUT, "IP geolocation timed out") from e
        except requests.RequestException as e:
            logger.error(f"IP geolocation network error: {e}")
            raise PlatformPositionError(PlatformErrorCode.POSITION_UNAVAILABLE, str(e)) from e

        if not response.ok:
            raise PlatformPositionError(
                PlatformErrorCode.POSITION_UNAVAILABLE,
                f"IP geolocation HTTP {response.status_code}"
            )
        try:
            data = response.json()
            return Coordinate(float(data["latitude"]), float(data["longitude"]))
        except (ValueError, KeyError, TypeError) as e:
            raise PlatformPositionError(
                PlatformErrorCode.POSITION_UNAVAILABLE,
                "IP geolocation returned no usable coordinate"
            ) from e
