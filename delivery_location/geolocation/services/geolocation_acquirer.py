import asyncio
import logging
from typing import Optional

from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.location_errors import (
    GeolocationTimeout,
    PermissionDenied,
    PositionUnavailable,
)
from delivery_location.geolocation.domain.acquisition_options import AcquisitionOptions
from delivery_location.permission.interfaces.location_platform import (
    LocationPlatform,
    PlatformErrorCode,
    PlatformPositionError,
)

logger = logging.getLogger(__name__)


class GeolocationAcquirer:
    """
    One-shot coordinate acquisition with a hard timeout.
    Exactly one platform request per acquire() call. Never retries:
    the caller decides whether to offer the user another attempt.
    """

    def __init__(self, platform: LocationPlatform):
        self.platform = platform

    async def acquire(self, options: Optional[AcquisitionOptions] = None) -> Coordinate:
        options = options or AcquisitionOptions()

        if not self.platform.has_location_capability():
            raise PositionUnavailable("Geolocation is not supported on this device")

        loop = asyncio.get_running_loop()
        timeout_s = options.timeout_ms / 1000.0
        deadline = loop.time() + timeout_s

        request = self.platform.get_current_position(
            high_accuracy=options.high_accuracy,
            timeout_ms=options.timeout_ms,
            max_cached_age_ms=options.max_cached_age_ms,
        )
        try:
            coordinate = await asyncio.wait_for(request, timeout=timeout_s)
        except asyncio.TimeoutError:
            # loop timers may fire within clock resolution of the deadline
            remaining = deadline - loop.time()
            if remaining > 0:
                await asyncio.sleep(remaining)
            logger.warning(f"GPS acquisition timed out after {options.timeout_ms}ms")
            raise GeolocationTimeout(f"No position within {options.timeout_ms}ms") from None
        except PlatformPositionError as e:
            raise self._classify(e) from e

        logger.info(
            f"GPS position acquired (accuracy={coordinate.accuracy_meters}m, "
            f"high_accuracy={options.high_accuracy})"
        )
        return coordinate

    @staticmethod
    def _classify(error: PlatformPositionError):
        if error.code == PlatformErrorCode.PERMISSION_DENIED:
            logger.warning("GPS acquisition refused: permission denied")
            return PermissionDenied(str(error))
        if error.code == PlatformErrorCode.TIMEOUT:
            logger.warning("GPS acquisition timed out on the platform")
            return GeolocationTimeout(str(error))
        logger.warning(f"GPS position unavailable ({error.code.name}): {error}")
        return PositionUnavailable(str(error))
