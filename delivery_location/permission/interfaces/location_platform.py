from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable

from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.subscription import Subscription
from delivery_location.permission.domain.permission_state import PermissionState


class PlatformErrorCode(Enum):
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3
    UNKNOWN = 0


class PlatformPositionError(Exception):
    """Raw failure reported by the device for a position request."""

    def __init__(self, code: PlatformErrorCode, message: str = ""):
        super().__init__(message or code.name)
        self.code = code


class LocationPlatform(ABC):
    """
    Device location capability.
    get_current_position is one-shot; subscriptions are push-only.
    """

    @abstractmethod
    def has_location_capability(self) -> bool:
        pass

    @abstractmethod
    def has_permission_api(self) -> bool:
        pass

    @abstractmethod
    async def query_permission(self) -> PermissionState:
        pass

    @abstractmethod
    def subscribe_permission_changes(self, handler: Callable[[PermissionState], None]) -> Subscription:
        pass

    @abstractmethod
    async def get_current_position(
            self,
            high_accuracy: bool,
            timeout_ms: int,
            max_cached_age_ms: int
    ) -> Coordinate:
        """Raises PlatformPositionError on failure."""
        pass
