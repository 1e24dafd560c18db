import asyncio
from collections import deque
from typing import Callable, Deque, List, Optional, Union

from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.subscription import Subscription
from delivery_location.permission.domain.permission_state import PermissionState
from delivery_location.permission.interfaces.location_platform import (
    LocationPlatform,
    PlatformErrorCode,
    PlatformPositionError,
)

PositionOutcome = Union[Coordinate, PlatformPositionError]


class ScriptedLocationPlatform(LocationPlatform):
    """
    Deterministic platform for development and tests.
    Position requests consume scripted outcomes in order; with no outcome left
    the request never answers (a device that stays silent).
    """

    def __init__(
            self,
            capability: bool = True,
            permission_api: bool = True,
            permission: PermissionState = PermissionState.PROMPT,
            outcomes: Optional[List[PositionOutcome]] = None,
            response_delay_s: float = 0.0,
            query_error: Optional[Exception] = None,
            pushes_changes: bool = True,
    ):
        self.capability = capability
        self.permission_api = permission_api
        self.permission = permission
        self.outcomes: Deque[PositionOutcome] = deque(outcomes or [])
        self.response_delay_s = response_delay_s
        self.query_error = query_error
        # False: position outcomes never surface as permission events
        self.pushes_changes = pushes_changes
        self.position_requests: List[dict] = []
        self.permission_queries = 0
        self._subscribers: List[Callable[[PermissionState], None]] = []

    def has_location_capability(self) -> bool:
        return self.capability

    def has_permission_api(self) -> bool:
        return self.permission_api

    async def query_permission(self) -> PermissionState:
        self.permission_queries += 1
        if self.query_error is not None:
            raise self.query_error
        return self.permission

    def subscribe_permission_changes(self, handler: Callable[[PermissionState], None]) -> Subscription:
        self._subscribers.append(handler)
        return Subscription(lambda: self._subscribers.remove(handler))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def push_permission(self, state: PermissionState) -> None:
        self.permission = state
        for handler in list(self._subscribers):
            handler(state)

    async def get_current_position(
            self,
            high_accuracy: bool,
            timeout_ms: int,
            max_cached_age_ms: int
    ) -> Coordinate:
        self.position_requests.append({
            "high_accuracy": high_accuracy,
            "timeout_ms": timeout_ms,
            "max_cached_age_ms": max_cached_age_ms,
        })
        if not self.outcomes:
            await asyncio.Event().wait()
        outcome = self.outcomes.popleft()
        if self.response_delay_s:
            await asyncio.sleep(self.response_delay_s)
        if isinstance(outcome, PlatformPositionError):
            if outcome.code == PlatformErrorCode.PERMISSION_DENIED and self.pushes_changes:
                self.push_permission(PermissionState.DENIED)
            raise outcome
        if self.permission != PermissionState.GRANTED and self.pushes_changes:
            self.push_permission(PermissionState.GRANTED)
        return outcome
