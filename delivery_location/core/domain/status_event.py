from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class StatusKind(Enum):
    DETECTING = "detecting"
    SUCCESS = "success"
    FAILURE = "failure"
    IGNORED = "ignored"


class Operation(Enum):
    PERMISSION_REQUEST = "permission_request"
    GPS_DETECTION = "gps_detection"
    PLACE_SEARCH = "place_search"
    CANDIDATE_SELECTION = "candidate_selection"
    RECENT_SELECTION = "recent_selection"
    PINCODE_LOOKUP = "pincode_lookup"
    FORM_SAVE = "form_save"
    RECENT_STORE = "recent_store"


@dataclass(frozen=True)
class StatusEvent:
    """
    User-facing status signal. Rendering is up to the presentation layer.
    """
    operation: Operation
    status: StatusKind
    message: str
    error_code: Optional[str] = None
    detail: Dict[str, Any] = field(default_factory=dict)
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
