from dataclasses import dataclass, field
from typing import Any, Dict

from delivery_location.core.domain.coordinate import Coordinate


@dataclass(frozen=True)
class SearchCandidate:
    """
    One entry of a place-search suggestion list. Never persisted.
    """
    display_name: str
    coordinate: Coordinate
    raw_provider_payload: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
