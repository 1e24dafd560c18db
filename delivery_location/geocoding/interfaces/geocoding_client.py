from abc import ABC, abstractmethod
from typing import List, Optional

from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.resolved_address import ResolvedAddress
from delivery_location.geocoding.domain.search_candidate import SearchCandidate


class GeocodingClient(ABC):
    """
    Swappable geocoding capability.
    Implementations issue at most one provider call per operation and never retry.
    """

    @abstractmethod
    async def reverse_geocode(self, coord: Coordinate) -> ResolvedAddress:
        """Raises GeocodeUnavailable or GeocodeNoResult."""
        pass

    @abstractmethod
    async def forward_search(self, query: str, region_bias: Optional[str] = None) -> List[SearchCandidate]:
        """Provider-ordered, at most 10 candidates. Blank query -> []."""
        pass
