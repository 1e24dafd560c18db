from dataclasses import dataclass
from enum import Enum
from typing import Optional

from delivery_location.core.domain.coordinate import Coordinate


class PincodeSource(Enum):
    INDIA_POST = "india_post"
    NOMINATIM = "nominatim"
    OFFLINE_TABLE = "offline_table"


@dataclass(frozen=True)
class PincodeLocality:
    postal_code: str
    post_office: str
    district: str
    city: str
    state: str
    source: PincodeSource
    coordinate: Optional[Coordinate] = None

    @property
    def full_address(self) -> str:
        return f"{self.post_office}, {self.district}, {self.state} - {self.postal_code}"
