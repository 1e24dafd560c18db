import re
from dataclasses import dataclass
from typing import Optional

from delivery_location.config.settings import settings
from delivery_location.core.domain.coordinate import Coordinate


def is_valid_postal_code(postal_code: str) -> bool:
    # pattern is ASCII-only ([0-9], not \d)
    return re.fullmatch(settings.POSTAL_CODE_PATTERN, postal_code or "") is not None


@dataclass(frozen=True)
class ResolvedAddress:
    """
    Structured postal address.
    source_coordinate is only set when the address came from a GPS fix.
    """
    street_line: str
    city: str
    state: str
    postal_code: str
    landmark: Optional[str] = None
    source_coordinate: Optional[Coordinate] = None

    @property
    def is_complete(self) -> bool:
        if not self.city.strip() or not self.state.strip():
            return False
        if self.postal_code and not is_valid_postal_code(self.postal_code):
            return False
        return True
