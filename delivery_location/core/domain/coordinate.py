from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Coordinate:
    """
    Immutable GPS fix produced by the geolocation acquirer.
    """
    latitude: float
    longitude: float
    accuracy_meters: Optional[float] = None

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")
        if self.accuracy_meters is not None and self.accuracy_meters < 0:
            raise ValueError(f"accuracy must be >= 0: {self.accuracy_meters}")
