from enum import Enum
from typing import Optional


class AccuracyGrade(Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    UNKNOWN = "Unknown"

    @classmethod
    def from_meters(cls, accuracy_meters: Optional[float]) -> "AccuracyGrade":
        if accuracy_meters is None:
            return cls.UNKNOWN
        if accuracy_meters <= 10:
            return cls.EXCELLENT
        if accuracy_meters <= 20:
            return cls.GOOD
        if accuracy_meters <= 50:
            return cls.FAIR
        return cls.POOR
