from dataclasses import dataclass

from delivery_location.config.settings import settings


@dataclass(frozen=True)
class AcquisitionOptions:
    timeout_ms: int = 10000
    max_cached_age_ms: int = 0
    high_accuracy: bool = True

    def __post_init__(self):
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if self.max_cached_age_ms < 0:
            raise ValueError("max_cached_age_ms must be >= 0")

    @classmethod
    def for_permission_prompt(cls) -> "AcquisitionOptions":
        return cls(
            timeout_ms=settings.GPS_TIMEOUT_MS,
            max_cached_age_ms=settings.PERMISSION_PROMPT_MAX_CACHED_AGE_MS,
            high_accuracy=True,
        )

    @classmethod
    def for_detection(cls) -> "AcquisitionOptions":
        return cls(
            timeout_ms=settings.GPS_TIMEOUT_MS,
            max_cached_age_ms=settings.DETECTION_MAX_CACHED_AGE_MS,
            high_accuracy=True,
        )
