import os
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Geocoding provider
    NOMINATIM_BASE_URL: str = os.getenv(
        "NOMINATIM_BASE_URL",
        "https://nominatim.openstreetmap.org"
    )
    NOMINATIM_USER_AGENT: str = "FarmToTableBharat/1.0"
    ACCEPT_LANGUAGE: str = "en"
    DEFAULT_REGION: str = "in"
    SEARCH_RESULT_LIMIT: int = 10
    HTTP_TIMEOUT_SECONDS: Optional[float] = None  # None: transport default, no subsystem timeout

    # Pincode lookup
    INDIA_POST_BASE_URL: str = "https://api.postalpincode.in"
    IP_GEOLOCATION_URL: str = "https://ipapi.co/json/"

    # GPS acquisition
    GPS_TIMEOUT_MS: int = 10000
    PERMISSION_PROMPT_MAX_CACHED_AGE_MS: int = 0
    DETECTION_MAX_CACHED_AGE_MS: int = 300000  # 5 minutes

    # Suggestions
    SUGGESTION_QUIET_INTERVAL_MS: int = 500

    # Recent locations
    RECENT_LOCATIONS_KEY: str = "recentLocations"
    RECENT_LOCATIONS_CAPACITY: int = 5
    LOCAL_STORE_URL: str = os.getenv("LOCAL_STORE_URL", "sqlite:///location_cache.db")

    # Address validation
    POSTAL_CODE_PATTERN: str = r"[0-9]{6}"


settings = Settings()
