from dataclasses import dataclass, field
from typing import Dict


class LocationError(Exception):
    """Base class for location resolution failures."""
    code: str = "LOCATION_ERROR"
    user_message: str = "Something went wrong while resolving your location."

    def __str__(self) -> str:
        detail = super().__str__()
        return detail or self.user_message


class PermissionDenied(LocationError):
    """Platform refused location access."""
    code = "PERMISSION_DENIED"
    user_message = (
        "Location access denied. Enable location access in your browser settings "
        "or enter your address manually."
    )


class PositionUnavailable(LocationError):
    """Platform could not obtain a position (no signal, no capability)."""
    code = "POSITION_UNAVAILABLE"
    user_message = (
        "Location information is unavailable. Check your GPS settings "
        "or enter your address manually."
    )


class GeolocationTimeout(LocationError):
    """No position within the requested timeout."""
    code = "TIMEOUT"
    user_message = "Location request timed out. You can try again or enter your address manually."


class GeocodeUnavailable(LocationError):
    """Network, HTTP or payload failure talking to the geocoding service."""
    code = "GEOCODE_UNAVAILABLE"
    user_message = "Could not get an address for your location. Please enter your address manually."


class GeocodeNoResult(LocationError):
    """Provider answered but found nothing."""
    code = "GEOCODE_NO_RESULT"
    user_message = "No address was found for this location. Please enter your address manually."


@dataclass(eq=False)
class ValidationFailed(LocationError):
    """Form save rejected. field_errors maps field name to reason."""
    field_errors: Dict[str, str] = field(default_factory=dict)
    code = "VALIDATION_FAILED"

    def __post_init__(self):
        super().__init__(self.user_message)

    @property
    def fields(self):
        return list(self.field_errors)

    @property
    def user_message(self) -> str:  # type: ignore[override]
        missing = [name for name, reason in self.field_errors.items() if reason == "required"]
        if missing:
            return f"Please fill in: {', '.join(missing)}"
        if "postal_code" in self.field_errors:
            return "Please enter a valid 6-digit pincode"
        return "Please correct: " + ", ".join(self.field_errors)

    def __str__(self) -> str:
        return self.user_message


class StoreCorrupt(LocationError):
    """Persisted recent locations could not be read. Recovered by resetting."""
    code = "STORE_CORRUPT"
    user_message = "Saved recent locations could not be read and were cleared."
