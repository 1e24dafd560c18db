from dataclasses import dataclass, replace
from enum import Enum

from delivery_location.core.domain.resolved_address import ResolvedAddress


class FormOrigin(Enum):
    NONE = "none"
    GPS_RESOLUTION = "gps_resolution"
    MANUAL_ENTRY = "manual_entry"
    CANDIDATE_SELECTION = "candidate_selection"


class ApplyOutcome(Enum):
    APPLIED = "applied"
    IGNORED_DIRTY = "ignored_dirty"


@dataclass(frozen=True)
class FormSyncState:
    origin: FormOrigin = FormOrigin.NONE
    dirty: bool = False


@dataclass(frozen=True)
class AddressFormFields:
    street_line: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    landmark: str = ""

    EDITABLE = ("street_line", "city", "state", "postal_code", "landmark")

    @classmethod
    def from_address(cls, address: ResolvedAddress) -> "AddressFormFields":
        return cls(
            street_line=address.street_line,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code,
            landmark=address.landmark or "",
        )

    def with_changes(self, **changes: str) -> "AddressFormFields":
        return replace(self, **changes)

    def to_address(self, source_coordinate=None) -> ResolvedAddress:
        return ResolvedAddress(
            street_line=self.street_line.strip(),
            city=self.city.strip(),
            state=self.state.strip(),
            postal_code=self.postal_code.strip(),
            landmark=self.landmark.strip() or None,
            source_coordinate=source_coordinate,
        )
