import logging
from dataclasses import replace
from typing import Mapping, Optional

from delivery_location.address_form.domain.form_sync_state import (
    AddressFormFields,
    ApplyOutcome,
    FormOrigin,
    FormSyncState,
)
from delivery_location.address_form.interfaces.delivery_form import DeliveryForm, NullDeliveryForm
from delivery_location.address_form.services.address_validator import validate_fields
from delivery_location.core.domain.coordinate import Coordinate
from delivery_location.core.domain.location_errors import ValidationFailed
from delivery_location.core.domain.resolved_address import ResolvedAddress
from delivery_location.core.domain.status_event import Operation, StatusEvent, StatusKind
from delivery_location.core.interfaces.status_sink import NullStatusSink, StatusSink

logger = logging.getLogger(__name__)

UNSAVED_EDITS_MESSAGE = "Address not updated: the form has unsaved edits. Save or discard them first."


class AddressFormSynchronizer:
    """
    Reconciles automatic address sources with the user-editable form.

    Invariant: while state.dirty is true no automatic source (GPS resolution,
    candidate selection) changes the form. Only save() or reset() clear dirty.
    """

    def __init__(
            self,
            delivery_form: Optional[DeliveryForm] = None,
            status_sink: Optional[StatusSink] = None
    ):
        self.delivery_form = delivery_form or NullDeliveryForm()
        self.status_sink = status_sink or NullStatusSink()
        self._fields = AddressFormFields()
        self._state = FormSyncState()
        self._source_coordinate: Optional[Coordinate] = None
        # last clean content, restored by reset()
        self._snapshot = (self._fields, self._state.origin, None)

    @property
    def fields(self) -> AddressFormFields:
        return self._fields

    @property
    def state(self) -> FormSyncState:
        return self._state

    def apply_gps_resolution(self, address: ResolvedAddress) -> ApplyOutcome:
        return self._apply_automatic(address, FormOrigin.GPS_RESOLUTION, Operation.GPS_DETECTION)

    def apply_candidate_selection(self, address: ResolvedAddress) -> ApplyOutcome:
        return self._apply_automatic(address, FormOrigin.CANDIDATE_SELECTION, Operation.CANDIDATE_SELECTION)

    def apply_manual_edit(self, fields: Mapping[str, str]) -> None:
        unknown = set(fields) - set(AddressFormFields.EDITABLE)
        if unknown:
            raise ValueError(f"Unknown address form fields: {', '.join(sorted(unknown))}")

        self._fields = self._fields.with_changes(**{name: str(value) for name, value in fields.items()})
        self._source_coordinate = None
        self._state = FormSyncState(origin=FormOrigin.MANUAL_ENTRY, dirty=True)
        logger.debug(f"Manual edit applied to {sorted(fields)}")

    def begin_manual_edit(self) -> None:
        if not self._state.dirty:
            self._state = replace(self._state, dirty=True)

    def save(self) -> ResolvedAddress:
        errors = validate_fields(self._fields)
        if errors:
            failure = ValidationFailed(errors)
            logger.info(f"Address save rejected: {errors}")
            self.status_sink.emit(StatusEvent(
                operation=Operation.FORM_SAVE,
                status=StatusKind.FAILURE,
                message=failure.user_message,
                error_code=failure.code,
                detail={"fields": sorted(errors)},
            ))
            raise failure

        address = self._fields.to_address(self._source_coordinate)
        self._state = replace(self._state, dirty=False)
        self._snapshot = (self._fields, self._state.origin, self._source_coordinate)
        self.delivery_form.on_address_saved(address)
        self.status_sink.emit(StatusEvent(
            operation=Operation.FORM_SAVE,
            status=StatusKind.SUCCESS,
            message="Address saved successfully!",
        ))
        return address

    def reset(self) -> None:
        """Discard manual edits, back to the last automatic or saved content."""
        fields, origin, coordinate = self._snapshot
        self._fields = fields
        self._source_coordinate = coordinate
        self._state = FormSyncState(origin=origin, dirty=False)

    def _apply_automatic(self, address: ResolvedAddress, origin: FormOrigin, operation: Operation) -> ApplyOutcome:
        if self._state.dirty:
            logger.info(f"Ignoring {origin.value}: form has unsaved edits")
            self.status_sink.emit(StatusEvent(
                operation=operation,
                status=StatusKind.IGNORED,
                message=UNSAVED_EDITS_MESSAGE,
            ))
            return ApplyOutcome.IGNORED_DIRTY

        self._fields = AddressFormFields.from_address(address)
        self._source_coordinate = address.source_coordinate if origin == FormOrigin.GPS_RESOLUTION else None
        self._state = FormSyncState(origin=origin, dirty=False)
        self._snapshot = (self._fields, origin, self._source_coordinate)
        if not address.is_complete:
            logger.info(f"Applied incomplete address from {origin.value}; save will require corrections")
        self.delivery_form.on_address_applied(self._fields.to_address(self._source_coordinate), origin)
        return ApplyOutcome.APPLIED
