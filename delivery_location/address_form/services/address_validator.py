from typing import Dict

from delivery_location.address_form.domain.form_sync_state import AddressFormFields
from delivery_location.core.domain.resolved_address import is_valid_postal_code

REQUIRED_FIELDS = ("street_line", "city", "state", "postal_code")


def validate_fields(fields: AddressFormFields) -> Dict[str, str]:
    """
    Returns field name -> reason ("required" or "invalid_format"); empty when valid.
    """
    errors: Dict[str, str] = {}
    for name in REQUIRED_FIELDS:
        if not getattr(fields, name).strip():
            errors[name] = "required"

    postal_code = fields.postal_code.strip()
    if postal_code and not is_valid_postal_code(postal_code):
        errors["postal_code"] = "invalid_format"
    return errors
