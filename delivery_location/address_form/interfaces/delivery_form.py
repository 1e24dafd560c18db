from abc import ABC, abstractmethod

from delivery_location.address_form.domain.form_sync_state import FormOrigin
from delivery_location.core.domain.resolved_address import ResolvedAddress


class DeliveryForm(ABC):
    """
    Downstream checkout delivery form.
    Its only call back into this subsystem is AddressFormSynchronizer.begin_manual_edit().
    """

    @abstractmethod
    def on_address_applied(self, address: ResolvedAddress, origin: FormOrigin) -> None:
        pass

    @abstractmethod
    def on_address_saved(self, address: ResolvedAddress) -> None:
        pass


class NullDeliveryForm(DeliveryForm):
    def on_address_applied(self, address: ResolvedAddress, origin: FormOrigin) -> None:
        return

    def on_address_saved(self, address: ResolvedAddress) -> None:
        return
