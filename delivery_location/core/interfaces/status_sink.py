from abc import ABC, abstractmethod

from delivery_location.core.domain.status_event import StatusEvent


class StatusSink(ABC):
    @abstractmethod
    def emit(self, event: StatusEvent) -> None:
        pass


class NullStatusSink(StatusSink):
    def emit(self, event: StatusEvent) -> None:
        return
