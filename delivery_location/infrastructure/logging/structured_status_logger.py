import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from delivery_location.core.domain.status_event import StatusEvent, StatusKind
from delivery_location.core.interfaces.status_sink import StatusSink

STATUS_LEVELS = {
    StatusKind.DETECTING: logging.DEBUG,
    StatusKind.SUCCESS: logging.INFO,
    StatusKind.IGNORED: logging.INFO,
    StatusKind.FAILURE: logging.WARNING,
}


class StructuredStatusLogger:
    """
    JSON-lines logger for location status events and proxy requests.
    Context passed to the constructor or bind() is repeated on every line;
    fields whose value is None are left out.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, **context: Any):
        self._logger = logger or logging.getLogger("location.status")
        self._context = context

    def bind(self, **context: Any) -> "StructuredStatusLogger":
        return StructuredStatusLogger(self._logger, **{**self._context, **context})

    def emit(self, event_type: str, level: int = logging.INFO, at: Optional[datetime] = None, **fields: Any) -> None:
        payload: Dict[str, Any] = {
            "timestamp": (at or datetime.now(timezone.utc)).isoformat(),
            "event_type": event_type,
        }
        payload.update(self._context)
        payload.update({name: value for name, value in fields.items() if value is not None})
        self._logger.log(level, json.dumps(payload, default=str, ensure_ascii=True))


class LoggingStatusSink(StatusSink):
    """Writes every StatusEvent as one JSON line, failures at WARNING."""

    def __init__(self, structured_logger: Optional[StructuredStatusLogger] = None):
        self._structured = structured_logger or StructuredStatusLogger(component="checkout")

    def emit(self, event: StatusEvent) -> None:
        self._structured.emit(
            f"{event.operation.name}_{event.status.name}",
            level=STATUS_LEVELS[event.status],
            at=event.at,
            message=event.message,
            error_code=event.error_code,
            **event.detail,
        )
