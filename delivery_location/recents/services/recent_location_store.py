import json
import logging
from typing import List, Optional

from delivery_location.config.settings import settings
from delivery_location.core.domain.location_errors import StoreCorrupt
from delivery_location.core.domain.selection_clock import SelectionClock, UtcSelectionClock
from delivery_location.core.domain.status_event import Operation, StatusEvent, StatusKind
from delivery_location.core.interfaces.status_sink import NullStatusSink, StatusSink
from delivery_location.recents.domain.recent_location_entry import RecentLocationEntry
from delivery_location.recents.store.key_value_store import KeyValueStore

logger = logging.getLogger(__name__)


class RecentLocationStore:
    """
    Bounded most-recent-first list of chosen location labels.

    Read once at construction, written on every record(). Persisted as a JSON
    array of strings under a fixed namespace key.
    """

    def __init__(
            self,
            kv: KeyValueStore,
            capacity: Optional[int] = None,
            key: Optional[str] = None,
            clock: Optional[SelectionClock] = None,
            status_sink: Optional[StatusSink] = None,
    ):
        self.kv = kv
        self.capacity = capacity if capacity is not None else settings.RECENT_LOCATIONS_CAPACITY
        self.key = key or settings.RECENT_LOCATIONS_KEY
        self.clock = clock or UtcSelectionClock()
        self.status_sink = status_sink or NullStatusSink()

        try:
            labels = self._load()
        except StoreCorrupt as e:
            logger.warning(f"Recent locations under '{self.key}' unreadable, starting empty: {e}")
            self.status_sink.emit(StatusEvent(
                operation=Operation.RECENT_STORE,
                status=StatusKind.FAILURE,
                message=e.user_message,
                error_code=e.code,
            ))
            labels = []
        self._entries: List[RecentLocationEntry] = [RecentLocationEntry(label) for label in labels]

    def list(self) -> List[str]:
        return [entry.label for entry in self._entries]

    def entries(self) -> List[RecentLocationEntry]:
        return list(self._entries)

    def record(self, label: str) -> None:
        remaining = [entry for entry in self._entries if entry.label != label]
        entry = RecentLocationEntry(label, self.clock.now())
        entries = ([entry] + remaining)[:self.capacity]
        self.kv.set(self.key, json.dumps([e.label for e in entries]))
        self._entries = entries

    def _load(self) -> List[str]:
        raw = self.kv.get(self.key)
        if raw is None:
            return []
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreCorrupt(f"invalid JSON: {e}") from e
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise StoreCorrupt("expected a JSON array of strings")
        return value[:self.capacity]
