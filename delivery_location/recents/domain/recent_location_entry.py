from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class RecentLocationEntry:
    """
    selected_at is None for entries restored from storage: only labels are persisted.
    """
    label: str
    selected_at: Optional[datetime] = None
