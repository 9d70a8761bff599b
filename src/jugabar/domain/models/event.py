"""Event domain model"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class EventType(Enum):
    """Event types published by the quote engine

    - QUOTE_UPDATED: An instrument quote was merged
    - INDEX_UPDATED: A market index was merged
    - FETCH_FAILED: A quote or index fetch failed, last data kept
    - PORTFOLIO_CHANGED: Order list or holdings changed by the user
    - REFRESH_COMPLETED: A full refresh cycle finished
    - DIRECTORY_BUILT: The symbol directory finished building
    """

    QUOTE_UPDATED = "quote_updated"
    INDEX_UPDATED = "index_updated"
    FETCH_FAILED = "fetch_failed"
    PORTFOLIO_CHANGED = "portfolio_changed"
    REFRESH_COMPLETED = "refresh_completed"
    DIRECTORY_BUILT = "directory_built"


@dataclass
class Event:
    """Domain event

    Attributes:
        type: Type of event
        data: Event-specific data payload
        timestamp: When the event was created
    """

    type: EventType
    data: dict[str, Any] | None = None
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if self.timestamp is None:
            self.timestamp = datetime.now()

    def __repr__(self) -> str:
        ts = self.timestamp.isoformat() if self.timestamp else "none"
        return f"Event(type={self.type.value}, timestamp={ts})"
