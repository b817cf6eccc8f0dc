"""Notification events and sinks.

Sinks are best-effort: a failed delivery is logged and reported as False,
never raised into the swap flow.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    """Severity of a lifecycle event."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class NotificationEvent:
    """A lifecycle event for transient UI feedback."""
    kind: NotificationKind
    text: str
    hash: Optional[str] = None
    explorer_url: Optional[str] = None


class NotificationSink(ABC):
    """Receives lifecycle events."""

    @abstractmethod
    async def notify(self, event: NotificationEvent) -> bool:
        """Deliver an event. Returns True if it was delivered."""
        pass


class LoggingNotificationSink(NotificationSink):
    """Writes events to the application log."""

    _LEVELS = {
        NotificationKind.INFO: logging.INFO,
        NotificationKind.SUCCESS: logging.INFO,
        NotificationKind.ERROR: logging.WARNING,
    }

    async def notify(self, event: NotificationEvent) -> bool:
        suffix = f" [{event.hash}]" if event.hash else ""
        logger.log(self._LEVELS[event.kind], f"{event.kind.value.upper()}: {event.text}{suffix}")
        return True


class MemoryNotificationSink(NotificationSink):
    """Keeps events in memory (previews and tests)."""

    def __init__(self):
        self.events: list[NotificationEvent] = []

    async def notify(self, event: NotificationEvent) -> bool:
        self.events.append(event)
        return True

    def clear(self) -> None:
        self.events.clear()
