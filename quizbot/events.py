"""Session events and the process-wide broadcaster that fans them out to live observers."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .models import utc_now_iso

logger = logging.getLogger("quizbot")

EVENT_KINDS = ("info", "error", "warning", "progress", "complete")

# Log level per event kind when mirrored to the logger
_LOG_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "progress": logging.INFO,
    "complete": logging.INFO,
}

OBSERVER_QUEUE_SIZE = 1000


@dataclass
class SessionEvent:
    kind: str
    session_id: Optional[str] = None
    message: Optional[str] = None
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=utc_now_iso)

    def __post_init__(self) -> None:
        if self.kind not in EVENT_KINDS:
            raise ValueError(f"Unknown event kind: {self.kind}")

    def to_dict(self) -> dict[str, Any]:
        """Self-describing wire record: type, message or payload fields, timestamp, sessionId."""
        d: dict[str, Any] = {"type": self.kind}
        if self.message is not None:
            d["message"] = self.message
        d.update(self.payload)
        d["timestamp"] = self.timestamp
        d["sessionId"] = self.session_id
        return d


class EventBroadcaster:
    """
    Fan-out to every observer connected at the moment of publish. Each observer owns a bounded queue;
    late observers get no backlog, and a full queue just misses the event.
    """

    def __init__(self, queue_size: int = OBSERVER_QUEUE_SIZE):
        self.queue_size = queue_size
        self._observers: list[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._observers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        try:
            self._observers.remove(queue)
        except ValueError:
            pass

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def publish(self, event: SessionEvent) -> int:
        """Deliver to current observers; returns how many received it."""
        level = _LOG_LEVELS.get(event.kind, logging.INFO)
        if event.message is not None:
            logger.log(level, "[%s] %s", event.session_id or "-", event.message)
        else:
            logger.debug("[%s] %s event: %s", event.session_id or "-", event.kind, event.payload)
        delivered = 0
        for queue in list(self._observers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.debug("Observer queue full; dropping %s event", event.kind)
        return delivered
