"""Subscriber that receives price updates from the message bus."""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime
from typing import Any, Callable, Deque, Optional, Tuple

from core.event_bus import MessageBus
from core.events import ReceivedMessage, utc_now

LOGGER = logging.getLogger(__name__)

HISTORY_LIMIT = 50

UpdateCallback = Callable[[str, Any], None]


class Subscriber:
    """Keep a bounded history of received updates and notify one observer.

    The bus is the only caller of :meth:`receive`. History is owned by this
    instance; the oldest record is evicted once :data:`HISTORY_LIMIT` is
    exceeded.
    """

    def __init__(
        self,
        subscriber_id: str,
        name: str,
        bus: MessageBus,
        now_func: Callable[[], datetime] = utc_now,
    ) -> None:
        self.id = subscriber_id
        self.name = name
        self.bus = bus
        self._now = now_func
        self._history: Deque[ReceivedMessage] = deque(maxlen=HISTORY_LIMIT)
        self._callback: Optional[UpdateCallback] = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Subscriber(id={self.id!r}, name={self.name!r})"

    def set_update_callback(self, callback: Optional[UpdateCallback]) -> None:
        self._callback = callback

    def receive(self, topic: str, message: Any) -> None:
        with self._lock:
            self._history.append(ReceivedMessage(topic=topic, message=message, received_at=self._now()))
        LOGGER.debug("Subscriber %s (%s) received update for %s: %s", self.name, self.id, topic, message)

        callback = self._callback
        if callback is None:
            return
        try:
            callback(topic, message)
        except Exception:
            LOGGER.exception("Update callback of %s failed for topic %s", self.id, topic)

    def subscribe(self, topic: str) -> None:
        self.bus.subscribe(topic, self)

    def unsubscribe(self, topic: str) -> None:
        self.bus.unsubscribe(topic, self)

    def get_message_history(self) -> Tuple[ReceivedMessage, ...]:
        """Return received records, oldest first."""

        with self._lock:
            return tuple(self._history)

    def last_message(self) -> Optional[ReceivedMessage]:
        with self._lock:
            return self._history[-1] if self._history else None


__all__ = ["HISTORY_LIMIT", "Subscriber", "UpdateCallback"]
