"""Simulated price source publishing random-walk updates onto the message bus."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional, Protocol, Tuple

import numpy as np

from core.event_bus import MessageBus
from core.events import PriceUpdate, utc_now

LOGGER = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 2000
DEFAULT_STARTING_PRICE = 100.0
MIN_PRICE = 0.01
MAX_MOVE_PERCENT = 5.0


class UniformSource(Protocol):
    def uniform(self, low: float, high: float) -> float:
        ...


class Publisher:
    """Publish price updates for a single symbol.

    Each publisher owns its current price and knows nothing about subscribers;
    it only talks to the bus. The periodic cycle runs in a daemon thread and
    :meth:`stop_publishing` joins it, so no update is emitted once it returns.
    """

    def __init__(
        self,
        bus: MessageBus,
        topic: str,
        starting_price: float = DEFAULT_STARTING_PRICE,
        rng: Optional[UniformSource] = None,
        now_func: Callable[[], datetime] = utc_now,
    ) -> None:
        if not topic:
            raise ValueError("topic must be a non-empty string")
        self.bus = bus
        self.topic = topic
        self._price = max(MIN_PRICE, float(starting_price))
        self._rng: UniformSource = rng if rng is not None else np.random.default_rng()
        self._now = now_func
        self._state_lock = threading.Lock()
        # reentrant: a callback fired by the first publish in start_publishing may stop
        self._control_lock = threading.RLock()
        self._worker: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    @property
    def current_price(self) -> float:
        with self._state_lock:
            return self._price

    @property
    def is_publishing(self) -> bool:
        with self._control_lock:
            return self._stop_event is not None and not self._stop_event.is_set()

    def start_publishing(self, interval_ms: int = DEFAULT_INTERVAL_MS) -> None:
        """Publish once now, then every ``interval_ms`` until stopped.

        A running cycle is cancelled first, so a publisher never has two. A
        concurrent :meth:`stop_publishing` waits until the first publish is
        done and the worker is running, then cancels it.
        """

        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        stop_event = threading.Event()
        worker = threading.Thread(
            target=self._run,
            args=(interval_ms / 1000.0, stop_event),
            name=f"publisher-{self.topic}",
            daemon=True,
        )
        self._halt(*self._swap(worker, stop_event))

        with self._control_lock:
            if self._stop_event is not stop_event:
                # stopped or restarted by another caller in the meantime
                return
            LOGGER.info("Publisher %s started (interval=%sms)", self.topic, interval_ms)
            self.publish_update()
            worker.start()

    def stop_publishing(self) -> None:
        if self._halt(*self._swap(None, None)):
            LOGGER.info("Publisher %s stopped", self.topic)

    def _swap(
        self, worker: Optional[threading.Thread], stop_event: Optional[threading.Event]
    ) -> Tuple[Optional[threading.Thread], Optional[threading.Event]]:
        with self._control_lock:
            previous = (self._worker, self._stop_event)
            self._worker, self._stop_event = worker, stop_event
        return previous

    @staticmethod
    def _halt(worker: Optional[threading.Thread], stop_event: Optional[threading.Event]) -> bool:
        if stop_event is None:
            return False
        stop_event.set()
        # a callback running on the worker may stop its own publisher
        if worker is not None and worker.is_alive() and worker is not threading.current_thread():
            worker.join()
        return True

    def _run(self, interval: float, stop_event: threading.Event) -> None:
        while not stop_event.wait(interval):
            try:
                self.publish_update()
            except Exception:
                LOGGER.exception("Publisher %s failed to publish", self.topic)

    def publish_update(self) -> PriceUpdate:
        """Apply a random move of at most 5% and publish the result."""

        with self._state_lock:
            change = float(self._rng.uniform(-MAX_MOVE_PERCENT, MAX_MOVE_PERCENT))
            self._price = max(MIN_PRICE, self._price * (1 + change / 100))
            update = self._build(change)
        return self._emit(update)

    def set_price(self, price: float) -> PriceUpdate:
        """Override the price and publish it as-is, skipping the random move."""

        with self._state_lock:
            previous = self._price
            self._price = max(MIN_PRICE, float(price))
            update = self._build((self._price - previous) / previous * 100)
        return self._emit(update)

    def _build(self, change: float) -> PriceUpdate:
        return PriceUpdate(
            topic=self.topic,
            price=round(self._price, 2),
            change_percent=round(change, 2),
            timestamp=self._now(),
        )

    def _emit(self, update: PriceUpdate) -> PriceUpdate:
        # subscriber callbacks run here, never under the state lock
        self.bus.publish(self.topic, update)
        return update


__all__ = [
    "DEFAULT_INTERVAL_MS",
    "DEFAULT_STARTING_PRICE",
    "MAX_MOVE_PERCENT",
    "MIN_PRICE",
    "Publisher",
]
