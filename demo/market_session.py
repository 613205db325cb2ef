"""Headless market session wiring publishers and subscribers to one bus.

The session owns one publisher per configured symbol, a single "selected"
symbol that is actively published, and a list of numbered subscribers that can
join and leave topics. A display subscriber follows the selected symbol and
logs whatever it receives.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import numpy as np

from alerts.formatting import format_update
from alerts.subscriber import Subscriber, UpdateCallback
from connectors.price_publisher import Publisher
from core.config_models import SimulatorConfig
from core.event_bus import MessageBus

LOGGER = logging.getLogger(__name__)

DISPLAY_SUBSCRIBER_ID = "ui-display"


class MarketSession:
    def __init__(
        self,
        bus: MessageBus,
        config: SimulatorConfig,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.bus = bus
        self.config = config
        if rng is not None:
            rngs = [rng] * len(config.symbols)
        else:
            # independent stream per publisher thread
            seeds = np.random.SeedSequence(config.seed).spawn(len(config.symbols))
            rngs = [np.random.default_rng(seed) for seed in seeds]
        self.publishers: Dict[str, Publisher] = {
            symbol: Publisher(bus, symbol, starting_price=config.starting_price, rng=symbol_rng)
            for symbol, symbol_rng in zip(config.symbols, rngs)
        }
        self.current_symbol: str = config.default_symbol or config.symbols[0]
        self.publishing = False
        self._subscribers: Dict[str, Subscriber] = {}
        self._counter = 0

        self.display = Subscriber(DISPLAY_SUBSCRIBER_ID, "UI Display", bus)
        self.display.set_update_callback(self._on_display_update)
        self.display.subscribe(self.current_symbol)

    @property
    def current_publisher(self) -> Publisher:
        return self.publishers[self.current_symbol]

    @property
    def subscribers(self) -> List[Subscriber]:
        return list(self._subscribers.values())

    def get_subscriber(self, subscriber_id: str) -> Optional[Subscriber]:
        return self._subscribers.get(subscriber_id)

    def start(self) -> None:
        self.current_publisher.start_publishing(self.config.interval_ms)
        self.publishing = True

    def stop(self) -> None:
        self.current_publisher.stop_publishing()
        self.publishing = False

    def select_symbol(self, symbol: str) -> None:
        """Switch the actively published symbol, keeping the running state."""

        if symbol not in self.publishers:
            raise KeyError(f"unknown symbol: {symbol}")
        self.current_publisher.stop_publishing()
        self.current_symbol = symbol
        self._follow(symbol)
        if self.publishing:
            self.current_publisher.start_publishing(self.config.interval_ms)

    def _follow(self, symbol: str) -> None:
        for topic in self.config.symbols:
            self.display.unsubscribe(topic)
        self.display.subscribe(symbol)

    def _on_display_update(self, topic: str, message: object) -> None:
        if topic == self.current_symbol:
            LOGGER.info("Latest update: %s", format_update(topic, message))

    def add_subscriber(self, callback: Optional[UpdateCallback] = None) -> Subscriber:
        """Create the next numbered subscriber and join the selected symbol."""

        self._counter += 1
        subscriber = Subscriber(f"sub-{self._counter}", f"Subscriber {self._counter}", self.bus)
        self._subscribers[subscriber.id] = subscriber
        if callback is not None:
            subscriber.set_update_callback(callback)
        subscriber.subscribe(self.current_symbol)
        return subscriber

    def remove_subscriber(self) -> Optional[Subscriber]:
        """Remove the most recently added subscriber from every symbol."""

        if not self._subscribers:
            return None
        subscriber_id = next(reversed(self._subscribers))
        subscriber = self._subscribers.pop(subscriber_id)
        for symbol in self.config.symbols:
            subscriber.unsubscribe(symbol)
        return subscriber

    def subscribe(self, subscriber_id: str, topic: str) -> bool:
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            return False
        subscriber.subscribe(topic)
        return True

    def unsubscribe(self, subscriber_id: str, topic: str) -> bool:
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            return False
        subscriber.unsubscribe(topic)
        return True

    def subscriptions_of(self, subscriber_id: str) -> List[str]:
        return [symbol for symbol in self.config.symbols if subscriber_id in self.bus.get_subscribers(symbol)]

    def shutdown(self) -> None:
        for publisher in self.publishers.values():
            publisher.stop_publishing()
        self.publishing = False


__all__ = ["DISPLAY_SUBSCRIBER_ID", "MarketSession"]
