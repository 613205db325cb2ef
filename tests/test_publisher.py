import sys
import threading
import time
from pathlib import Path
from typing import Any, Iterable, List

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from connectors.price_publisher import MIN_PRICE, Publisher
from core.event_bus import MessageBus
from core.events import PriceUpdate


class _FixedRng:
    """Return a scripted sequence of percentage moves."""

    def __init__(self, moves: Iterable[float]) -> None:
        self._moves = list(moves)
        self.calls = 0

    def uniform(self, low: float, high: float) -> float:
        assert (low, high) == (-5.0, 5.0)
        move = self._moves[min(self.calls, len(self._moves) - 1)]
        self.calls += 1
        return move


class _Collector:
    def __init__(self, subscriber_id: str = "collector") -> None:
        self.id = subscriber_id
        self.updates: List[PriceUpdate] = []
        self._lock = threading.Lock()

    def receive(self, topic: str, message: Any) -> None:
        with self._lock:
            self.updates.append(message)

    def count(self) -> int:
        with self._lock:
            return len(self.updates)


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_publish_update_applies_and_rounds_move() -> None:
    bus = MessageBus()
    collector = _Collector()
    bus.subscribe("AAPL", collector)
    publisher = Publisher(bus, "AAPL", rng=_FixedRng([2.344]))

    update = publisher.publish_update()

    assert collector.updates == [update]
    assert update.topic == "AAPL"
    assert update.price == 102.34
    assert update.change_percent == 2.34
    assert publisher.current_price == pytest.approx(102.344)
    assert bus.get_latest("AAPL") is update


def test_price_never_drops_below_floor() -> None:
    publisher = Publisher(MessageBus(), "AAPL", starting_price=0.05, rng=_FixedRng([-5.0]))

    prices = [publisher.publish_update().price for _ in range(200)]

    assert min(prices) >= MIN_PRICE
    assert prices[-1] == MIN_PRICE


def test_random_walk_stays_within_bounds() -> None:
    publisher = Publisher(MessageBus(), "TSLA", rng=np.random.default_rng(7))

    previous = publisher.current_price
    for _ in range(500):
        update = publisher.publish_update()
        assert -5.0 <= update.change_percent <= 5.0
        assert update.price >= MIN_PRICE
        assert publisher.current_price == pytest.approx(max(MIN_PRICE, previous * (1 + update.change_percent / 100)), rel=1e-3)
        previous = publisher.current_price


def test_set_price_publishes_exact_price() -> None:
    bus = MessageBus()
    collector = _Collector()
    bus.subscribe("AAPL", collector)
    rng = _FixedRng([1.0])
    publisher = Publisher(bus, "AAPL", rng=rng)

    update = publisher.set_price(110.0)

    assert rng.calls == 0
    assert update.price == 110.0
    assert update.change_percent == 10.0
    assert collector.updates == [update]


def test_set_price_clamps_negative_input() -> None:
    publisher = Publisher(MessageBus(), "AAPL")

    update = publisher.set_price(-3)

    assert update.price == MIN_PRICE
    assert publisher.current_price == MIN_PRICE


def test_to_dict_matches_payload_shape() -> None:
    update = Publisher(MessageBus(), "AAPL", rng=_FixedRng([0.0])).publish_update()

    payload = update.to_dict()

    assert payload["symbol"] == "AAPL"
    assert payload["price"] == 100.0
    assert payload["change"] == 0.0
    assert payload["timestamp"].endswith("+00:00")


def test_stop_right_after_start_leaves_single_publish() -> None:
    bus = MessageBus()
    collector = _Collector()
    bus.subscribe("AAPL", collector)
    publisher = Publisher(bus, "AAPL", rng=_FixedRng([1.0]))

    publisher.start_publishing(2000)
    assert publisher.is_publishing
    publisher.stop_publishing()

    assert collector.count() == 1
    assert not publisher.is_publishing
    time.sleep(0.05)
    assert collector.count() == 1


def test_periodic_cycle_and_stop_is_final() -> None:
    bus = MessageBus()
    collector = _Collector()
    bus.subscribe("AAPL", collector)
    publisher = Publisher(bus, "AAPL", rng=_FixedRng([0.5]))

    publisher.start_publishing(10)
    assert _wait_for(lambda: collector.count() >= 4)
    publisher.stop_publishing()
    stopped_at = collector.count()

    time.sleep(0.1)
    assert collector.count() == stopped_at


def test_restart_replaces_running_cycle() -> None:
    publisher = Publisher(MessageBus(), "AAPL", rng=_FixedRng([0.0]))

    publisher.start_publishing(5000)
    first = publisher._worker
    publisher.start_publishing(5000)
    second = publisher._worker

    assert first is not second
    assert first is not None and not first.is_alive()
    assert second is not None and second.is_alive()
    publisher.stop_publishing()
    assert not second.is_alive()


def test_stop_when_idle_is_noop() -> None:
    publisher = Publisher(MessageBus(), "AAPL")
    publisher.stop_publishing()
    publisher.stop_publishing()
    assert not publisher.is_publishing


def test_callback_may_stop_its_own_publisher() -> None:
    bus = MessageBus()
    publisher = Publisher(bus, "AAPL", rng=_FixedRng([0.1]))
    seen: List[Any] = []

    class _StopAfterTwo:
        id = "stopper"

        def receive(self, topic: str, message: Any) -> None:
            seen.append(message)
            if len(seen) == 2:
                publisher.stop_publishing()

    bus.subscribe("AAPL", _StopAfterTwo())
    publisher.start_publishing(10)

    assert _wait_for(lambda: not publisher.is_publishing)
    time.sleep(0.05)
    assert len(seen) == 2


def test_stop_from_callback_during_set_price_while_running() -> None:
    bus = MessageBus()
    publisher = Publisher(bus, "AAPL", rng=_FixedRng([0.1]))
    collector = _Collector()

    class _StopOnManualPrice:
        id = "stopper"

        def receive(self, topic: str, message: Any) -> None:
            if message.price == 120.0:
                time.sleep(0.1)
                publisher.stop_publishing()

    bus.subscribe("AAPL", _StopOnManualPrice())
    bus.subscribe("AAPL", collector)
    publisher.start_publishing(20)

    caller = threading.Thread(target=publisher.set_price, args=(120.0,), name="caller", daemon=True)
    caller.start()
    caller.join(timeout=2.0)

    assert not caller.is_alive()
    assert not publisher.is_publishing
    stopped_at = collector.count()
    time.sleep(0.1)
    assert collector.count() == stopped_at


def test_concurrent_stop_waits_for_first_publish() -> None:
    bus = MessageBus()
    publisher = Publisher(bus, "AAPL", rng=_FixedRng([0.0]))
    collector = _Collector()
    entered = threading.Event()
    release = threading.Event()

    class _Gate:
        id = "gate"

        def receive(self, topic: str, message: Any) -> None:
            if not entered.is_set():
                entered.set()
                release.wait(2.0)

    bus.subscribe("AAPL", _Gate())
    bus.subscribe("AAPL", collector)

    starter = threading.Thread(target=publisher.start_publishing, args=(5000,), daemon=True)
    starter.start()
    assert entered.wait(2.0)

    stopper = threading.Thread(target=publisher.stop_publishing, daemon=True)
    stopper.start()
    stopper.join(timeout=0.05)
    assert stopper.is_alive()

    release.set()
    stopper.join(timeout=2.0)
    starter.join(timeout=2.0)

    assert not stopper.is_alive()
    assert not publisher.is_publishing
    assert collector.count() == 1
    time.sleep(0.05)
    assert collector.count() == 1


def test_stop_from_first_publish_callback_prevents_cycle() -> None:
    bus = MessageBus()
    publisher = Publisher(bus, "AAPL", rng=_FixedRng([0.0]))
    collector = _Collector()

    class _StopImmediately:
        id = "stopper"

        def receive(self, topic: str, message: Any) -> None:
            publisher.stop_publishing()

    bus.subscribe("AAPL", _StopImmediately())
    bus.subscribe("AAPL", collector)
    publisher.start_publishing(10)

    assert not publisher.is_publishing
    time.sleep(0.05)
    assert collector.count() == 1


def test_invalid_arguments() -> None:
    with pytest.raises(ValueError):
        Publisher(MessageBus(), "")
    with pytest.raises(ValueError):
        Publisher(MessageBus(), "AAPL").start_publishing(0)
