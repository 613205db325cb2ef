"""线程安全的主题消息总线，缓存每个主题的最新消息并回放给新订阅者。"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, DefaultDict, Dict, List, Optional, Protocol, Set

LOGGER = logging.getLogger(__name__)


class Receiver(Protocol):
    """总线能够投递的订阅者接口。"""

    id: str

    def receive(self, topic: str, message: Any) -> None:
        ...


def _require_topic(topic: str) -> None:
    if not topic:
        raise ValueError("topic must be a non-empty string")


class MessageBus:
    """发布/订阅机制，供发布者与订阅者解耦通信。

    注册表与缓存的修改在锁内完成；投递在锁外针对快照进行，
    因此投递过程中的订阅/退订只影响之后的发布。
    """

    def __init__(self) -> None:
        # dict 作为有序集合使用，值恒为 None
        self._subscriptions: DefaultDict[str, Dict[Receiver, None]] = defaultdict(dict)
        self._latest: Dict[str, Any] = {}
        self._topics: Set[str] = set()
        self._lock = threading.RLock()

    def subscribe(self, topic: str, subscriber: Receiver) -> None:
        """注册订阅者；若主题已有缓存消息，在返回前同步回放给该订阅者。"""

        _require_topic(topic)
        with self._lock:
            self._subscriptions[topic][subscriber] = None
            self._topics.add(topic)
            has_cached = topic in self._latest
            cached = self._latest.get(topic)
        LOGGER.info("Subscriber %s subscribed to topic: %s", subscriber.id, topic)

        if has_cached:
            self._deliver(subscriber, topic, cached)

    def unsubscribe(self, topic: str, subscriber: Receiver) -> None:
        """移除订阅；未订阅或未知主题时静默返回。"""

        with self._lock:
            members = self._subscriptions.get(topic)
            if members is None or subscriber not in members:
                return
            del members[subscriber]
        LOGGER.info("Subscriber %s unsubscribed from topic: %s", subscriber.id, topic)

    def publish(self, topic: str, message: Any) -> int:
        """缓存消息并分发给当前订阅者，返回成功投递的数量。"""

        _require_topic(topic)
        with self._lock:
            self._latest[topic] = message
            self._topics.add(topic)
            targets = list(self._subscriptions.get(topic, ()))

        delivered = 0
        for subscriber in targets:
            if self._deliver(subscriber, topic, message):
                delivered += 1
        LOGGER.debug("Published message to topic %s (%d/%d): %s", topic, delivered, len(targets), message)
        return delivered

    def _deliver(self, subscriber: Receiver, topic: str, message: Any) -> bool:
        try:
            subscriber.receive(topic, message)
        except Exception:
            LOGGER.exception("Delivery to %s on topic %s failed", getattr(subscriber, "id", subscriber), topic)
            return False
        return True

    def get_subscribers(self, topic: str) -> List[str]:
        """返回主题订阅者 ID 的快照；未知主题返回空列表。"""

        with self._lock:
            return [subscriber.id for subscriber in self._subscriptions.get(topic, ())]

    def get_all_topics(self) -> Set[str]:
        """所有曾被订阅或发布过的主题。"""

        with self._lock:
            return set(self._topics)

    def get_latest(self, topic: str) -> Optional[Any]:
        with self._lock:
            return self._latest.get(topic)


__all__ = ["MessageBus", "Receiver"]
