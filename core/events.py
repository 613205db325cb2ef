"""事件定义：价格更新消息与订阅者接收记录。

消息一旦创建即不可变，发布者、总线与订阅者之间只传递这些共享类型而非零散的字典。
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class PriceUpdate:
    """单个主题（股票代码）的一次价格更新。"""

    topic: str
    price: float
    change_percent: float
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        """输出与前端载荷一致的字典结构。"""

        return {
            "symbol": self.topic,
            "price": self.price,
            "change": self.change_percent,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class ReceivedMessage:
    """订阅者历史中的一条记录。"""

    topic: str
    message: Any
    received_at: datetime


__all__ = ["PriceUpdate", "ReceivedMessage", "utc_now"]
