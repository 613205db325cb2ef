"""Text rendering of price updates for logs and the console."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from core.events import PriceUpdate, ReceivedMessage


def _timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime("%H:%M:%S")


def format_change(change: float) -> str:
    sign = "+" if change >= 0 else ""
    return f"{sign}{change:.2f}%"


def format_update(topic: str, message: Any) -> str:
    if not isinstance(message, PriceUpdate):
        return f"{topic}: {message}"
    return f"{topic} ${message.price:.2f} ({format_change(message.change_percent)}) @ {_timestamp(message.timestamp)} UTC"


def format_history(records: Iterable[ReceivedMessage]) -> str:
    lines = [f"- {format_update(record.topic, record.message)}" for record in records]
    return "\n".join(lines) or "无"


__all__ = ["format_change", "format_history", "format_update"]
