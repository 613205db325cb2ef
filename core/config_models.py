"""行情模拟的配置模型，约束输入最小化并保留扩展性。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

DEFAULT_SYMBOLS = ["AAPL", "GOOGL", "MSFT", "TSLA", "AMZN"]

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(slots=True)
class SimulatorConfig:
    """发布周期、初始价格与股票列表。"""

    symbols: List[str] = field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    default_symbol: Optional[str] = None
    interval_ms: int = 2000
    starting_price: float = 100.0
    seed: Optional[int] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not isinstance(self.symbols, list):
            raise ValueError("symbols must be a list")
        if not self.symbols or any(not symbol for symbol in self.symbols):
            raise ValueError("symbols must be a non-empty list of non-empty strings")
        if len(set(self.symbols)) != len(self.symbols):
            raise ValueError("symbols must be unique")
        if self.default_symbol is None:
            self.default_symbol = self.symbols[0]
        elif self.default_symbol not in self.symbols:
            raise ValueError(f"default_symbol {self.default_symbol!r} is not in symbols")
        if self.interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if self.starting_price < 0:
            raise ValueError("starting_price must not be negative")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"unknown log_level: {self.log_level}")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "SimulatorConfig":
        if not data:
            return cls()
        payload = dict(data)
        if "symbols" in payload:
            if not isinstance(payload["symbols"], (list, tuple)):
                raise ValueError("symbols must be a list")
            payload["symbols"] = [str(symbol) for symbol in payload["symbols"]]
        if "interval_ms" in payload:
            payload["interval_ms"] = int(payload["interval_ms"])
        if "starting_price" in payload:
            payload["starting_price"] = float(payload["starting_price"])
        if payload.get("seed") is not None:
            payload["seed"] = int(payload["seed"])
        return cls(**payload)


__all__ = ["DEFAULT_SYMBOLS", "SimulatorConfig"]
