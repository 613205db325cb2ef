"""Configuration loader for the price simulator."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from dotenv import load_dotenv

from core.config_models import SimulatorConfig

ENV_OVERRIDES = {
    "PUBSUB_INTERVAL_MS": "interval_ms",
    "PUBSUB_STARTING_PRICE": "starting_price",
    "PUBSUB_SEED": "seed",
    "PUBSUB_LOG_LEVEL": "log_level",
}


def _apply_env(data: Dict[str, object]) -> Dict[str, object]:
    merged = dict(data)
    for env_name, key in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            merged[key] = value
    return merged


def load_config(
    config_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
) -> SimulatorConfig:
    """Load simulator configuration from YAML and environment variables.

    A missing config file is not an error; defaults are used and environment
    overrides still apply.
    """

    base_path = Path(__file__).resolve().parents[1]
    if config_path is None:
        config_path = base_path / "config.yaml"
    if env_path is None:
        default_env = base_path / ".env"
        if default_env.exists():
            env_path = default_env

    if env_path is not None:
        load_dotenv(dotenv_path=env_path, override=False)

    data: Dict[str, object] = {}
    if Path(config_path).exists():
        with open(config_path, "r", encoding="utf-8") as fp:
            loaded = yaml.safe_load(fp) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"{config_path} must contain a mapping at the top level")
        data = loaded

    return SimulatorConfig.from_dict(_apply_env(data))


__all__ = ["ENV_OVERRIDES", "load_config"]
