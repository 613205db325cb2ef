from __future__ import annotations

"""Main entry point running the simulated price feed."""

import argparse
import logging
import time
from pathlib import Path
from typing import Iterable, Optional

from alerts.formatting import format_history
from core.config_loader import load_config
from core.config_models import SimulatorConfig
from core.event_bus import MessageBus
from demo.market_session import MarketSession

LOGGER = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Stock price publish/subscribe simulator")
    parser.add_argument("--config", type=Path, default=None, help="Path to config YAML")
    parser.add_argument("--once", action="store_true", help="Publish a single update per symbol")
    parser.add_argument("--loop", action="store_true", help="Publish the selected symbol until interrupted")
    parser.add_argument("--duration", type=float, default=None, help="Stop the loop after N seconds")
    parser.add_argument("--subscribers", type=int, default=1, help="Number of subscribers to start with")
    parser.add_argument("--symbol", default=None, help="Symbol to publish (defaults to config)")
    return parser.parse_args(None if argv is None else list(argv))


def build_session(config: SimulatorConfig, subscribers: int, symbol: Optional[str] = None) -> MarketSession:
    session = MarketSession(MessageBus(), config)
    if symbol:
        session.select_symbol(symbol)
    for _ in range(subscribers):
        session.add_subscriber()
    return session


def report(session: MarketSession) -> None:
    for subscriber in session.subscribers:
        topics = ", ".join(session.subscriptions_of(subscriber.id)) or "None"
        LOGGER.info(
            "%s (%s) subscriptions: %s\n%s",
            subscriber.name,
            subscriber.id,
            topics,
            format_history(subscriber.get_message_history()),
        )


def run_once(session: MarketSession) -> None:
    for publisher in session.publishers.values():
        publisher.publish_update()
    report(session)


def run_loop(session: MarketSession, duration: Optional[float]) -> None:
    session.start()
    try:
        if duration is None:
            while True:
                time.sleep(1)
        else:
            time.sleep(duration)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user.")
    finally:
        session.shutdown()
    report(session)


def main(argv: Optional[Iterable[str]] = None) -> None:
    args = parse_args(argv)
    if args.once and args.loop:
        raise SystemExit("--once and --loop cannot be combined")
    if not (args.once or args.loop):
        raise SystemExit("Specify --once or --loop")
    if args.subscribers < 0:
        raise SystemExit("--subscribers must not be negative")

    config = load_config(config_path=args.config)
    configure_logging(config.log_level)
    try:
        session = build_session(config, args.subscribers, args.symbol)
    except KeyError as exc:
        raise SystemExit(str(exc)) from exc

    if args.once:
        run_once(session)
    else:
        run_loop(session, args.duration)


if __name__ == "__main__":
    main()
