import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from .config import get_config
from .data.models import Insight
from .monitor import create_live_monitor, create_simulated_monitor

logger = logging.getLogger("pulsewatch")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )


def _log_insights(insights: List[Insight]) -> None:
    for insight in insights:
        logger.info("%-20s %-8s %3d  %s", insight.metric, insight.severity.value, insight.score, insight.message)


def _log_connection(is_connected: bool, switched_to_simulation: bool) -> None:
    if switched_to_simulation:
        logger.warning("Device lost; switched to simulated data")
    else:
        logger.info("Device %s", "connected" if is_connected else "disconnected")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Wearable vital-sign monitor")
    parser.add_argument("--address", help="BLE address of the sensor (default: scan)")
    parser.add_argument("--simulate", action="store_true", help="skip the live device and use simulated data")
    parser.add_argument("--duration", type=float, default=None, help="seconds to run (default: until Ctrl-C)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config()
    configure_logging(args.log_level or config.log_level)

    if args.address:
        config = replace(config, device_address=args.address)

    monitor = create_simulated_monitor(config) if args.simulate else create_live_monitor(config)
    monitor.on_insights = _log_insights
    monitor.on_connection_change = _log_connection

    try:
        asyncio.run(monitor.run(duration=args.duration))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
