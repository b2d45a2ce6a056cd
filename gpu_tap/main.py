from __future__ import annotations

import argparse
import logging
import signal
import time

from gpu_tap.beater import GpuTap
from gpu_tap.config import load_config
from gpu_tap.logging_utils import configure_logging, resolve_log_level
from gpu_tap.mqtt_client import MqttPublisher
from gpu_tap.publisher import LogPublisher, Publisher


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="gpu-tap NVIDIA GPU metrics collector")
    parser.add_argument(
        "--config",
        default="config/example.cfg",
        help="Path to CFG configuration file",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable debug logging (-v) or trace logging (-vv)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log events without publishing to MQTT",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll cycle, then exit",
    )
    parser.add_argument(
        "--publish-status",
        metavar="STATUS",
        help="Publish a status (e.g., 'sleeping', 'online') to the availability topic and exit. "
             "Useful for system sleep/wake hooks.",
    )
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    level = resolve_log_level(args.verbose, args.log_level)
    configure_logging(level)
    logger = logging.getLogger("gpu_tap")
    config = load_config(args.config)

    if args.publish_status:
        status_publisher = MqttPublisher(config.mqtt)
        status_publisher.connect()
        # Wait briefly for connection to establish
        time.sleep(0.5)
        if status_publisher.connected:
            status_publisher.publish_status(args.publish_status)
            # Wait for message delivery
            time.sleep(0.5)
        else:
            logger.error("Failed to connect to MQTT broker")
        status_publisher.disconnect()
        return

    publisher: Publisher = LogPublisher() if args.dry_run else MqttPublisher(config.mqtt)
    tap = GpuTap(config.collector, config.publish, publisher)

    if args.once:
        logger.info("Single-run mode enabled; exiting after one cycle.")
        publisher.connect()
        try:
            tap.run_cycle()
        finally:
            publisher.disconnect()
        return

    def handle_signal(signum: int, frame: object) -> None:
        logger.debug("Received signal %s", signum)
        tap.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)
    tap.run()


if __name__ == "__main__":
    main()
