#!/usr/bin/env python3
"""
Presence Counter Service - Entry Point
======================================

This script starts the counting service, which:
- Listens for viewer presence announcements on the MQTT broker
- Counts currently connected viewers (Last Will covers abrupt drops)
- Pushes the online count to every viewer on every change

Usage:
    python run_counter.py --broker localhost --port 1883
    python run_counter.py --config config/counter.yaml

Architecture:
    - CountingService: online count + broadcast (presence_counter)
    - PresenceServer: MQTT adapter (presence_counter)
    - StructuredLogger: JSON event logs (presence_mqtt)

Lifecycle:
    1. Load configuration (YAML and/or CLI flags)
    2. Setup logging (console + file)
    3. Create counting service and MQTT adapter
    4. Connect to broker
    5. Wait for stop signal (Ctrl+C or SIGTERM)
    6. Graceful shutdown

Port:
    --port, else the PORT environment variable, else the config file, else 1883.
"""

import argparse
import dataclasses
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from presence_counter import CounterConfig, CountingService, PresenceServer
from presence_mqtt import create_logger


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging for the counting service.

    Args:
        log_file: Optional path to log file

    Returns:
        Logger instance for the service
    """
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            *(
                [logging.FileHandler(log_file)]
                if log_file
                else []
            )
        ]
    )

    return logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Main Service
# ─────────────────────────────────────────────────────────────────────────────

class CounterApp:
    """
    Application wrapper for the counting service.

    Handles:
    - Component initialization
    - Signal handling (SIGTERM, SIGINT)
    - Graceful shutdown
    """

    def __init__(self, config: CounterConfig, log_file: Optional[Path] = None):
        self.config = config
        self.logger = setup_logging(log_file)

        # Components (initialized in setup())
        self.service: Optional[CountingService] = None
        self.server: Optional[PresenceServer] = None

        self._stop = threading.Event()
        self._shutdown_requested = False

    def setup(self, timeout: float = 10.0) -> None:
        """
        Create components and connect to the broker.

        Raises:
            ConnectionError: If the broker cannot be reached within timeout
        """
        mqtt_config = self.config.mqtt_config
        self.logger.info("=" * 80)
        self.logger.info("Presence Counter - Starting")
        self.logger.info("=" * 80)

        events = create_logger(component="counter")
        self.service = CountingService(logger=events)
        self.server = PresenceServer(
            config=mqtt_config,
            service=self.service,
            logger=events,
            client_id=self.config.service_id,
        )

        self.logger.info(f"Connecting to MQTT broker {mqtt_config.address}")
        if not self.server.connect(timeout=timeout):
            # Stop the background retries before giving up
            self.server.disconnect()
            raise ConnectionError(f"Cannot connect to MQTT broker at {mqtt_config.address}")

        self.logger.info(f"  - Presence topic: {mqtt_config.presence_wildcard}")
        self.logger.info(f"  - Count topic:    {mqtt_config.count_topic('<client_id>')}")
        self.logger.info("=" * 80)

    def run(self) -> None:
        """Block until shutdown is requested."""
        if not self.server:
            raise RuntimeError("Service not initialized. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        self.logger.info("Service started, press Ctrl+C to stop")
        try:
            while not self._stop.wait(timeout=1.0):
                pass
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        if self._shutdown_requested:
            return
        self._shutdown_requested = True

        self.logger.info("Shutting down counting service")
        if self.server:
            self.server.disconnect()
            self.logger.info(f"Final stats: {self.server.get_stats()}")
        self.logger.info("Shutdown complete")

    def _signal_handler(self, signum, frame):
        self.logger.info(f"Received signal {signal.Signals(signum).name} ({signum})")
        self._stop.set()


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Presence Counter - counts connected viewers over MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Local broker, default topics
  python run_counter.py --broker localhost

  # Port from the environment
  PORT=1884 python run_counter.py --broker localhost

  # Full configuration
  python run_counter.py --config config/counter.yaml
        """
    )

    parser.add_argument('--config', type=Path, help='Path to counter configuration YAML file')
    parser.add_argument('--broker', help='MQTT broker host')
    parser.add_argument('--port', type=int, help='MQTT broker port (default: $PORT or 1883)')
    parser.add_argument('--topic-prefix', help='Topic prefix (default: presence_map)')
    parser.add_argument(
        '--log-file',
        type=Path,
        default=Path('logs/counter.log'),
        help='Path to log file (default: logs/counter.log)'
    )
    parser.add_argument('--no-log-file', action='store_true', help='Console logging only')

    return parser.parse_args(argv)


def resolve_port(cli_port: Optional[int], configured: int, environ=os.environ) -> int:
    """--port wins, then $PORT, then the configured port."""
    if cli_port is not None:
        return cli_port
    env_port = environ.get("PORT")
    if env_port:
        try:
            return int(env_port)
        except ValueError:
            raise ValueError(f"PORT must be an integer, got {env_port!r}")
    return configured


def build_config(args, environ=os.environ) -> CounterConfig:
    """Merge the optional YAML file with CLI overrides."""
    config = CounterConfig.from_yaml(args.config) if args.config else CounterConfig()
    mqtt_config = config.mqtt_config

    overrides = {'port': resolve_port(args.port, mqtt_config.port, environ)}
    if args.broker:
        overrides['broker'] = args.broker
    if args.topic_prefix:
        overrides['topic_prefix'] = args.topic_prefix

    return dataclasses.replace(config, mqtt_config=dataclasses.replace(mqtt_config, **overrides))


def main(argv=None):
    args = parse_args(argv)
    log_file = None if args.no_log_file else args.log_file

    if args.config and not args.config.exists():
        print(f"Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    try:
        config = build_config(args)
    except (ValueError, TypeError) as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    app = CounterApp(config=config, log_file=log_file)
    try:
        app.setup()
        app.run()
    except Exception as e:
        app.logger.error(f"Fatal error: {e}", exc_info=True)
        app.shutdown()
        sys.exit(1)


if __name__ == '__main__':
    main()
