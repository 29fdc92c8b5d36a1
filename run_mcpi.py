#!/usr/bin/env python3
"""
Live Monte-Carlo Pi Service - Entry Point
=========================================

This script runs one estimation of pi with the mcpi sampling service:
- Connects to the MQTT broker (snapshots + control plane)
- Waits for a viewer to announce itself (`mcpi-cli view`)
- Plots uniform random points in the unit square
- Publishes a rendered snapshot at every log-decade step
- Prints the final estimate and the elapsed time

Usage:
    python run_mcpi.py --config config/mcpi_service/service_config.yaml --samples 1000000

Architecture:
    - PlotService: Ingestion facade (mcpi_service)
    - MQTTControlPlane: Command handler (mcpi_control)
    - SnapshotPublisher: Publishes snapshot messages (mcpi_mqtt)

Lifecycle:
    1. Load configuration from YAML
    2. Setup logging (console + file)
    3. Create control plane and publisher
    4. Create and start PlotService
    5. Wait for a viewer
    6. Plot samples
    7. Quit (final snapshot, settle, disconnect)

Signals:
    - SIGTERM / SIGINT (Ctrl+C): stop plotting and quit gracefully

Logs:
    - Console: INFO level
    - File: logs/mcpi.log (INFO level)
"""

import argparse
import signal
import sys
import logging
from pathlib import Path
from typing import Optional

import numpy as np

from mcpi_service import PlotService, ServiceConfig
from mcpi_control import MQTTControlPlane
from mcpi_mqtt import SnapshotPublisher, create_logger


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging for the sampling service.

    Args:
        log_file: Optional path to log file (default: logs/mcpi.log)

    Returns:
        Logger instance for the entry point
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
# Main Application
# ─────────────────────────────────────────────────────────────────────────────

class MCPIApp:
    """
    Main application wrapper for PlotService.

    Handles:
    - Configuration loading
    - Component initialization (control plane, publisher)
    - Signal handling (SIGTERM, SIGINT)
    - Graceful shutdown
    """

    # Seconds between checks of the shutdown flag while blocked
    POLL_INTERVAL = 0.5

    def __init__(
        self,
        config_path: Path,
        samples: int,
        seed: Optional[int] = None,
        log_file: Optional[Path] = None
    ):
        self.config_path = config_path
        self.samples = samples
        self.seed = seed
        self.log_file = log_file
        self.logger = setup_logging(log_file)

        # Components (initialized in setup())
        self.config: Optional[ServiceConfig] = None
        self.control_plane: Optional[MQTTControlPlane] = None
        self.snapshot_publisher: Optional[SnapshotPublisher] = None
        self.service: Optional[PlotService] = None

        self._shutdown_requested = False

    def setup(self):
        """
        Setup all components.

        Steps:
        1. Load configuration from YAML
        2. Create structured logger for the MQTT publisher
        3. Create control plane
        4. Create snapshot publisher
        5. Create PlotService
        """
        self.logger.info("=" * 80)
        self.logger.info("🚀 mcpi - Live Monte-Carlo Pi - Starting")
        self.logger.info("=" * 80)

        self.logger.info(f"📄 Loading configuration: {self.config_path}")
        self.config = ServiceConfig.from_yaml(self.config_path)
        self.logger.info(f"✅ Configuration loaded (service_id={self.config.service_id})")

        mqtt_config = self.config.mqtt_config
        mqtt_logger = create_logger(component="mqtt_publisher")

        self.logger.info("🔌 Creating MQTT control plane")
        self.control_plane = MQTTControlPlane(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            command_topic=self.config.command_topic,
            status_topic=self.config.status_topic,
            client_id=f"mcpi_{self.config.service_id}",
            username=mqtt_config.username,
            password=mqtt_config.password,
        )

        self.logger.info("📤 Creating snapshot publisher")
        self.snapshot_publisher = SnapshotPublisher(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            topic=self.config.snapshot_topic,
            logger=mqtt_logger,
            client_id=f"publisher_snapshots_{self.config.service_id}",
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )
        self.logger.info(f"  - Snapshot topic: {self.config.snapshot_topic}")
        self.logger.info(f"  - Command topic:  {self.config.command_topic}")

        self.service = PlotService(
            config=self.config,
            control_plane=self.control_plane,
            snapshot_publisher=self.snapshot_publisher,
        )
        self.logger.info("=" * 80)

    def run(self) -> Optional[float]:
        """
        Wait for a viewer, plot the samples and quit.

        Returns:
            Elapsed seconds reported by the service, or None if shut down
            before sampling started
        """
        if not self.service:
            raise RuntimeError("Service not initialized. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        self.service.start()

        while not self._shutdown_requested:
            if self.service.wait_ready(timeout=self.POLL_INTERVAL):
                break

        rng = np.random.default_rng(self.seed)
        self.logger.info(f"🎲 Plotting {self.samples} samples (seed={self.seed})")

        plotted = 0
        batch = 10_000
        while plotted < self.samples and not self._shutdown_requested:
            count = min(batch, self.samples - plotted)
            for x, y in rng.random((count, 2)).tolist():
                self.service.plot(x, y)
            plotted += count

        if self._shutdown_requested:
            self.logger.info(f"⚠️  Interrupted after {plotted} samples")

        elapsed = self.service.quit()

        self.logger.info("=" * 80)
        self.logger.info(f"✅ {self.service.coordinator.n} samples in {elapsed:.3f}s")
        self.logger.info("=" * 80)
        return elapsed

    def _signal_handler(self, signum, frame):
        signal_name = signal.Signals(signum).name
        if self._shutdown_requested:
            self.logger.warning(f"⚠️  Received {signal_name} again, shutdown already in progress")
            return
        self.logger.info(f"⚠️  Received signal {signal_name} ({signum}), finishing")
        self._shutdown_requested = True


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args():
    parser = argparse.ArgumentParser(
        description="mcpi - Live Monte-Carlo estimation of pi over MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One million samples, viewer required
  python run_mcpi.py --config config/mcpi_service/service_config.yaml

  # Reproducible run
  python run_mcpi.py --config config/mcpi_service/service_config.yaml --samples 10000 --seed 42

  # Console logging only
  python run_mcpi.py --config config/mcpi_service/service_config.yaml --no-log-file

In another terminal, start a viewer first:
  mcpi-cli view --output latest.png
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        required=True,
        help='Path to service configuration YAML file'
    )

    parser.add_argument(
        '--samples',
        type=int,
        default=1_000_000,
        help='Number of samples to plot (default: 1000000)'
    )

    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed (default: nondeterministic)'
    )

    parser.add_argument(
        '--log-file',
        type=Path,
        default=Path('logs/mcpi.log'),
        help='Path to log file (default: logs/mcpi.log)'
    )

    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Disable file logging (console only)'
    )

    return parser.parse_args()


def main():
    """
    Main entry point.

    Workflow:
    1. Parse CLI arguments
    2. Create MCPIApp
    3. Setup components
    4. Run (blocks until all samples are plotted)
    """
    args = parse_args()

    log_file = None if args.no_log_file else args.log_file

    if not args.config.exists():
        print(f"❌ Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    if args.samples < 0:
        print(f"❌ Error: --samples must be >= 0, got {args.samples}", file=sys.stderr)
        sys.exit(1)

    app = MCPIApp(
        config_path=args.config,
        samples=args.samples,
        seed=args.seed,
        log_file=log_file
    )

    try:
        app.setup()
        app.run()
    except Exception as e:
        print(f"❌ Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
