"""
mcpi CLI - Main entry point.

Provides a command-line viewer for live snapshots and sends MQTT control
commands to the sampling service.
"""

import argparse
import logging
import os
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from mcpi_mqtt import SnapshotMessage, SnapshotSubscriber, create_logger

from .mqtt_client import MQTTCommandClient


def command_topic(service_id: str) -> str:
    return f"mcpi/control/{service_id}/commands"


def status_topic(service_id: str) -> str:
    return f"mcpi/control/{service_id}/status"


def snapshot_topic(service_id: str) -> str:
    return f"mcpi/data/snapshots/{service_id}"


def send_command(
    command: Dict[str, Any],
    service_id: str = "mcpi_01",
    broker: str = "localhost",
    port: int = 1883
) -> None:
    """
    Send command to the sampling service via MQTT.

    Args:
        command: Command dictionary
        service_id: Target service ID
        broker: MQTT broker host
        port: MQTT broker port
    """
    client = MQTTCommandClient(broker=broker, port=port)
    client.send_command(command_topic(service_id), command, qos=1)


def snapshot_writer(output: Path) -> Callable[[SnapshotMessage], None]:
    """
    Build an on_snapshot callback that keeps the latest image at `output`.

    The image is written next to the target and renamed over it, so a
    reader never sees a half-written file.
    """
    output.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = output.with_name(f".{output.name}.tmp")

    def on_snapshot(msg: SnapshotMessage) -> None:
        tmp_path.write_bytes(msg.image)
        os.replace(tmp_path, output)
        pi = "n/a" if msg.pi_estimate is None else f"{msg.pi_estimate:.6f}"
        print(f"📷 n={msg.n:<10} pi={pi}  → {output}")

    return on_snapshot


def status_watcher(done: threading.Event) -> Callable[[Dict[str, Any]], None]:
    """Build an on_status callback that sets `done` once the service stops."""

    def on_status(data: Dict[str, Any]) -> None:
        status = data.get("status")
        print(f"📡 status: {status}")
        if status == "stopped":
            done.set()

    return on_status


def view(
    service_id: str,
    broker: str,
    port: int,
    output: Path,
    timeout: Optional[float] = None
) -> int:
    """
    Watch live snapshots until the service reports 'stopped'.

    Returns:
        Process exit code
    """
    done = threading.Event()
    subscriber = SnapshotSubscriber(
        broker_host=broker,
        broker_port=port,
        snapshot_topic=snapshot_topic(service_id),
        status_topic=status_topic(service_id),
        on_snapshot=snapshot_writer(output),
        on_status=status_watcher(done),
        logger=create_logger("viewer", level=logging.WARNING),
        client_id=f"mcpi_viewer_{os.getpid()}",
    )

    if not subscriber.connect():
        print(f"❌ Unable to connect to MQTT broker at {broker}:{port}", file=sys.stderr)
        return 1
    subscriber.start()

    try:
        send_command(
            {"command": "viewer_ready", "viewer_id": subscriber.client_id},
            service_id, broker, port
        )
        if not done.wait(timeout):
            print(f"⚠️ Service did not stop within {timeout}s", file=sys.stderr)
            return 1
        return 0
    except KeyboardInterrupt:
        return 130
    finally:
        subscriber.stop()
        stats = subscriber.get_stats()
        print(f"👋 Viewer stopped ({stats['snapshots_received']} snapshots received)")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="mcpi CLI - Watch live snapshots and control the sampling service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Watch snapshots (announces the viewer, unblocks the service)
  mcpi-cli view --output latest.png

  # Unblock a waiting service without watching
  mcpi-cli ready

  # Ask the service for a status report
  mcpi-cli status
"""
    )

    # Global arguments
    parser.add_argument(
        "--service-id",
        default="mcpi_01",
        help="Target service ID (default: mcpi_01)"
    )
    parser.add_argument(
        "--broker",
        default="localhost",
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=1883,
        help="MQTT broker port (default: 1883)"
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    view_parser = subparsers.add_parser('view', help='Watch live snapshots')
    view_parser.add_argument(
        '--output',
        type=Path,
        default=Path("mcpi_snapshot.png"),
        help="Where the latest snapshot is written (default: mcpi_snapshot.png)"
    )
    view_parser.add_argument(
        '--timeout',
        type=float,
        default=None,
        help="Give up after this many seconds (default: wait indefinitely)"
    )

    subparsers.add_parser('ready', help='Announce a viewer (unblocks wait_ready)')
    subparsers.add_parser('status', help='Request a status report')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == 'view':
            sys.exit(view(args.service_id, args.broker, args.port, args.output, args.timeout))

        elif args.command == 'ready':
            command = {'command': 'viewer_ready', 'viewer_id': 'mcpi-cli'}
            send_command(command, args.service_id, args.broker, args.port)

        elif args.command == 'status':
            send_command({'command': 'status'}, args.service_id, args.broker, args.port)

    except (ConnectionError, RuntimeError, ValueError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
