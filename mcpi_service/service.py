"""
Plot Service - ingestion facade of the live Monte-Carlo sampler.

This module provides the PlotService class, the only surface producers talk
to: wait for a viewer, plot points, quit. Behind it sit the Coordinator
(single writer of the sampler state), the SnapshotBus, a forwarder thread
that ships snapshots over MQTT, and the MQTT control plane.

Threading Model:
- Caller threads: plot() from any number of producers
- Coordinator Thread: classifies, accumulates, renders (mcpi_engine)
- Snapshot Forwarder Thread (ours): drains one bus subscription into MQTT
- Control Plane Thread (paho-mqtt internal, command handlers)
- Snapshot Publisher Thread (paho-mqtt internal)
"""

import threading
import time
import logging
from typing import Dict, Optional

from mcpi_engine import (
    Coordinator,
    Sample,
    SnapshotBus,
    SnapshotRenderer,
    SnapshotStreamClosed,
)
from mcpi_mqtt import SnapshotMessage
from mcpi_service.config import ServiceConfig

logger = logging.getLogger(__name__)


class PlotService:
    """
    Live pi-estimation service.

    Lifecycle:
    1. start(): connect MQTT, register commands, start worker threads
    2. wait_ready(): block until a viewer sends `viewer_ready`
    3. plot(x, y): any number of times, from any thread
    4. quit(): final snapshot, settle, disconnect, return elapsed seconds

    Thread Safety:
    - plot(): safe from any thread (FIFO handoff to the Coordinator)
    - wait_ready() / quit(): meant for the driving thread
    - command handlers: Control Plane Thread, only touch Events and
      read-only counters

    Usage:
        config = ServiceConfig.from_yaml("service_config.yaml")
        control_plane = MQTTControlPlane(...)
        snapshot_publisher = SnapshotPublisher(...)

        service = PlotService(config, control_plane, snapshot_publisher)
        service.start()
        service.wait_ready()
        for x, y in points:
            service.plot(x, y)
        elapsed = service.quit()
    """

    def __init__(
        self,
        config: ServiceConfig,
        control_plane,  # MQTTControlPlane
        snapshot_publisher,  # SnapshotPublisher
        renderer: Optional[SnapshotRenderer] = None,
    ):
        """
        Initialize plot service.

        Args:
            config: Service configuration
            control_plane: MQTT control plane for commands and status
            snapshot_publisher: Publisher for snapshot messages
            renderer: Snapshot renderer (default: built from render_config)
        """
        self.config = config
        self.control_plane = control_plane
        self.snapshot_publisher = snapshot_publisher

        render_config = config.render_config
        if renderer is None:
            renderer = SnapshotRenderer(
                canvas_size=render_config.canvas_size,
                point_radius=render_config.point_radius,
            )

        self.bus = SnapshotBus()
        self.coordinator = Coordinator(
            renderer,
            self.bus,
            render_cap=render_config.max_points,
            settle_delay=render_config.settle_delay,
        )

        # Snapshot forwarding
        self._subscription = None
        self.forwarder_thread: Optional[threading.Thread] = None
        self._forwarded = 0
        self._last_pi: Optional[float] = None

        # Lifecycle state
        self._ready = threading.Event()
        self._lifecycle_lock = threading.Lock()
        self._started = False
        self._start_time: Optional[float] = None
        self._ready_time: Optional[float] = None
        self._waiting_logged = False
        self._elapsed: Optional[float] = None

        # Registered once, so a start() retried after a broker outage is safe
        self._setup_control_handlers()

        logger.info(f"PlotService initialized for service_id={config.service_id}")

    def _setup_control_handlers(self) -> None:
        """Register command handlers with the control plane."""
        registry = self.control_plane.command_registry

        registry.register(
            "viewer_ready",
            self._handle_viewer_ready,
            "A viewer is subscribed to snapshots"
        )
        registry.register(
            "status",
            self._handle_status,
            "Publish a status report"
        )

        logger.info("Control handlers registered")

    def start(self) -> None:
        """
        Start the service (non-blocking).

        Lifecycle:
        1. Connect control plane (commands were registered in __init__)
        2. Connect snapshot publisher
        3. Start snapshot forwarder thread
        4. Start Coordinator thread

        Raises:
            RuntimeError: If the MQTT broker cannot be reached
        """
        with self._lifecycle_lock:
            if self._started:
                logger.warning("Service already started")
                return

            logger.info("Starting plot service")

            if not self.control_plane.connect(timeout=5.0):
                raise RuntimeError("Failed to connect to MQTT broker (control plane)")

            if not self.snapshot_publisher.connect():
                self.control_plane.disconnect()
                raise RuntimeError("Failed to connect to MQTT broker (snapshot publisher)")

            # Subscribe before the Coordinator starts so no snapshot is missed
            self._subscription = self.bus.subscribe()
            self.forwarder_thread = threading.Thread(
                target=self._forward_loop,
                name="SnapshotForwarderThread",
                daemon=True
            )
            self.forwarder_thread.start()
            logger.info("Snapshot forwarder thread started")

            self.coordinator.start()

            self._started = True
            self._start_time = time.monotonic()

        self.control_plane.publish_status("running")
        logger.info("✅ Plot service started")

        if not self.config.wait_for_viewer:
            self._mark_ready("headless")

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until a viewer has announced itself.

        Returns immediately once readiness was signalled. The runtime
        stopwatch starts when this first returns True.

        Args:
            timeout: Seconds to wait (None waits indefinitely)

        Returns:
            True if ready, False on timeout

        Raises:
            RuntimeError: If called before start()
        """
        if not self._started:
            raise RuntimeError("Service not started")

        if not self._ready.is_set() and not self._waiting_logged:
            self._waiting_logged = True
            logger.info("⏳ Waiting for a viewer (send 'viewer_ready')")

        if not self._ready.wait(timeout):
            logger.debug(f"No viewer after {timeout}s")
            return False

        if self._ready_time is None:
            self._ready_time = time.monotonic()
            logger.info("▶️ Viewer ready, sampling started")
        return True

    def plot(self, x: float, y: float) -> None:
        """
        Submit one point. Returns once the point is queued.

        Raises:
            CoordinatorClosedError: If quit() was already called
        """
        self.coordinator.enqueue(Sample(float(x), float(y)))

    def quit(self) -> float:
        """
        Finish the run.

        Processes every queued point, publishes the final snapshot, lets
        viewers settle, then disconnects. A second call only warns.

        Returns:
            Seconds elapsed since wait_ready() returned (or since start()
            when wait_ready() was never called)

        Raises:
            RuntimeError: If called before start()
        """
        with self._lifecycle_lock:
            if self._elapsed is not None:
                logger.warning("quit() already called")
                return self._elapsed

            if not self._started:
                raise RuntimeError("Service not started")

            logger.info("Stopping plot service")

            # Drains the inbox, renders the final snapshot, closes the bus
            self.coordinator.request_finalize()

            if self.forwarder_thread:
                self.forwarder_thread.join(timeout=5.0)
                if self.forwarder_thread.is_alive():
                    logger.warning("Snapshot forwarder did not stop in time")
                else:
                    logger.info("Snapshot forwarder thread stopped")

            self.snapshot_publisher.disconnect()

            self.control_plane.publish_status("stopped", self._report())
            self.control_plane.disconnect()

            origin = self._ready_time if self._ready_time is not None else self._start_time
            self._elapsed = time.monotonic() - origin

        logger.info(
            f"✅ Plot service stopped: n={self.coordinator.n}, "
            f"renders={self.coordinator.render_count}, pi={self._last_pi}"
        )
        logger.info(f"⏱️ Total runtime: {self._elapsed:.3f}s")
        return self._elapsed

    def _forward_loop(self) -> None:
        """
        Snapshot forwarder thread loop.

        Takes the newest snapshot from the bus subscription and publishes it
        to MQTT until the bus reaches end-of-stream.
        """
        logger.info("Snapshot forwarder loop started")

        while True:
            try:
                snapshot = self._subscription.get()
            except SnapshotStreamClosed:
                break

            if snapshot is None:
                continue

            try:
                message = SnapshotMessage.from_snapshot(snapshot, self.config.service_id)
                if self.snapshot_publisher.publish_snapshot(message):
                    self._forwarded += 1
                self._last_pi = snapshot.pi_estimate
            except Exception as e:
                logger.error(f"Error forwarding snapshot n={snapshot.n}: {e}", exc_info=True)

        logger.info(
            f"Snapshot forwarder loop stopped ({self._forwarded} forwarded, "
            f"{self._subscription.dropped} superseded)"
        )

    def _mark_ready(self, source: str) -> None:
        if self._ready.is_set():
            logger.debug(f"Already ready, ignoring readiness from {source}")
            return
        self._ready.set()
        self.control_plane.publish_status("ready", {"source": source})
        logger.info(f"✅ Ready (source={source})")

    def _report(self) -> Dict:
        return {
            "n": self.coordinator.n,
            "render_count": self.coordinator.render_count,
            "ready": self._ready.is_set(),
            "snapshots_forwarded": self._forwarded,
            "pi_estimate": self._last_pi,
        }

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def is_started(self) -> bool:
        return self._started

    # ─────────────────────────────────────────────────────────────────────
    # Command Handlers (called by Control Plane Thread)
    # ─────────────────────────────────────────────────────────────────────

    def _handle_viewer_ready(self, command: Dict):
        """Handle viewer_ready command (Control Plane Thread)."""
        self._mark_ready(str(command.get("viewer_id", "viewer")))

    def _handle_status(self, command: Dict):
        """Handle status command (Control Plane Thread)."""
        report = self._report()
        self.control_plane.publish_status("status_report", report)
        logger.info(f"Status report: {report}")
