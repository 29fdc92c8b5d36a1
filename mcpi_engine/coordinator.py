"""
Sample Coordinator - single owner of the accumulated samples.

This module provides the Coordinator, which serializes concurrent sample
submissions through one inbox, classifies and accumulates them, applies the
snapshot cadence policy and hands rendered snapshots to the SnapshotBus.

Threading Model:
- Producer threads: any number, call enqueue() (non-blocking handoff)
- Coordinator Thread: sole writer of n and both ClassifiedSets; runs
  submit()/finalize() and renders on this thread
- Subscribers: drain their own mailboxes, never block the Coordinator

Lifecycle:
    coordinator = Coordinator(renderer, bus)
    coordinator.start()
    coordinator.enqueue(Sample(0.3, 0.4))   # from any thread
    coordinator.request_finalize()           # blocks until drained and closed
"""

import logging
import queue
import threading
from typing import Callable, Optional

from mcpi_engine.analytics.cadence import should_snapshot
from mcpi_engine.analytics.samples import ClassifiedSet
from mcpi_engine.bus import SnapshotBus
from mcpi_engine.geometry.classifier import Region, Sample, SampleClassifier
from mcpi_engine.snapshot import Snapshot

logger = logging.getLogger(__name__)

# Inbox marker requesting finalize()
_FINALIZE = object()


class CoordinatorClosedError(RuntimeError):
    """Raised when a sample is enqueued after finalization was requested."""
    pass


class Coordinator:
    """
    Stateful heart of the sampler.

    Owns the running count and both classified sets, decides when a snapshot
    is due and publishes it on the bus.

    Thread Safety:
    - enqueue() / request_finalize(): safe from any thread
    - submit() / finalize(): Coordinator Thread only (or a caller that owns
      the instance exclusively, as the tests do)
    - inner / outer / n: written only by the Coordinator Thread
    """

    def __init__(
        self,
        renderer,  # SnapshotRenderer (or anything with render(n, inner, outer, cap))
        bus: SnapshotBus,
        render_cap: int = 1_000_000,
        settle_delay: float = 1.0,
        classifier: Optional[SampleClassifier] = None,
        cadence: Callable[[int], bool] = should_snapshot,
    ):
        """
        Initialize coordinator.

        Args:
            renderer: Snapshot renderer
            bus: Bus receiving every produced snapshot
            render_cap: Maximum samples drawn per set
            settle_delay: Upper bound (seconds) to wait for subscribers to
                drain the final snapshot before the bus closes
            classifier: Sample classifier (default: unit circle)
            cadence: Predicate on n deciding when to snapshot
        """
        if render_cap < 1:
            raise ValueError(f"render_cap must be >= 1, got {render_cap}")
        if settle_delay < 0:
            raise ValueError(f"settle_delay must be >= 0, got {settle_delay}")

        self.renderer = renderer
        self.bus = bus
        self.render_cap = render_cap
        self.settle_delay = settle_delay
        self.classifier = classifier or SampleClassifier()
        self.cadence = cadence

        # Accumulated state (Coordinator Thread only)
        self.inner = ClassifiedSet(Region.INNER)
        self.outer = ClassifiedSet(Region.OUTER)
        self._n = 0
        self._last_published_n: Optional[int] = None
        self._render_count = 0
        self._finalized = False

        # Internal protocol
        self._inbox: "queue.Queue" = queue.Queue()
        self._gate = threading.Lock()
        self._closing = threading.Event()
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ─────────────────────────────────────────────────────────────────────
    # Owner operations (Coordinator Thread)
    # ─────────────────────────────────────────────────────────────────────

    def submit(self, sample: Sample) -> Optional[Snapshot]:
        """
        Accept one sample and apply the cadence policy.

        Args:
            sample: Sample to classify and store

        Returns:
            The snapshot produced for this count, if any
        """
        if self._finalized:
            logger.warning(f"Sample {sample} submitted after finalize, ignored")
            return None

        region = self.classifier.classify(sample)
        if region is Region.INNER:
            self.inner.append(sample)
        else:
            self.outer.append(sample)
        self._n += 1

        if self.cadence(self._n):
            return self._produce()
        return None

    def finalize(self) -> Optional[Snapshot]:
        """
        Force a final snapshot, let subscribers settle and close the bus.

        The final render is skipped when the last published snapshot is
        already tagged with the current n. A second call is a no-op.

        Returns:
            The forced snapshot, or None if none was produced
        """
        if self._finalized:
            logger.warning(f"Coordinator already finalized (n={self._n})")
            return None
        self._finalized = True

        logger.info(f"final: n={self._n}")

        snapshot = None
        if self._last_published_n != self._n:
            snapshot = self._produce()

        if self.settle_delay > 0 and not self.bus.wait_drained(timeout=self.settle_delay):
            logger.info(
                f"Settle delay ({self.settle_delay}s) elapsed with undrained subscribers"
            )

        self.bus.close()
        return snapshot

    def _produce(self) -> Optional[Snapshot]:
        """Render the current state and publish it. Render failures are logged."""
        try:
            snapshot = self.renderer.render(
                self._n, self.inner, self.outer, self.render_cap
            )
        except Exception as e:
            logger.error(f"Snapshot render failed at n={self._n}: {e}", exc_info=True)
            return None

        self._render_count += 1
        self._last_published_n = self._n
        subscribers = self.bus.publish(snapshot)

        logger.debug(
            f"Snapshot n={self._n} pi={snapshot.pi_estimate} "
            f"published to {subscribers} subscribers"
        )
        return snapshot

    # ─────────────────────────────────────────────────────────────────────
    # Internal protocol (any thread)
    # ─────────────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the Coordinator Thread."""
        with self._gate:
            if self._thread is not None:
                raise RuntimeError("Coordinator already started")
            self._spawn()

    def _spawn(self) -> None:
        # caller holds _gate
        self._thread = threading.Thread(
            target=self._run,
            name="CoordinatorThread",
            daemon=True,
        )
        self._thread.start()
        logger.info("Coordinator thread started")

    def enqueue(self, sample: Sample) -> None:
        """
        Hand a sample to the Coordinator Thread (FIFO, never blocks).

        Raises:
            CoordinatorClosedError: If finalization was already requested
        """
        with self._gate:
            if self._closing.is_set():
                raise CoordinatorClosedError(
                    f"Cannot enqueue {sample}: coordinator is finalizing"
                )
            self._inbox.put(sample)

    def request_finalize(self, timeout: Optional[float] = None) -> bool:
        """
        Ask the Coordinator Thread to finalize and wait for it.

        Every sample enqueued before this call is processed first.
        Safe to call more than once; later calls only wait.

        Args:
            timeout: Seconds to wait (None waits indefinitely)

        Returns:
            True once the queue is drained and the bus closed
        """
        with self._gate:
            if not self._closing.is_set():
                self._closing.set()
                self._inbox.put(_FINALIZE)
            if self._thread is None:
                self._spawn()

        return self._done.wait(timeout)

    def _run(self) -> None:
        """Coordinator Thread loop."""
        while True:
            item = self._inbox.get()
            if item is _FINALIZE:
                break
            try:
                self.submit(item)
            except Exception as e:
                logger.error(f"Rejected sample {item!r}: {e}", exc_info=True)

        try:
            self.finalize()
        finally:
            self._done.set()
            logger.info("Coordinator thread stopped")

    # ─────────────────────────────────────────────────────────────────────
    # Introspection
    # ─────────────────────────────────────────────────────────────────────

    @property
    def n(self) -> int:
        """Running count of accepted samples."""
        return self._n

    @property
    def render_count(self) -> int:
        """Number of successful renders so far."""
        return self._render_count

    @property
    def last_published_n(self) -> Optional[int]:
        return self._last_published_n

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    @property
    def is_done(self) -> bool:
        return self._done.is_set()
