"""
Snapshot Bus Module
===================

Fan-out delivery of snapshots from the Coordinator to live subscribers.

Design:
- One single-slot mailbox per subscriber (newest snapshot wins)
- publish() never waits on a subscriber: a pending snapshot is replaced,
  never queued behind
- Late subscribers only see snapshots published after they attach
- close() turns every mailbox into end-of-stream once drained

Threading:
- publish/close/subscribe may be called from any thread
- Each mailbox is guarded by its own Condition; the producer holds it
  only for the slot swap
"""

import logging
import threading
import time
from typing import Iterator, List, Optional

from mcpi_engine.snapshot import Snapshot

logger = logging.getLogger(__name__)


class SnapshotStreamClosed(Exception):
    """Raised by Subscription.get() once the bus is closed and the mailbox is empty."""
    pass


class Subscription:
    """
    Single-slot mailbox attached to a SnapshotBus.

    Single producer (the bus), single consumer (the subscriber).

    Usage:
        subscription = bus.subscribe()
        for snapshot in subscription:   # stops at end-of-stream
            show(snapshot)
    """

    def __init__(self, subscriber_id: int):
        self.subscriber_id = subscriber_id
        self._slot: Optional[Snapshot] = None
        self._closed = False
        self._cond = threading.Condition()
        self.delivered = 0
        self.dropped = 0

    def offer(self, snapshot: Snapshot) -> bool:
        """
        Put a snapshot in the mailbox, replacing any pending one.

        Returns:
            True if an undelivered snapshot was overwritten
        """
        with self._cond:
            if self._closed:
                return False
            replaced = self._slot is not None
            if replaced:
                self.dropped += 1
            self._slot = snapshot
            self._cond.notify_all()
        return replaced

    def get(self, timeout: Optional[float] = None) -> Optional[Snapshot]:
        """
        Take the pending snapshot, waiting for one if necessary.

        Args:
            timeout: Seconds to wait (None waits indefinitely)

        Returns:
            The newest undelivered snapshot, or None on timeout

        Raises:
            SnapshotStreamClosed: If the bus is closed and nothing is pending
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._slot is not None or self._closed, timeout):
                return None
            if self._slot is None:
                raise SnapshotStreamClosed(
                    f"Subscription {self.subscriber_id} reached end of stream"
                )
            snapshot = self._slot
            self._slot = None
            self.delivered += 1
            self._cond.notify_all()
            return snapshot

    def close(self) -> None:
        """Mark end-of-stream; a pending snapshot can still be drained."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def wait_empty(self, timeout: Optional[float] = None) -> bool:
        """Block until the pending snapshot has been taken."""
        with self._cond:
            return self._cond.wait_for(lambda: self._slot is None, timeout)

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._slot is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[Snapshot]:
        while True:
            try:
                snapshot = self.get()
            except SnapshotStreamClosed:
                return
            if snapshot is not None:
                yield snapshot

    def __repr__(self) -> str:
        return (
            f"Subscription(id={self.subscriber_id}, delivered={self.delivered}, "
            f"dropped={self.dropped}, closed={self._closed})"
        )


class SnapshotBus:
    """
    Fan-out channel with overwrite-on-full subscriber mailboxes.

    Example:
        bus = SnapshotBus()
        sub = bus.subscribe()
        bus.publish(snapshot)   # never blocks
        bus.close()
    """

    def __init__(self):
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()
        self._closed = False
        self._next_id = 0
        self._published = 0

    def subscribe(self) -> Subscription:
        """
        Attach a new subscriber with an empty mailbox.

        After close() the returned subscription is already at end-of-stream.
        """
        with self._lock:
            self._next_id += 1
            subscription = Subscription(self._next_id)
            if self._closed:
                subscription.close()
            else:
                self._subscriptions.append(subscription)

        logger.debug(f"Subscriber {subscription.subscriber_id} attached")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Detach a subscriber; its mailbox is closed."""
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        subscription.close()
        logger.debug(f"Subscriber {subscription.subscriber_id} detached")

    def publish(self, snapshot: Snapshot) -> int:
        """
        Deliver a snapshot to every attached subscriber.

        Returns:
            Number of subscribers the snapshot was offered to
        """
        with self._lock:
            if self._closed:
                logger.warning(f"Bus closed, dropping snapshot n={snapshot.n}")
                return 0
            subscriptions = list(self._subscriptions)
            self._published += 1

        for subscription in subscriptions:
            subscription.offer(snapshot)

        return len(subscriptions)

    def wait_drained(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every mailbox is empty or the timeout elapses.

        Returns:
            True if all subscribers drained within the timeout
        """
        with self._lock:
            subscriptions = list(self._subscriptions)

        deadline = None if timeout is None else time.monotonic() + timeout
        for subscription in subscriptions:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            if not subscription.wait_empty(remaining):
                return False
        return True

    def close(self) -> None:
        """Close the bus. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscriptions = list(self._subscriptions)

        for subscription in subscriptions:
            subscription.close()

        logger.info(
            f"Snapshot bus closed ({self._published} published, "
            f"{len(subscriptions)} subscribers)"
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    @property
    def published_count(self) -> int:
        return self._published
