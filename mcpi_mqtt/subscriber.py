"""
MQTT Snapshot Subscriber
========================

Bounded Context: Message Consumption (viewer side)

This module provides the subscriber used by live viewers to receive
snapshot and status messages from the MQTT broker.

Design:
- Thread-safe message consumption
- Callback-based architecture (async message handling)
- Automatic deserialization with error handling

Architecture:
    MQTT Broker → SnapshotSubscriber → Callbacks → Viewer

Message Flow:
    1. Subscriber receives JSON from MQTT
    2. Deserializes to SnapshotMessage (or a status dict)
    3. Invokes user callback
    4. Continues listening (non-blocking)

Example (Viewer):
    >>> from mcpi_mqtt import SnapshotSubscriber, create_logger
    >>>
    >>> def on_snapshot(msg):
    ...     print(f"n={msg.n} pi={msg.pi_estimate}")
    >>>
    >>> subscriber = SnapshotSubscriber(
    ...     broker_host="localhost",
    ...     snapshot_topic="mcpi/data/snapshots/mcpi_01",
    ...     on_snapshot=on_snapshot,
    ...     logger=create_logger("viewer"),
    ...     status_topic="mcpi/control/mcpi_01/status",
    ... )
    >>> subscriber.connect()
    >>> subscriber.start()
    >>> # ... viewer main loop ...
    >>> subscriber.stop()
"""

import json
import threading
from typing import Any, Callable, Dict, Optional
import paho.mqtt.client as mqtt

from .schemas import SnapshotMessage
from .logging import StructuredLogger, LogEvent

class SnapshotSubscriber:
    """
    MQTT subscriber for snapshot (and optionally status) messages.

    Attributes:
        broker_host: MQTT broker hostname
        broker_port: MQTT broker port
        snapshot_topic: Topic for snapshot messages
        status_topic: Topic for service status messages (optional)
        client_id: MQTT client identifier
        logger: Structured logger instance
        on_snapshot: Callback for snapshot messages
        on_status: Callback for status messages

    Thread Safety:
        Callbacks are invoked in the paho-mqtt network thread.
    """

    def __init__(
        self,
        broker_host: str,
        snapshot_topic: str,
        on_snapshot: Callable[[SnapshotMessage], None],
        logger: StructuredLogger,
        status_topic: Optional[str] = None,
        on_status: Optional[Callable[[Dict[str, Any]], None]] = None,
        broker_port: int = 1883,
        client_id: str = "mcpi_viewer",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0
    ):
        """
        Initialize MQTT subscriber.

        Args:
            broker_host: MQTT broker hostname
            snapshot_topic: Topic to subscribe for snapshots
            on_snapshot: Callback function for snapshot messages
            logger: Structured logger instance
            status_topic: Topic to subscribe for service status (optional)
            on_status: Callback function for status messages (optional)
            broker_port: MQTT broker port (default: 1883)
            client_id: MQTT client ID (default: mcpi_viewer)
            username: MQTT auth username (optional)
            password: MQTT auth password (optional)
            qos: Quality of Service (default: 0)

        Design Note:
            Callbacks run in the MQTT thread. Keep them fast: a slow
            callback delays every following message.
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.snapshot_topic = snapshot_topic
        self.status_topic = status_topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        # User callbacks
        self.on_snapshot = on_snapshot
        self.on_status = on_status

        # MQTT client setup
        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id
        )
        if username and password:
            self.client.username_pw_set(username, password)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        # State
        self._connected = threading.Event()
        self._running = False
        self._stats_lock = threading.Lock()
        self._message_count = {'snapshots': 0, 'status': 0}
        self._last_n: Optional[int] = None

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        """
        Callback when connection established.

        Automatically subscribes to configured topics.
        """
        if not reason_code.is_failure:
            client.subscribe(self.snapshot_topic, qos=self.qos)
            if self.status_topic:
                client.subscribe(self.status_topic, qos=1)

            self._connected.set()
            self.logger.info(
                event=LogEvent.MQTT_CONNECTED,
                message="Connected to MQTT broker and subscribed to topics",
                metadata={
                    'broker': f"{self.broker_host}:{self.broker_port}",
                    'snapshot_topic': self.snapshot_topic,
                    'status_topic': self.status_topic
                }
            )
        else:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Failed to connect to broker (rc={reason_code})",
                metadata={'broker': f"{self.broker_host}:{self.broker_port}"}
            )

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        """Callback when disconnected from broker."""
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from MQTT broker",
            metadata={
                'broker': f"{self.broker_host}:{self.broker_port}",
                'reason_code': str(reason_code)
            }
        )

    def _on_message(self, client, userdata, msg: mqtt.MQTTMessage) -> None:
        """
        Callback when message received.

        Deserializes JSON and routes it by topic.
        """
        try:
            payload = msg.payload.decode('utf-8')
            data = json.loads(payload)

            if msg.topic == self.snapshot_topic:
                self._handle_snapshot_message(data)
            elif msg.topic == self.status_topic:
                self._handle_status_message(data)
            else:
                self.logger.warning(
                    event=LogEvent.DESERIALIZATION_ERROR,
                    message=f"Received message from unknown topic: {msg.topic}"
                )

        except json.JSONDecodeError as e:
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Failed to decode JSON message",
                exc_info=e,
                metadata={'topic': msg.topic}
            )
        except Exception as e:
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Error processing message",
                exc_info=e,
                metadata={'topic': msg.topic}
            )

    def _handle_snapshot_message(self, data: dict) -> None:
        """
        Handle snapshot message.

        Deserializes to SnapshotMessage and invokes user callback.
        """
        try:
            snapshot_msg = SnapshotMessage.from_dict(data)

            with self._stats_lock:
                self._message_count['snapshots'] += 1
                self._last_n = snapshot_msg.n

            self.logger.info(
                event=LogEvent.SNAPSHOT_RECEIVED,
                message="Received snapshot message",
                metadata={
                    'n': snapshot_msg.n,
                    'pi_estimate': snapshot_msg.pi_estimate,
                    'service_id': snapshot_msg.service_id,
                    'image_bytes': snapshot_msg.image_size
                }
            )

            self.on_snapshot(snapshot_msg)

        except ValueError as e:
            self.logger.error(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message="Snapshot message failed schema validation",
                exc_info=e,
                metadata={'keys': sorted(data.keys()) if isinstance(data, dict) else None}
            )
        except Exception as e:
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Error handling snapshot message",
                exc_info=e
            )

    def _handle_status_message(self, data: dict) -> None:
        """Handle service status message and invoke user callback."""
        with self._stats_lock:
            self._message_count['status'] += 1

        self.logger.info(
            event=LogEvent.STATUS_RECEIVED,
            message=f"Received status '{data.get('status')}'",
            metadata={'status': data.get('status'), 'client_id': data.get('client_id')}
        )

        if self.on_status is not None:
            try:
                self.on_status(data)
            except Exception as e:
                self.logger.error(
                    event=LogEvent.DESERIALIZATION_ERROR,
                    message="Error handling status message",
                    exc_info=e
                )

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect to MQTT broker and start the network loop.

        Returns:
            True if connected (and subscribed) successfully, False otherwise
        """
        try:
            self.client.connect(self.broker_host, self.broker_port)
            self.client.loop_start()

            if self._connected.wait(timeout=timeout):
                return True
            else:
                self.logger.error(
                    event=LogEvent.MQTT_CONNECTION_ERROR,
                    message="Connection timeout",
                    metadata={'timeout': timeout}
                )
                self.client.loop_stop()
                return False

        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Failed to connect to broker",
                exc_info=e,
                metadata={'broker': f"{self.broker_host}:{self.broker_port}"}
            )
            return False

    def start(self) -> None:
        """
        Mark the subscriber as listening.

        Non-blocking. Messages are received and callbacks invoked in the
        background MQTT thread started by connect().
        """
        if not self._connected.is_set():
            self.logger.warning(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Cannot start: not connected to broker"
            )
            return

        self._running = True
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Subscriber started (listening for snapshots)",
            metadata={'snapshot_topic': self.snapshot_topic}
        )

    def stop(self) -> None:
        """Stop subscriber loop and disconnect."""
        self._running = False
        self.client.disconnect()
        self.client.loop_stop()

        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Subscriber stopped",
            metadata=self.get_stats()
        )

    def is_connected(self) -> bool:
        """Check if currently connected to broker."""
        return self._connected.is_set()

    def get_stats(self) -> dict:
        """
        Get subscriber statistics.

        Returns:
            Dictionary with message counts and connection status
        """
        with self._stats_lock:
            return {
                'snapshots_received': self._message_count['snapshots'],
                'status_received': self._message_count['status'],
                'last_n': self._last_n,
                'connected': self._connected.is_set(),
                'running': self._running,
                'snapshot_topic': self.snapshot_topic,
                'broker': f"{self.broker_host}:{self.broker_port}"
            }
