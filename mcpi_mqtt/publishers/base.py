"""
Base MQTT Publisher
==================

Bounded Context: Snapshot delivery to viewers

Shared connection handling for everything the sampling service pushes to
the broker. A publisher owns one paho client and one topic; subclasses
only decide how their message becomes a JSON dict.

Delivery:
- Snapshots go out at QoS 0 by default; a lost snapshot is superseded by
  the next decade step, and the final one is queued before disconnect()
- publish() never raises: failures are counted and logged as events
- The paho network thread runs from connect() to disconnect()

    BasePublisher ── format_message() ──> SnapshotPublisher
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
import paho.mqtt.client as mqtt

from ..logging import StructuredLogger, LogEvent


class BasePublisher(ABC):
    """
    One topic, one paho client, JSON payloads.

    Called from the snapshot forwarder thread; connection state is an
    Event set by the paho thread, counters sit behind a lock.

    Attributes:
        topic: Destination topic (already formatted with the service id)
        qos: Delivery QoS for every message on this topic
        logger: StructuredLogger receiving mqtt.* events
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        topic: str,
        client_id: str,
        logger: StructuredLogger,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0
    ):
        """
        Args:
            topic: Formatted topic, e.g. mcpi/data/snapshots/mcpi_01
            client_id: Must be unique per broker (one per service and role)
            username, password: Sent only when both are given
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        # MQTT client setup
        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id
        )
        if username and password:
            self.client.username_pw_set(username, password)

        # Callbacks
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        # Connection state
        self._connected = threading.Event()
        self._message_count = 0
        self._failed_count = 0
        self._stats_lock = threading.Lock()

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        # paho network thread; unblocks connect()
        if not reason_code.is_failure:
            self._connected.set()
            self.logger.info(
                event=LogEvent.MQTT_CONNECTED,
                message="Connected to MQTT broker",
                metadata={
                    'broker': f"{self.broker_host}:{self.broker_port}",
                    'client_id': self.client_id,
                    'topic': self.topic
                }
            )
        else:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Failed to connect to broker (rc={reason_code})",
                metadata={'broker': f"{self.broker_host}:{self.broker_port}"}
            )

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        self._connected.clear()
        # rc 0 means we asked for it
        log = self.logger.warning if reason_code.is_failure else self.logger.debug
        log(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Connection to MQTT broker closed",
            metadata={
                'broker': f"{self.broker_host}:{self.broker_port}",
                'reason_code': str(reason_code)
            }
        )

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Open the connection and start the paho network thread.

        Returns False (and logs error.mqtt_connection) when the broker is
        unreachable or CONNACK does not arrive within `timeout` seconds;
        the service treats that as fatal at start-up.
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

    def disconnect(self) -> None:
        """Send DISCONNECT after anything already queued, then stop the network thread."""
        try:
            self.client.disconnect()
            self.client.loop_stop()
            self.logger.info(
                event=LogEvent.MQTT_DISCONNECTED,
                message="Disconnected from broker",
                metadata={'message_count': self._message_count}
            )
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Error during disconnect",
                exc_info=e
            )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    @abstractmethod
    def format_message(self, *args, **kwargs) -> Dict[str, Any]:
        """Turn a schema object into a JSON-ready dict. Raise ValueError if it cannot."""
        raise NotImplementedError("Subclasses must implement format_message()")

    def publish(
        self,
        message_data: Dict[str, Any],
        retain: bool = False
    ) -> bool:
        """
        Serialize and hand one message to paho.

        Returns:
            True once paho accepted the message for sending. False when
            disconnected or rejected; the failure counter is incremented.
        """
        if not self._connected.is_set():
            self._record_failure()
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Cannot publish: not connected to broker"
            )
            return False

        try:
            json_message = json.dumps(message_data)

            result = self.client.publish(
                topic=self.topic,
                payload=json_message,
                qos=self.qos,
                retain=retain
            )

            if result.rc == mqtt.MQTT_ERR_SUCCESS:
                with self._stats_lock:
                    self._message_count += 1

                self.logger.debug(
                    event=LogEvent.MQTT_PUBLISH_SUCCESS,
                    message="Published message",
                    metadata={
                        'topic': self.topic,
                        'message_count': self._message_count,
                        'bytes': len(json_message),
                        'qos': self.qos
                    }
                )
                return True
            else:
                self._record_failure()
                self.logger.warning(
                    event=LogEvent.MQTT_PUBLISH_FAILED,
                    message=f"Publish failed (rc={result.rc})",
                    metadata={'topic': self.topic}
                )
                return False

        except Exception as e:
            self._record_failure()
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing message",
                exc_info=e,
                metadata={'topic': self.topic}
            )
            return False

    def _record_failure(self) -> None:
        with self._stats_lock:
            self._failed_count += 1

    def get_stats(self) -> Dict[str, Any]:
        """Counters for the stopped-status report and the disconnect log."""
        with self._stats_lock:
            return {
                'message_count': self._message_count,
                'failed_count': self._failed_count,
                'connected': self._connected.is_set(),
                'topic': self.topic,
                'broker': f"{self.broker_host}:{self.broker_port}"
            }
