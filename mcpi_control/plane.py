"""
MQTTControlPlane - command and status channel of the sampling service

Bounded Context: MQTT connection management + command reception
Responsibilities:
  - MQTT connection lifecycle (connect, disconnect)
  - Command reception (viewer_ready, status, ...)
  - Status publishing (connected, running, ready, stopped, disconnected)
  - Command delegation to CommandRegistry

QoS Policy:
  - Commands: QoS 1 (at-least-once delivery)
  - Status: QoS 1 + retained (a late viewer sees the last status)

Threading:
  - MQTT client runs its own background thread (loop_start/loop_stop)
  - Callbacks and command handlers run in the MQTT thread (keep them fast!)
"""

import json
import logging
from datetime import datetime, timezone
from threading import Event
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .registry import CommandRegistry, CommandNotAvailableError

logger = logging.getLogger(__name__)


class MQTTControlPlane:
    """
    MQTT Control Plane for receiving commands and publishing status.

    Example:
        control_plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            command_topic="mcpi/control/mcpi_01/commands",
            status_topic="mcpi/control/mcpi_01/status",
            client_id="mcpi_01_control"
        )

        control_plane.command_registry.register(
            'viewer_ready', service.mark_ready, "Viewer is subscribed"
        )

        if control_plane.connect(timeout=5.0):
            print("Connected to MQTT broker")

        control_plane.disconnect()
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        command_topic: str,
        status_topic: str,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        """
        Initialize MQTT Control Plane.

        Args:
            broker_host: MQTT broker hostname
            broker_port: MQTT broker port (typically 1883)
            command_topic: Topic for receiving commands (subscribe)
            status_topic: Topic for publishing status (publish)
            client_id: MQTT client identifier
            username: Optional MQTT authentication username
            password: Optional MQTT authentication password
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.command_topic = command_topic
        self.status_topic = status_topic
        self.client_id = client_id

        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv311,
        )
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect

        if username and password:
            self.client.username_pw_set(username, password)

        self._connected = Event()
        self._running = False

        self.command_registry = CommandRegistry()

    def connect(self, timeout: float = 5.0) -> bool:
        """
        Connect to MQTT broker with timeout.

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            logger.info(f"🔌 Connecting to MQTT broker: {self.broker_host}:{self.broker_port}")
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
            self.client.loop_start()
            self._running = True

            if self._connected.wait(timeout=timeout):
                logger.info("✅ MQTT Control Plane connected")
                return True
            else:
                logger.error(f"❌ Connection timeout after {timeout}s")
                return False

        except Exception as e:
            logger.error(f"❌ Error connecting to MQTT: {e}")
            return False

    def disconnect(self) -> None:
        """
        Publish the 'disconnected' status and leave the broker.

        Safe to call multiple times.
        """
        if self._running:
            logger.info("🔌 Disconnecting from MQTT broker")
            info = self.publish_status("disconnected")
            if info is not None and self._connected.is_set():
                try:
                    info.wait_for_publish(timeout=2.0)
                except (RuntimeError, ValueError) as e:
                    logger.warning(f"⚠️ Final status not confirmed: {e}")
            self.client.disconnect()
            self.client.loop_stop()
            self._running = False
            self._connected.clear()
            logger.info("✅ MQTT Control Plane disconnected")

    def publish_status(
        self,
        status: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[mqtt.MQTTMessageInfo]:
        """
        Publish status update to status topic (QoS 1, retained).

        Args:
            status: Status string (e.g., "running", "ready", "stopped")
            details: Extra fields merged into the message

        Returns:
            The paho message info, or None if publishing raised
        """
        message = {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "client_id": self.client_id,
        }
        if details:
            message.update(details)

        try:
            info = self.client.publish(
                self.status_topic,
                json.dumps(message),
                qos=1,
                retain=True,
            )
            logger.debug(f"📤 Status published: {status}")
            return info
        except Exception as e:
            logger.error(f"❌ Error publishing status: {e}")
            return None

    def is_connected(self) -> bool:
        return self._connected.is_set()

    # ===== MQTT Callbacks (run in MQTT thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if not reason_code.is_failure:
            logger.info(f"✅ Connected to broker (rc={reason_code})")

            client.subscribe(self.command_topic, qos=1)
            logger.info(f"📥 Subscribed to: {self.command_topic} (QoS 1)")

            self.publish_status("connected")
            self._connected.set()
        else:
            logger.error(f"❌ Connection failed (rc={reason_code})")
            self._connected.clear()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        if reason_code.is_failure:
            logger.warning(f"⚠️ Unexpected disconnection (rc={reason_code})")
        else:
            logger.info("✅ Disconnected from broker")
        self._connected.clear()

    def _on_message(self, client, userdata, msg):
        """
        MQTT callback: command message received.

        Payload is JSON with a 'command' field; the whole payload is handed
        to the registered handler.
        """
        try:
            payload = msg.payload.decode('utf-8')
            logger.debug(f"📦 Command received: {payload}")

            command_data = json.loads(payload)
            if not isinstance(command_data, dict):
                logger.warning(f"⚠️ Command payload is not an object: {payload}")
                return

            command = str(command_data.get('command', '')).strip().lower()
            if not command:
                logger.warning("⚠️ Empty command received")
                return

            logger.info(f"🎯 Executing command: {command}")

            try:
                self.command_registry.execute(command, command_data)
                logger.debug(f"✅ Command '{command}' executed successfully")
            except CommandNotAvailableError as e:
                logger.warning(f"⚠️ {e}")

        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"❌ Error decoding command: {msg.payload!r} ({e})")
        except Exception as e:
            logger.error(f"❌ Error processing message: {e}", exc_info=True)
