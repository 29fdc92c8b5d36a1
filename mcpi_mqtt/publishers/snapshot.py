"""
Snapshot Publisher
==================

Bounded Context: Snapshot Message Production

This module provides the publisher that pushes rendered snapshots to
remote viewers.

Design:
- Inherits from BasePublisher (connection management)
- Formats SnapshotMessage to JSON (image as base64)
- Never retained: viewers joining late only get future snapshots

Message Flow:
    Coordinator → SnapshotBus → forwarder → SnapshotPublisher → MQTT Broker

Example:
    >>> from mcpi_mqtt.publishers import SnapshotPublisher
    >>> from mcpi_mqtt.schemas import SnapshotMessage
    >>> from mcpi_mqtt.logging import create_logger
    >>>
    >>> publisher = SnapshotPublisher(
    ...     broker_host="localhost",
    ...     topic="mcpi/data/snapshots/mcpi_01",
    ...     logger=create_logger("publisher")
    ... )
    >>> publisher.connect()
    >>> publisher.publish_snapshot(SnapshotMessage.from_snapshot(snapshot, "mcpi_01"))
"""

from typing import Dict, Any, Optional
from .base import BasePublisher
from ..schemas import SnapshotMessage
from ..logging import StructuredLogger, LogEvent


class SnapshotPublisher(BasePublisher):
    """
    Publisher for rendered snapshot messages.

    Attributes:
        Same as BasePublisher, plus:
        schema_version: Current schema version for messages
    """

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "mcpi_snapshot_publisher",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0
    ):
        """
        Initialize snapshot publisher.

        Args:
            broker_host: MQTT broker hostname
            topic: Topic to publish snapshot messages
            logger: Structured logger instance
            broker_port: MQTT broker port (default: 1883)
            client_id: MQTT client ID (default: mcpi_snapshot_publisher)
            username: MQTT auth username (optional)
            password: MQTT auth password (optional)
            qos: Quality of Service (default: 0)
        """
        super().__init__(
            broker_host=broker_host,
            broker_port=broker_port,
            topic=topic,
            client_id=client_id,
            logger=logger,
            username=username,
            password=password,
            qos=qos
        )
        self.schema_version = "1.0"

    def format_message(self, snapshot_msg: SnapshotMessage) -> Dict[str, Any]:
        """
        Format SnapshotMessage to JSON-compatible dict.

        Raises:
            ValueError: If snapshot_msg cannot be serialized
        """
        try:
            formatted = snapshot_msg.to_dict()

            self.logger.debug(
                event=LogEvent.SNAPSHOT_SERIALIZED,
                message="Serialized snapshot message",
                metadata={
                    'n': snapshot_msg.n,
                    'image_bytes': snapshot_msg.image_size,
                }
            )

            return formatted

        except Exception as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize snapshot message",
                exc_info=e,
                metadata={'n': getattr(snapshot_msg, 'n', None)}
            )
            raise ValueError(f"Failed to format snapshot message: {e}")

    def publish_snapshot(self, snapshot_msg: SnapshotMessage) -> bool:
        """
        Publish snapshot message to MQTT broker.

        Returns:
            True if published successfully, False otherwise
        """
        try:
            message_data = self.format_message(snapshot_msg)
            success = self.publish(message_data, retain=False)

            if success:
                self.logger.info(
                    event=LogEvent.SNAPSHOT_PUBLISHED,
                    message=f"Published snapshot n={snapshot_msg.n}",
                    metadata={
                        'n': snapshot_msg.n,
                        'pi_estimate': snapshot_msg.pi_estimate,
                        'inner_count': snapshot_msg.inner_count,
                        'outer_count': snapshot_msg.outer_count,
                    }
                )

            return success

        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing snapshot message",
                exc_info=e,
                metadata={
                    'n': snapshot_msg.n,
                    'topic': self.topic
                }
            )
            return False
