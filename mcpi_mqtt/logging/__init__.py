"""
Structured Logging for mcpi MQTT
================================

Bounded Context: Observability

JSON-structured logging for the snapshot transport.

Public API
----------
    LogEvent: Typed event names (enum)
    StructuredLogger: JSON logger implementation
    create_logger: Factory function

Example:
    >>> from mcpi_mqtt.logging import StructuredLogger, LogEvent
    >>> logger = StructuredLogger(component="publisher")
    >>> logger.info(
    ...     event=LogEvent.SNAPSHOT_PUBLISHED,
    ...     message="Published snapshot",
    ...     metadata={'n': 100}
    ... )
"""

from .events import LogEvent
from .structured import StructuredLogger, create_logger

__all__ = [
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
