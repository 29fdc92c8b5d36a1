"""
mcpi_control - Control Plane of the sampling service

Bounded Context: MQTT-based command-and-control
Responsibilities:
  - MQTT connection management (Control Plane)
  - Command registration and validation
  - Status publishing (retained, QoS 1)

Commands registered by PlotService:
  - viewer_ready: a viewer is subscribed; unblocks wait_ready()
  - status: publish a status_report (n, render_count, ready)
"""

from .registry import CommandRegistry, CommandNotAvailableError
from .plane import MQTTControlPlane

__all__ = [
    "CommandRegistry",
    "CommandNotAvailableError",
    "MQTTControlPlane",
]
