"""
mcpi_service - Live Monte-Carlo pi sampling service

This package wires the sampling engine to MQTT: producers plot points
through PlotService, snapshots are forwarded to viewers, and the control
plane handles the viewer handshake.

Architecture:
- PlotService: ingestion facade (wait_ready / plot / quit)
- ServiceConfig: configuration management (YAML)

Threading Model:
- Caller threads (plot)
- Coordinator Thread (mcpi_engine, renders snapshots)
- Snapshot Forwarder Thread (publishes to MQTT)
- Control Plane Thread (paho-mqtt internal for commands)
"""

from mcpi_service.config import ServiceConfig, RenderConfig, MQTTConfig
from mcpi_service.service import PlotService

__all__ = [
    "ServiceConfig",
    "RenderConfig",
    "MQTTConfig",
    "PlotService",
]
