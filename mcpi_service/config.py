"""
Configuration schema for the mcpi sampling service.

This module defines the configuration structure for the service: snapshot
rendering, viewer handshake and MQTT delivery settings.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
import yaml


@dataclass(frozen=True)
class RenderConfig:
    """Snapshot rendering configuration."""

    canvas_size: int = 756  # square canvas, pixels
    point_radius: int = 0  # 0 = single pixel per sample
    max_points: int = 1_000_000  # per classified set
    settle_delay: float = 1.0  # seconds granted to viewers after the final snapshot

    def __post_init__(self):
        """Validate render configuration."""
        if not 200 <= self.canvas_size <= 4096:
            raise ValueError(
                f"canvas_size must be in [200, 4096], got {self.canvas_size}"
            )

        if not 0 <= self.point_radius <= 5:
            raise ValueError(
                f"point_radius must be in [0, 5], got {self.point_radius}"
            )

        if self.max_points < 1:
            raise ValueError(
                f"max_points must be >= 1, got {self.max_points}"
            )

        if self.settle_delay < 0:
            raise ValueError(
                f"settle_delay must be >= 0, got {self.settle_delay}"
            )


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 0  # Snapshot QoS (fire-and-forget)

    snapshot_topic: str = "mcpi/data/snapshots/{service_id}"

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not self.broker:
            raise ValueError("MQTT broker cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

        if "{service_id}" not in self.snapshot_topic:
            raise ValueError(
                f"snapshot_topic must contain '{{service_id}}', got {self.snapshot_topic!r}"
            )


@dataclass(frozen=True)
class ServiceConfig:
    """
    Main configuration for the sampling service.

    Loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    # Service identification
    service_id: str

    # Block wait_ready() until a viewer announces itself
    wait_for_viewer: bool = True

    render_config: RenderConfig = field(default_factory=RenderConfig)
    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)

    def __post_init__(self):
        """Validate service configuration."""
        if not self.service_id:
            raise ValueError("service_id cannot be empty")

        if any(c in self.service_id for c in "/#+ "):
            raise ValueError(
                f"service_id must not contain '/', '#', '+' or spaces, got {self.service_id!r}"
            )

    @property
    def snapshot_topic(self) -> str:
        return self.mqtt_config.snapshot_topic.format(service_id=self.service_id)

    @property
    def command_topic(self) -> str:
        return f"mcpi/control/{self.service_id}/commands"

    @property
    def status_topic(self) -> str:
        return f"mcpi/control/{self.service_id}/status"

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "ServiceConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            service_id: "mcpi_01"
            wait_for_viewer: true

            render_config:
              canvas_size: 756
              point_radius: 0
              max_points: 1000000
              settle_delay: 1.0

            mqtt_config:
              broker: "localhost"
              port: 1883
              username: null
              password: null
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {yaml_path}")

        if "service_id" not in data:
            raise ValueError(f"Config file is missing 'service_id': {yaml_path}")

        render_config = RenderConfig(**(data.get("render_config") or {}))
        mqtt_config = MQTTConfig(**(data.get("mqtt_config") or {}))

        return cls(
            service_id=str(data["service_id"]),
            wait_for_viewer=bool(data.get("wait_for_viewer", True)),
            render_config=render_config,
            mqtt_config=mqtt_config,
        )
