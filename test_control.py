"""
Control plane tests (command registry and command dispatch, no broker).

Usage:
    pytest test_control.py
"""

import json
from types import SimpleNamespace

import pytest

from mcpi_control import CommandNotAvailableError, CommandRegistry, MQTTControlPlane


def command_message(payload) -> SimpleNamespace:
    if not isinstance(payload, bytes):
        payload = json.dumps(payload).encode("utf-8")
    return SimpleNamespace(topic="mcpi/control/test/commands", payload=payload)


def make_plane() -> MQTTControlPlane:
    return MQTTControlPlane(
        broker_host="localhost",
        broker_port=1883,
        command_topic="mcpi/control/test/commands",
        status_topic="mcpi/control/test/status",
        client_id="mcpi_test_control",
    )


def test_register_and_execute():
    registry = CommandRegistry()
    calls = []
    registry.register("viewer_ready", calls.append, "Viewer is listening")

    registry.execute("viewer_ready", {"command": "viewer_ready"})

    assert calls == [{"command": "viewer_ready"}]
    assert registry.is_available("viewer_ready")
    assert registry.available_commands == {"viewer_ready"}
    assert registry.get_help() == {"viewer_ready": "Viewer is listening"}
    assert registry.count() == 1


def test_execute_without_payload_and_return_value():
    registry = CommandRegistry()
    registry.register("status", lambda: "report", "Status report")

    assert registry.execute("status") == "report"


def test_unknown_command_lists_available():
    registry = CommandRegistry()
    registry.register("status", lambda data: None, "Status report")

    with pytest.raises(CommandNotAvailableError, match="status"):
        registry.execute("pause")


def test_double_registration_rejected():
    registry = CommandRegistry()
    registry.register("status", lambda data: None, "Status report")

    with pytest.raises(ValueError):
        registry.register("status", lambda data: None, "Again")


@pytest.mark.parametrize("name", ["", "Viewer_Ready", "viewer ready"])
def test_invalid_command_names_rejected(name):
    with pytest.raises(ValueError):
        CommandRegistry().register(name, lambda: None, "bad")


def test_plane_dispatches_commands_to_registry():
    plane = make_plane()
    received = []
    plane.command_registry.register("viewer_ready", received.append, "Viewer is listening")

    plane._on_message(None, None, command_message({"command": "VIEWER_READY", "viewer_id": "v1"}))

    assert received == [{"command": "VIEWER_READY", "viewer_id": "v1"}]


def test_plane_ignores_bad_payloads():
    plane = make_plane()
    received = []
    plane.command_registry.register("status", received.append, "Status report")

    # None of these reach a handler, none of them raise
    plane._on_message(None, None, command_message(b"{not json"))
    plane._on_message(None, None, command_message(b"\xff\xfe"))
    plane._on_message(None, None, command_message([1, 2, 3]))
    plane._on_message(None, None, command_message({"command": ""}))
    plane._on_message(None, None, command_message({"command": "unknown"}))

    assert received == []


def test_plane_handler_errors_are_contained():
    plane = make_plane()

    def explode(data):
        raise RuntimeError("handler failed")

    plane.command_registry.register("status", explode, "Status report")
    plane._on_message(None, None, command_message({"command": "status"}))

    assert not plane.is_connected()
