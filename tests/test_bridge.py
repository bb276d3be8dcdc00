import logging
from unittest.mock import Mock, call

import pytest

from logs_to_azure import appender, bridge
from logs_to_azure.exceptions import ConfigurationError
from logs_to_azure.telemetry_config import TelemetryConfig
from tests.helpers import CONNECTION_STRING, exported_bodies


def test_init_installs_and_exposes_the_bridge(config, in_memory_customizer):
    telemetry = bridge.init(config, customizers=[in_memory_customizer])

    assert bridge.get_bridge() is telemetry
    assert appender.installed_sdk() is telemetry.sdk


def test_init_is_idempotent(config, in_memory_customizer):
    """Test a second init returns the running bridge rather than building another."""
    first = bridge.init(config, customizers=[in_memory_customizer])
    other_customizer = Mock()

    second = bridge.init(
        TelemetryConfig(connection_string=CONNECTION_STRING, service_name="other"),
        customizers=[other_customizer],
    )

    assert second is first
    other_customizer.assert_not_called()


def test_init_loads_config_from_env(monkeypatch, in_memory_customizer):
    monkeypatch.setenv("APPLICATIONINSIGHTS_CONNECTION_STRING", CONNECTION_STRING)
    monkeypatch.setenv("SERVICE_NAME", "env-service")

    telemetry = bridge.init(customizers=[in_memory_customizer])

    assert telemetry.config.service_name == "env-service"


def test_init_without_connection_string_fails_before_any_handle(in_memory_customizer):
    """Test startup fails fast and leaves nothing installed."""
    with pytest.raises(ConfigurationError):
        bridge.init(customizers=[in_memory_customizer])

    assert bridge.get_bridge() is None
    assert appender.is_installed() is False


def _shutdown_registrations(register: Mock) -> int:
    return register.call_args_list.count(call(bridge.shutdown))


def test_init_can_register_shutdown_at_exit(monkeypatch, config, in_memory_customizer):
    register = Mock()
    monkeypatch.setattr(bridge.atexit, "register", register)
    monkeypatch.setattr(bridge, "_ATEXIT_REGISTERED", False)

    bridge.init(config, customizers=[in_memory_customizer], register_atexit=True)

    assert _shutdown_registrations(register) == 1


def test_shutdown_is_registered_at_exit_only_once(
    monkeypatch, config, in_memory_customizer
):
    """Test the exit hook is registered on the idempotent path and never twice."""
    register = Mock()
    monkeypatch.setattr(bridge.atexit, "register", register)
    monkeypatch.setattr(bridge, "_ATEXIT_REGISTERED", False)

    bridge.init(config, customizers=[in_memory_customizer])
    assert _shutdown_registrations(register) == 0

    bridge.init(config, customizers=[in_memory_customizer], register_atexit=True)
    assert _shutdown_registrations(register) == 1

    bridge.shutdown()
    bridge.init(config, customizers=[in_memory_customizer], register_atexit=True)
    assert _shutdown_registrations(register) == 1


def test_shutdown_flushes_and_allows_reinitialising(config, in_memory_customizer):
    first = bridge.init(config, customizers=[in_memory_customizer])

    bridge.shutdown()
    bridge.shutdown()

    assert bridge.get_bridge() is None
    assert first.is_active is False
    assert appender.is_installed() is False

    second = bridge.init(config, customizers=[in_memory_customizer])
    assert second is not first
    assert appender.installed_sdk() is second.sdk


def test_telemetry_session_wraps_init_and_shutdown(
    config, in_memory_customizer, log_exporter
):
    with bridge.telemetry_session(config, customizers=[in_memory_customizer]) as telemetry:
        logging.getLogger("session.test").warning("inside session")
        assert bridge.get_bridge() is telemetry

    assert bridge.get_bridge() is None
    assert telemetry.is_active is False
    assert "inside session" in exported_bodies(log_exporter)


def test_telemetry_session_shuts_down_on_error(config, in_memory_customizer):
    with pytest.raises(RuntimeError):
        with bridge.telemetry_session(config, customizers=[in_memory_customizer]):
            raise RuntimeError("request failed")

    assert bridge.get_bridge() is None
    assert appender.is_installed() is False


def test_nested_session_leaves_the_running_bridge_alone(config, in_memory_customizer):
    """Test a session joining an initialised bridge does not shut it down."""
    running = bridge.init(config, customizers=[in_memory_customizer])

    with bridge.telemetry_session() as telemetry:
        assert telemetry is running

    assert running.is_active is True
    assert bridge.get_bridge() is running
    assert appender.installed_sdk() is running.sdk
