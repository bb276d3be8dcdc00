from logs_to_azure.base_telemetry import BridgeTelemetry
from logs_to_azure.bridge import get_bridge, init, shutdown, telemetry_session
from logs_to_azure.connection_string import ConnectionString
from logs_to_azure.exceptions import (
    AppenderAlreadyInstalledError,
    ConfigurationError,
    TelemetryBridgeError,
    TelemetryBuildError,
)
from logs_to_azure.logging_layout import LoggerRoute, LoggingLayout, Sink
from logs_to_azure.sdk import TelemetrySdk, TelemetrySdkBuilder
from logs_to_azure.telemetry_config import TelemetryConfig
from logs_to_azure.telemetry_fastapi import FastAPITelemetry
from logs_to_azure.telemetry_utils import observe

__all__ = [
    "AppenderAlreadyInstalledError",
    "BridgeTelemetry",
    "ConfigurationError",
    "ConnectionString",
    "FastAPITelemetry",
    "LoggerRoute",
    "LoggingLayout",
    "Sink",
    "TelemetryBridgeError",
    "TelemetryBuildError",
    "TelemetryConfig",
    "TelemetrySdk",
    "TelemetrySdkBuilder",
    "get_bridge",
    "init",
    "observe",
    "shutdown",
    "telemetry_session",
]
