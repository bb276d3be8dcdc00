import logging

import pytest
from opentelemetry.sdk._logs.export import InMemoryLogExporter
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from logs_to_azure import appender, bridge
from logs_to_azure.appender import TelemetryLogHandler
from logs_to_azure.azure_monitor import EXPORTER_NAMESPACES
from logs_to_azure.telemetry_config import TelemetryConfig
from tests.helpers import CONNECTION_STRING

# Settings the config reads from the environment
_ENV_VARS = [
    "APPLICATIONINSIGHTS_CONNECTION_STRING",
    "CONNECTION_STRING",
    "DISABLE_OTEL_LOGGING",
    "DISABLED",
    "SERVICE_NAME",
    "NAMESPACE_NAME",
    "ENVIRONMENT",
    "SERVICE_VERSION",
    "COMPONENT_NAME",
    "SPAN_NAME",
    "LOG_LEVEL",
    "EXPORTER_LOG_LEVEL",
    "LOG_FORMAT",
    "EXPORTER_NAMESPACES",
    "DEGRADE_TO_CONSOLE",
    "REGISTER_GLOBAL_PROVIDERS",
    "SERVICE_INSTANCE_ID",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _created_by_layout(handler: logging.Handler) -> bool:
    return isinstance(handler, TelemetryLogHandler) or type(handler) is logging.StreamHandler


@pytest.fixture(autouse=True)
def reset_telemetry():
    """Undo the global logging and appender state a test leaves behind."""
    root = logging.getLogger()
    root_handlers = root.handlers[:]
    root_level = root.level

    yield

    for handler in root.handlers[:]:
        if handler not in root_handlers and _created_by_layout(handler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(root_level)

    for name in [*EXPORTER_NAMESPACES, "bridge-test", "logs-to-azure"]:
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    bridge.shutdown()
    appender.uninstall()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def log_exporter() -> InMemoryLogExporter:
    return InMemoryLogExporter()


@pytest.fixture
def in_memory_customizer(span_exporter, log_exporter):
    """Customizer standing in for Azure Monitor, exporting synchronously."""

    def customize(builder):
        builder.add_span_exporter(span_exporter, batch=False)
        builder.add_log_exporter(log_exporter, batch=False)

    return customize


@pytest.fixture
def config() -> TelemetryConfig:
    return TelemetryConfig(
        connection_string=CONNECTION_STRING,
        service_name="bridge-test",
    )
