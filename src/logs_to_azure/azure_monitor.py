"""Azure Monitor customization for the telemetry SDK builder."""

import logging

from azure.monitor.opentelemetry.exporter import (
    AzureMonitorLogExporter,
    AzureMonitorTraceExporter,
)

from logs_to_azure.connection_string import ConnectionString
from logs_to_azure.sdk import TelemetrySdkBuilder

_LOGGER = logging.getLogger(__name__)

# Namespaces the exporter and its HTTP stack log under. These must never be
# forwarded back into the exporter.
EXPORTER_NAMESPACES = [
    "azure.monitor.opentelemetry.exporter",
    "azure.core",
    "opentelemetry",
    "urllib3",
]


def customize(builder: TelemetrySdkBuilder, connection_string: str) -> None:
    """Wire Azure Monitor trace and log exporters onto ``builder``.

    :param builder: Builder to add the exporters to.
    :type builder: TelemetrySdkBuilder
    :param connection_string: Application Insights connection string.
    :type connection_string: str
    :raises ConfigurationError: If the connection string is empty or malformed.
    """
    ConnectionString.parse(connection_string)

    # Construct both exporters before the builder starts any processor
    trace_exporter = AzureMonitorTraceExporter(connection_string=connection_string)
    log_exporter = AzureMonitorLogExporter(connection_string=connection_string)

    builder.add_span_exporter(trace_exporter)
    builder.add_log_exporter(log_exporter)
    _LOGGER.debug("🔭 Azure Monitor exporters added to telemetry SDK builder.")
