"""
OpenTelemetry SDK handle and builder.

`TelemetrySdkBuilder` collects span and log record processors, lets vendor
customizers (see `logs_to_azure.azure_monitor`) add their exporters, and
builds an immutable `TelemetrySdk` owning one tracer provider and one logger
provider.
"""

import logging
from typing import Callable, Optional

from opentelemetry import trace
from opentelemetry._logs import Logger, set_logger_provider

# These are beta still, so may change and break compatibility
from opentelemetry.sdk._logs import LoggerProvider, LogRecordProcessor
from opentelemetry.sdk._logs.export import (
    BatchLogRecordProcessor,
    LogExporter,
    SimpleLogRecordProcessor,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Tracer

from logs_to_azure.exceptions import TelemetryBuildError

_LOGGER = logging.getLogger(__name__)

Customizer = Callable[["TelemetrySdkBuilder"], None]


class TelemetrySdk:
    """A built OpenTelemetry SDK: one tracer provider, one logger provider.

    :param tracer_provider: Provider owning the span pipeline.
    :type tracer_provider: TracerProvider
    :param logger_provider: Provider owning the log record pipeline.
    :type logger_provider: LoggerProvider
    """

    def __init__(
        self, tracer_provider: TracerProvider, logger_provider: LoggerProvider
    ) -> None:
        self.tracer_provider = tracer_provider
        self.logger_provider = logger_provider
        self._is_shutdown = False

    @property
    def is_shutdown(self) -> bool:
        return self._is_shutdown

    def get_tracer(self, name: str, version: Optional[str] = None) -> Tracer:
        """Return a tracer for the given instrumentation scope."""
        return self.tracer_provider.get_tracer(name, version)

    def get_logger(self, name: str, version: Optional[str] = None) -> Logger:
        """Return an OpenTelemetry logs API logger for the given scope."""
        return self.logger_provider.get_logger(name, version)

    def register_global(self) -> None:
        """Set this SDK's providers as the OpenTelemetry globals.

        OpenTelemetry only allows the globals to be set once per process.
        """
        trace.set_tracer_provider(self.tracer_provider)
        set_logger_provider(self.logger_provider)

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """Export everything buffered in both pipelines.

        :return: Whether both providers flushed within the timeout.
        :rtype: bool
        """
        if self._is_shutdown:
            return False
        traces_flushed = self.tracer_provider.force_flush(timeout_millis)
        logs_flushed = self.logger_provider.force_flush(timeout_millis)
        return bool(traces_flushed and logs_flushed)

    def shutdown(self) -> None:
        """Flush and shut down both providers. Safe to call more than once."""
        if self._is_shutdown:
            return
        self._is_shutdown = True

        try:
            self.logger_provider.shutdown()
        except Exception as exc:
            _LOGGER.debug("Failed to shutdown logger provider: %s", exc)

        try:
            self.tracer_provider.shutdown()
        except Exception as exc:
            _LOGGER.debug("Failed to shutdown tracer provider: %s", exc)


class TelemetrySdkBuilder:
    """Collects exporters and processors and builds a `TelemetrySdk` once.

    :param resource: Resource attached to every span and log record.
    :type resource: Resource
    """

    def __init__(self, resource: Resource) -> None:
        self.resource = resource
        self._span_processors: list[SpanProcessor] = []
        self._log_record_processors: list[LogRecordProcessor] = []
        self._built = False

    def add_span_processor(self, processor: SpanProcessor) -> "TelemetrySdkBuilder":
        self._span_processors.append(processor)
        return self

    def add_log_record_processor(
        self, processor: LogRecordProcessor
    ) -> "TelemetrySdkBuilder":
        self._log_record_processors.append(processor)
        return self

    def add_span_exporter(
        self, exporter: SpanExporter, batch: bool = True
    ) -> "TelemetrySdkBuilder":
        """Export spans through ``exporter``.

        :param exporter: The span exporter.
        :type exporter: SpanExporter
        :param batch: Export in the background in batches, otherwise
            synchronously as each span ends.
        :type batch: bool
        """
        processor = (
            BatchSpanProcessor(exporter) if batch else SimpleSpanProcessor(exporter)
        )
        return self.add_span_processor(processor)

    def add_log_exporter(
        self, exporter: LogExporter, batch: bool = True
    ) -> "TelemetrySdkBuilder":
        """Export log records through ``exporter``.

        :param exporter: The log exporter.
        :type exporter: LogExporter
        :param batch: Export in the background in batches, otherwise
            synchronously as each record is emitted.
        :type batch: bool
        """
        processor = (
            BatchLogRecordProcessor(exporter)
            if batch
            else SimpleLogRecordProcessor(exporter)
        )
        return self.add_log_record_processor(processor)

    def customize(self, customizer: Customizer) -> "TelemetrySdkBuilder":
        customizer(self)
        return self

    def build(self) -> TelemetrySdk:
        """Build the SDK.

        :return: The built SDK.
        :rtype: TelemetrySdk
        :raises TelemetryBuildError: If this builder was already used.
        """
        if self._built:
            raise TelemetryBuildError("Telemetry SDK builder can only be built once.")
        self._built = True

        tracer_provider = TracerProvider(resource=self.resource)
        for span_processor in self._span_processors:
            tracer_provider.add_span_processor(span_processor)

        logger_provider = LoggerProvider(resource=self.resource)
        for log_record_processor in self._log_record_processors:
            logger_provider.add_log_record_processor(log_record_processor)

        if not self._span_processors and not self._log_record_processors:
            _LOGGER.warning("🪫 Telemetry SDK built without any exporters.")

        return TelemetrySdk(tracer_provider, logger_provider)
