"""
Telemetry bridge between Python logging and Azure Application Insights.

This module defines `BridgeTelemetry`, which builds one OpenTelemetry SDK
from a `TelemetryConfig`, installs it on the process-wide logging appender,
applies the logging layout, and hands out a tracer and an OpenTelemetry logs
API logger scoped to the configured component name.
"""

import functools
import logging
import logging.config
import sys
import traceback
from types import TracebackType
from typing import Callable, Optional, Sequence

from opentelemetry import trace
from opentelemetry._logs import Logger, NoOpLogger
from opentelemetry.trace import NoOpTracer, Span, Status, StatusCode, Tracer

from logs_to_azure import appender, azure_monitor
from logs_to_azure.exceptions import (
    ConfigurationError,
    TelemetryBridgeError,
    TelemetryBuildError,
)
from logs_to_azure.sdk import Customizer, TelemetrySdk, TelemetrySdkBuilder
from logs_to_azure.telemetry_config import TelemetryConfig

_LOGGER = logging.getLogger(__name__)

ExceptionHook = Callable[
    [type[BaseException], BaseException, Optional[TracebackType]], None
]


class BridgeTelemetry:
    """Build, install and expose the telemetry SDK for a process.

    :param config: Telemetry configuration values.
    :type config: TelemetryConfig
    :param customizers: Builder customizers wiring exporters. Defaults to the
        Azure Monitor exporters for ``config.connection_string``.
    :type customizers: Sequence[Customizer] | None
    """

    def __init__(
        self,
        config: TelemetryConfig,
        customizers: Optional[Sequence[Customizer]] = None,
    ) -> None:
        self.config = config
        self.resource = self.config.to_resource()
        self.sdk: Optional[TelemetrySdk] = None
        self._disabled = config.disabled
        self._shut_down = False

        if self._disabled:
            _LOGGER.debug("Telemetry disabled by configuration.")
            self._configure_logging(telemetry_enabled=False)
            return

        # The layout is checked before anything global changes
        layout = self.config.get_logging_layout(telemetry_enabled=True)

        try:
            self.sdk = self._build_and_install(customizers)
        except ConfigurationError:
            raise
        except Exception as exc:
            if not self.config.degrade_to_console:
                if isinstance(exc, TelemetryBridgeError):
                    raise
                raise TelemetryBuildError(
                    f"Failed to build telemetry SDK: {str(exc)}"
                ) from exc
            self._configure_logging(telemetry_enabled=False)
            self.logger.warning(
                "🪫 Telemetry unavailable, continuing with console logging only: %s",
                exc,
            )
            return

        logging.config.dictConfig(layout.to_dict_config())
        self.logger = self._service_logger()
        self.logger.info("🛰️ Telemetry initialised.")

    def _build_and_install(
        self, customizers: Optional[Sequence[Customizer]]
    ) -> TelemetrySdk:
        """Build the SDK from the customizers and install it on the appender.

        :return: The installed SDK.
        :rtype: TelemetrySdk
        """
        if customizers is None:
            customizers = [
                functools.partial(
                    azure_monitor.customize,
                    connection_string=self.config.get_connection_string(),
                )
            ]

        builder = TelemetrySdkBuilder(self.resource)
        for customizer in customizers:
            builder.customize(customizer)
        sdk = builder.build()

        try:
            appender.install(sdk)
        except Exception:
            sdk.shutdown()
            raise

        if self.config.register_global_providers:
            sdk.register_global()
        return sdk

    def _configure_logging(self, telemetry_enabled: bool) -> None:
        logging.config.dictConfig(self.config.get_logging_config(telemetry_enabled))
        self.logger = self._service_logger()

    def _service_logger(self) -> logging.Logger:
        service_logger = logging.getLogger(self.config.service_name)
        service_logger.setLevel(self._resolve_log_level())
        return service_logger

    def _resolve_log_level(self) -> int:
        """Translate configured log level to ``logging`` constants.

        :return: Numeric level recognised by the ``logging`` module.
        :rtype: int
        :raises ValueError: If the configured level is invalid.
        """
        level = self.config.log_level
        resolved_level = logging.getLevelName(level.strip().upper())
        if isinstance(resolved_level, int):
            return resolved_level
        raise ValueError(f"Invalid log level: {level!r}")

    @property
    def is_active(self) -> bool:
        """Whether records and spans are currently forwarded to the SDK."""
        return self.sdk is not None and not self._shut_down

    def get_tracer(self) -> Tracer:
        """Return the tracer scoped to the component name.

        :return: OpenTelemetry tracer, a no-op tracer without an SDK.
        :rtype: Tracer
        """
        if self.sdk is None:
            return NoOpTracer()
        return self.sdk.get_tracer(self.config.component_name)

    def start_span(self, name: Optional[str] = None) -> Span:
        """Start a span on the component tracer.

        The caller is responsible for ending the span.

        :param name: Span name, defaults to ``config.span_name``.
        :type name: str | None
        :return: The started span.
        :rtype: Span
        """
        return self.get_tracer().start_span(name or self.config.span_name)

    def get_otel_logger(self) -> Logger:
        """Return the OpenTelemetry logs API logger scoped to the component name.

        :return: Structured logger, a no-op logger without an SDK.
        :rtype: Logger
        """
        if self.sdk is None:
            return NoOpLogger(self.config.component_name)
        return self.sdk.get_logger(self.config.component_name)

    def get_logger(self) -> logging.Logger:
        """Return the configured service logger.

        :return: Service logger, forwarded to the telemetry sink via root.
        :rtype: logging.Logger
        """
        return self.logger

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        if not self.is_active:
            return False
        return self.sdk.force_flush(timeout_millis)  # type: ignore[union-attr]

    def shutdown(self) -> None:
        """Flush pending telemetry, uninstall the appender and release the SDK.

        Safe to call more than once.
        """
        if self._shut_down:
            return
        self._shut_down = True

        if self.sdk is None:
            return

        self.logger.info("🛬 Telemetry shutting down.")
        # Stop forwarding first so nothing is emitted into a closed pipeline
        if appender.installed_sdk() is self.sdk:
            appender.uninstall()
        self.sdk.shutdown()

    def __enter__(self) -> "BridgeTelemetry":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_value: Optional[BaseException],
        exc_traceback: Optional[TracebackType],
    ) -> None:
        self.shutdown()

    def add_telemetry_for_exception(self, exc: BaseException) -> None:
        """Record details about ``exc`` on the current span.

        :param exc: The exception to handle.
        :type exc: BaseException
        """
        span = trace.get_current_span()
        span.record_exception(exc)

    def _enrich_with_exception(
        self,
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_traceback: Optional[TracebackType],
    ) -> None:
        """Record an exception on the current span, or on a new one.

        :param exc_type: The type of the captured exception.
        :type exc_type: Type[BaseException]
        :param exc_value: The exception instance encountered.
        :type exc_value: BaseException
        :param exc_traceback: The traceback linked to the exception.
        :type exc_traceback: TracebackType | None
        """
        attributes = {
            "exception.type": exc_type.__name__,
            "exception.message": str(exc_value),
            "exception.stacktrace": "".join(
                traceback.format_exception(exc_type, exc_value, exc_traceback)
            ),
        }

        span: Span = trace.get_current_span()
        if span and span.is_recording():
            span.set_status(Status(StatusCode.ERROR))
            span.add_event(name="exception", attributes=attributes)
            return

        with self.get_tracer().start_as_current_span("exception_without_span") as new_span:
            new_span.set_status(Status(StatusCode.ERROR))
            new_span.add_event(name="exception", attributes=attributes)

    def _make_exception_hook(
        self,
        previous_hook: Optional[ExceptionHook],
    ) -> ExceptionHook:
        """Create a synchronous exception hook that enriches spans.

        :param previous_hook: Previously registered exception hook to chain.
        :type previous_hook: ExceptionHook | None
        :return: Exception hook that records telemetry and chains hooks.
        :rtype: ExceptionHook
        """

        def catch_exception(
            exc_type: type[BaseException],
            exc_value: BaseException,
            exc_traceback: Optional[TracebackType],
        ) -> None:
            if issubclass(exc_type, KeyboardInterrupt):
                sys.__excepthook__(exc_type, exc_value, exc_traceback)
                return

            self._enrich_with_exception(exc_type, exc_value, exc_traceback)

            if previous_hook:
                previous_hook(exc_type, exc_value, exc_traceback)

        return catch_exception

    def install_exception_hooks(
        self,
        custom_excepthook: Optional[ExceptionHook] = None,
    ) -> None:
        """Install a ``sys.excepthook`` that records unhandled exceptions.

        Last installed wins, so call this as the last thing in your main.

        :param custom_excepthook: Hook to install instead of the default chain.
        :type custom_excepthook: ExceptionHook | None
        """
        previous_hook = sys.excepthook
        sys.excepthook = custom_excepthook or self._make_exception_hook(previous_hook)
