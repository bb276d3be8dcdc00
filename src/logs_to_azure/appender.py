"""
Process-wide logging appender for the telemetry bridge.

`install` registers one `TelemetrySdk` as the target of every
`TelemetryLogHandler` in the process. Handlers can be created before the SDK
exists (``dictConfig`` builds them from the logging layout); they resolve the
installed SDK when a record is emitted and drop the record if nothing is
installed yet.
"""

import logging
from threading import Lock
from typing import TYPE_CHECKING, Optional

from opentelemetry.sdk._logs import LoggingHandler as OTelLoggingHandler

from logs_to_azure.exceptions import AppenderAlreadyInstalledError

if TYPE_CHECKING:
    from logs_to_azure.sdk import TelemetrySdk

_LOGGER = logging.getLogger(__name__)
_LOCK = Lock()
_INSTALLED: Optional["TelemetrySdk"] = None


def install(sdk: "TelemetrySdk") -> None:
    """Install ``sdk`` as the target of the logging appender.

    Installing the SDK that is already installed is a no-op.

    :param sdk: The SDK to forward log records to.
    :type sdk: TelemetrySdk
    :raises AppenderAlreadyInstalledError: If another SDK is installed.
    """
    global _INSTALLED
    with _LOCK:
        if _INSTALLED is sdk:
            _LOGGER.debug("🧩 Telemetry SDK already installed on appender.")
            return
        if _INSTALLED is not None:
            raise AppenderAlreadyInstalledError(
                "A different telemetry SDK is already installed on the appender."
            )
        _INSTALLED = sdk
    _LOGGER.debug("🔌 Telemetry SDK installed on appender.")


def uninstall() -> Optional["TelemetrySdk"]:
    """Remove the installed SDK, returning it if there was one."""
    global _INSTALLED
    with _LOCK:
        previous, _INSTALLED = _INSTALLED, None
    return previous


def installed_sdk() -> Optional["TelemetrySdk"]:
    return _INSTALLED


def is_installed() -> bool:
    return _INSTALLED is not None


class TelemetryLogHandler(logging.Handler):
    """Forward Python logging records to the installed telemetry SDK.

    :param level: Logging level applied to the handler, defaults to
        logging.NOTSET
    :type level: int, optional
    """

    def __init__(self, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._sdk: Optional["TelemetrySdk"] = None
        self._otel_handler: Optional[OTelLoggingHandler] = None

    def _resolve_handler(self) -> Optional[OTelLoggingHandler]:
        """Return an OpenTelemetry handler bound to the installed SDK.

        The wrapped handler is rebuilt whenever the installed SDK changes.

        :return: The OpenTelemetry handler, or None if nothing is installed.
        :rtype: OTelLoggingHandler | None
        """
        sdk = _INSTALLED
        if sdk is None:
            return None
        if sdk is not self._sdk or self._otel_handler is None:
            self._otel_handler = OTelLoggingHandler(
                level=logging.NOTSET,
                logger_provider=sdk.logger_provider,
            )
            self._sdk = sdk
        return self._otel_handler

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record via the installed SDK's log pipeline.

        :param record: The logging record to forward.
        :type record: logging.LogRecord
        """
        handler = self._resolve_handler()
        if handler is None:
            return
        try:
            handler.emit(record)
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        if self._otel_handler is not None and _INSTALLED is self._sdk:
            self._otel_handler.flush()

    def close(self) -> None:
        # The SDK owns the providers; bridge shutdown releases them.
        self._otel_handler = None
        self._sdk = None
        super().close()
