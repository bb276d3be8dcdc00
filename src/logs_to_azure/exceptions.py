class TelemetryBridgeError(Exception):
    """A base class for all telemetry bridge errors"""

    @property
    def message(self) -> str:
        """
        Returns the message for the exception.

        :return str: The message string.
        """
        return self.args[0] if len(self.args) > 0 else "<no message>"


class ConfigurationError(TelemetryBridgeError, ValueError):
    """Raised when telemetry configuration is missing or invalid."""

    pass


class AppenderAlreadyInstalledError(ConfigurationError):
    """Raised when a different SDK is already installed on the appender."""

    pass


class TelemetryBuildError(TelemetryBridgeError):
    """Raised when the telemetry SDK cannot be built or installed."""

    pass
