"""
Telemetry configuration for the Azure logging bridge.

This module provides `TelemetryConfig`, the pydantic settings object that
supplies `BridgeTelemetry` with the Application Insights connection string,
service metadata for the OpenTelemetry resource, and the logging layout.
Values come from constructor arguments first and environment variables
second.
"""

import socket
from typing import Optional

from opentelemetry.sdk.resources import Resource
from pydantic import (
    AliasChoices,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from logs_to_azure.azure_monitor import EXPORTER_NAMESPACES
from logs_to_azure.connection_string import ConnectionString
from logs_to_azure.exceptions import ConfigurationError
from logs_to_azure.logging_layout import DEFAULT_LOG_FORMAT, LoggingLayout

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class TelemetryConfig(BaseSettings):
    """
    Configuration for the telemetry bridge using Pydantic BaseSettings.

    Order of preference for config:
    1. Config object passed to constructor
    2. Environment variables (automatically handled by Pydantic)
    """

    # Required unless telemetry is disabled
    connection_string: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices(
            "connection_string",
            "APPLICATIONINSIGHTS_CONNECTION_STRING",
        ),
    )

    service_name: str = Field(default="logs-to-azure")
    namespace_name: str = Field(default="")
    environment: str = Field(default="development")
    service_version: str = Field(default="0.0.0")

    # Instrumentation scope of the tracer and logs API logger we hand out
    component_name: str = Field(default="logs_to_azure")
    span_name: str = Field(default="logs-to-azure")

    log_level: str = Field(default="INFO")
    exporter_log_level: str = Field(default="WARNING")
    log_format: str = Field(default=DEFAULT_LOG_FORMAT)
    exporter_namespaces: list[str] = Field(
        default_factory=lambda: list(EXPORTER_NAMESPACES)
    )

    disabled: bool = Field(
        default=False,
        validation_alias=AliasChoices("disabled", "DISABLE_OTEL_LOGGING"),
    )
    degrade_to_console: bool = Field(default=False)
    register_global_providers: bool = Field(default=False)

    # Automatic attributes
    hostname: str = Field(default="", validate_default=True)
    service_instance_id: str = Field(default="", validate_default=True)

    model_config = SettingsConfigDict(
        env_prefix="",  # Use exact environment variable names (e.g., SERVICE_NAME)
        case_sensitive=False,  # So we can uppercase our env var
        hide_input_in_errors=True,
    )

    @classmethod
    def from_env(cls, **overrides) -> "TelemetryConfig":
        """
        Load configuration, failing with a `ConfigurationError`.

        :param overrides: Values that take precedence over the environment.
        :return: A TelemetryConfig instance
        :raises ConfigurationError: If the configuration is missing or invalid.
        """
        try:
            return cls(**overrides)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
                for error in e.errors(include_input=False)
            )
            raise ConfigurationError(f"Invalid telemetry configuration: {problems}")

    @field_validator("connection_string", mode="before")
    @classmethod
    def blank_connection_string_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("connection_string")
    @classmethod
    def check_connection_string(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        if v is not None:
            ConnectionString.parse(v.get_secret_value())
        return v

    @field_validator("disabled", mode="before")
    @classmethod
    def parse_disabled(cls, v):
        """Parse DISABLE_OTEL_LOGGING env var (string 'true'/'false' to bool)."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.strip().lower() == "true"
        return bool(v)

    @field_validator("exporter_namespaces")
    @classmethod
    def keep_exporter_namespaces(cls, v: list[str]) -> list[str]:
        """Always isolate the Azure exporter namespaces, whatever else is listed"""
        return v + [namespace for namespace in EXPORTER_NAMESPACES if namespace not in v]

    @field_validator("log_level", "exporter_log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        normalised_level = v.strip().upper()
        if normalised_level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v!r}")
        return normalised_level

    @field_validator("hostname", mode="before")
    @classmethod
    def set_hostname(cls, v):
        """Set hostname automatically if not provided"""
        return v or socket.gethostname()

    @field_validator("service_instance_id", mode="before")
    @classmethod
    def set_service_instance_id(cls, v, info):
        """Generate service instance ID from other fields"""
        if v:
            return v

        values = info.data
        service_name = values.get("service_name")
        environment = values.get("environment")
        hostname = values.get("hostname") or socket.gethostname()

        if all([service_name, environment, hostname]):
            return f"{service_name}-{environment}-{hostname}"
        return v

    @model_validator(mode="after")
    def require_connection_string(self) -> "TelemetryConfig":
        if not self.disabled and self.connection_string is None:
            raise ValueError(
                "connection_string is required unless DISABLE_OTEL_LOGGING is set"
            )
        return self

    def __str__(self):
        return f"TelemetryConfig(service_name={self.service_name}, namespace_name={self.namespace_name}, environment={self.environment}, service_instance_id={self.service_instance_id}, component_name={self.component_name}, disabled={self.disabled})"

    def get_connection_string(self) -> str:
        """Return the raw connection string for handing to the exporter."""
        if self.connection_string is None:
            raise ConfigurationError("Connection string is not configured")
        return self.connection_string.get_secret_value()

    def to_resource(self) -> Resource:
        """Returns an opentelemetry resource hydrated with config values"""
        attributes = {
            "service.name": self.service_name,
            "service.version": self.service_version,
            "service.instance.id": self.service_instance_id,
            "host.name": self.hostname,
            "deployment.environment": self.environment,
        }
        if self.namespace_name:
            attributes["service.namespace"] = self.namespace_name
        return Resource.create(attributes)

    def get_logging_layout(self, telemetry_enabled: bool = True) -> LoggingLayout:
        """Returns the validated logging layout for this configuration

        :raises ConfigurationError: If the layout would let exporter logs
            reach the telemetry sink.
        """
        try:
            return LoggingLayout.for_bridge(
                level=self.log_level,
                exporter_level=self.exporter_log_level,
                exporter_namespaces=self.exporter_namespaces,
                log_format=self.log_format,
                telemetry_enabled=telemetry_enabled,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid logging layout: {str(e)}")

    def get_logging_config(self, telemetry_enabled: bool = True) -> dict:
        """Returns a python logging config dict to standardise logging across services"""
        return self.get_logging_layout(telemetry_enabled).to_dict_config()
