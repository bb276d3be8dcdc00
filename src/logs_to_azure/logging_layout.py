"""
Logging layout for the telemetry bridge.

`LoggingLayout` enumerates the sinks attached to the root logger and the
per-namespace overrides on top of it. The important override is the one for
the exporter's own namespaces: they go to the console only and do not
propagate, so the exporter's diagnostics are never captured by the telemetry
sink and re-exported. The layout is validated when it is built and rendered
into a ``logging.config.dictConfig`` dictionary.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from logs_to_azure.appender import TelemetryLogHandler

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class Sink(str, Enum):
    CONSOLE = "console"
    TELEMETRY = "telemetry"


def _is_within(name: str, namespace: str) -> bool:
    return name == namespace or name.startswith(f"{namespace}.")


class LoggerRoute(BaseModel):
    """Routing override for a single logger namespace."""

    name: str
    level: str = "INFO"
    sinks: list[Sink] = Field(default_factory=list)
    propagate: bool = True

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Route name must not be empty, use root_sinks instead")
        return v.strip()

    @field_validator("level")
    @classmethod
    def check_level(cls, v: str) -> str:
        return _normalise_level(v)


def _normalise_level(level: str) -> str:
    normalised_level = level.strip().upper()
    if normalised_level not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"):
        raise ValueError(f"Invalid log level: {level!r}")
    return normalised_level


class LoggingLayout(BaseModel):
    """Sinks, routes and exporter isolation rules for the process."""

    level: str = "INFO"
    log_format: str = DEFAULT_LOG_FORMAT
    root_sinks: list[Sink] = Field(default_factory=lambda: [Sink.CONSOLE])
    routes: list[LoggerRoute] = Field(default_factory=list)
    exporter_namespaces: list[str] = Field(default_factory=list)

    @field_validator("level")
    @classmethod
    def check_level(cls, v: str) -> str:
        return _normalise_level(v)

    @model_validator(mode="after")
    def check_exporter_isolation(self) -> "LoggingLayout":
        """Reject layouts where exporter logs could reach the telemetry sink."""
        routes_by_name = {route.name: route for route in self.routes}

        for namespace in self.exporter_namespaces:
            route = routes_by_name.get(namespace)
            if route is None:
                raise ValueError(f"Exporter namespace {namespace!r} has no route")
            if route.propagate:
                raise ValueError(
                    f"Exporter namespace {namespace!r} must not propagate to the root logger"
                )

        for route in self.routes:
            if Sink.TELEMETRY not in route.sinks:
                continue
            for namespace in self.exporter_namespaces:
                if _is_within(route.name, namespace):
                    raise ValueError(
                        f"Logger {route.name!r} is inside exporter namespace "
                        f"{namespace!r} and cannot use the telemetry sink"
                    )
        return self

    @property
    def forwards_to_telemetry(self) -> bool:
        return Sink.TELEMETRY in self.root_sinks or any(
            Sink.TELEMETRY in route.sinks for route in self.routes
        )

    @classmethod
    def for_bridge(
        cls,
        level: str,
        exporter_level: str,
        exporter_namespaces: list[str],
        log_format: str = DEFAULT_LOG_FORMAT,
        telemetry_enabled: bool = True,
    ) -> "LoggingLayout":
        """Build the standard bridge layout.

        Root gets the console sink and, when enabled, the telemetry sink.
        Each exporter namespace writes to the console only.
        """
        root_sinks = [Sink.CONSOLE]
        if telemetry_enabled:
            root_sinks.append(Sink.TELEMETRY)

        return cls(
            level=level,
            log_format=log_format,
            root_sinks=root_sinks,
            routes=[
                LoggerRoute(
                    name=namespace,
                    level=exporter_level,
                    sinks=[Sink.CONSOLE],
                    propagate=False,
                )
                for namespace in exporter_namespaces
            ],
            exporter_namespaces=exporter_namespaces,
        )

    def to_dict_config(self) -> dict:
        """Returns a python logging config dict for this layout"""
        handlers: dict[str, dict] = {
            Sink.CONSOLE.value: {
                "level": self.level,
                "formatter": "standard",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",  # Default is stderr
            },
        }
        if self.forwards_to_telemetry:
            handlers[Sink.TELEMETRY.value] = {
                "()": TelemetryLogHandler,
                "level": self.level,
            }

        loggers: dict[str, dict] = {
            "": {  # root logger
                "level": self.level,
                "handlers": [sink.value for sink in self.root_sinks],
            },
        }
        for route in self.routes:
            loggers[route.name] = {
                "level": route.level,
                "handlers": [sink.value for sink in route.sinks],
                "propagate": route.propagate,
            }

        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"format": self.log_format},
            },
            "handlers": handlers,
            "loggers": loggers,
        }
