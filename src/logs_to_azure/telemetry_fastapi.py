"""FastAPI-specific wiring for the telemetry bridge."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from opentelemetry._logs import Logger
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.trace import Tracer

from logs_to_azure.base_telemetry import BridgeTelemetry

__all__ = [
    "FastAPITelemetry",
    "get_telemetry",
    "get_tracer",
    "get_otel_logger",
    "get_service_logger",
]

LOGGER = logging.getLogger(__name__)


class FastAPITelemetry(BridgeTelemetry):
    """Telemetry bridge specialised for FastAPI services."""

    def instrument_fastapi(self, app: FastAPI) -> None:
        """Instrument a FastAPI application instance.

        :param app: FastAPI application to instrument.
        :type app: FastAPI
        :raises ValueError: If the application is already instrumented.
        """
        if hasattr(app.state, "telemetry"):
            raise ValueError("FastAPI application already instrumented.")
        if self.sdk is not None:
            FastAPIInstrumentor.instrument_app(
                app,
                tracer_provider=self.sdk.tracer_provider,
                excluded_urls="/health",
            )
        else:
            LOGGER.debug("🪄 No telemetry SDK; FastAPI request tracing skipped.")
        app.state.telemetry = self

    @asynccontextmanager
    async def lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        """FastAPI lifespan that flushes telemetry when the app stops.

        Example:
            telemetry = FastAPITelemetry(TelemetryConfig.from_env())
            app = FastAPI(lifespan=telemetry.lifespan)
            telemetry.instrument_fastapi(app)
        """
        try:
            yield
        finally:
            self.shutdown()


def get_telemetry(request: Request) -> FastAPITelemetry:
    """Dependency returning the telemetry attached to the application.

    :raises RuntimeError: If the application was never instrumented.
    """
    telemetry = getattr(request.app.state, "telemetry", None)
    if not isinstance(telemetry, FastAPITelemetry):
        LOGGER.error("🌀 Telemetry missing on FastAPI application state.")
        raise RuntimeError("FastAPITelemetry missing on application state.")
    return telemetry


def get_tracer(request: Request) -> Tracer:
    return get_telemetry(request).get_tracer()


def get_otel_logger(request: Request) -> Logger:
    return get_telemetry(request).get_otel_logger()


def get_service_logger(request: Request) -> logging.Logger:
    return get_telemetry(request).get_logger()
