"""
Process-level lifecycle for the telemetry bridge.

Entry points call `init` once during startup, before request handling
begins, and `shutdown` (or use `telemetry_session`) on the way out so that
buffered spans and log records are flushed.
"""

import atexit
import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator, Optional, Sequence

from logs_to_azure.base_telemetry import BridgeTelemetry
from logs_to_azure.sdk import Customizer
from logs_to_azure.telemetry_config import TelemetryConfig

_LOGGER = logging.getLogger(__name__)
_LOCK = Lock()
_BRIDGE: Optional[BridgeTelemetry] = None
_ATEXIT_REGISTERED = False


def init(
    config: Optional[TelemetryConfig] = None,
    customizers: Optional[Sequence[Customizer]] = None,
    register_atexit: bool = False,
) -> BridgeTelemetry:
    """Initialise the process telemetry bridge.

    Calling this again while a bridge is active returns the active bridge
    unchanged.

    :param config: Telemetry configuration, loaded from the environment if
        omitted.
    :type config: TelemetryConfig | None
    :param customizers: Builder customizers, defaults to Azure Monitor.
    :type customizers: Sequence[Customizer] | None
    :param register_atexit: Whether to shut the bridge down at interpreter exit.
    :type register_atexit: bool
    :return: The active bridge.
    :rtype: BridgeTelemetry
    :raises ConfigurationError: If the configuration is missing or invalid.
    """
    global _BRIDGE, _ATEXIT_REGISTERED
    with _LOCK:
        if _BRIDGE is not None:
            _LOGGER.debug("🧩 Telemetry bridge already initialised.")
            bridge = _BRIDGE
        else:
            if config is None:
                config = TelemetryConfig.from_env()
            bridge = _BRIDGE = BridgeTelemetry(config=config, customizers=customizers)

        if register_atexit and not _ATEXIT_REGISTERED:
            atexit.register(shutdown)
            _ATEXIT_REGISTERED = True
    return bridge


def get_bridge() -> Optional[BridgeTelemetry]:
    return _BRIDGE


def shutdown() -> None:
    """Shut down the active bridge, if any, flushing pending telemetry."""
    global _BRIDGE
    with _LOCK:
        bridge, _BRIDGE = _BRIDGE, None
    if bridge is not None:
        bridge.shutdown()


@contextmanager
def telemetry_session(
    config: Optional[TelemetryConfig] = None,
    customizers: Optional[Sequence[Customizer]] = None,
) -> Iterator[BridgeTelemetry]:
    """Run a block with the telemetry bridge initialised.

    A session joining a bridge that is already running leaves it running on
    exit. Only the session that initialised the bridge shuts it down.

    Example:
        with telemetry_session() as telemetry:
            telemetry.get_logger().info("Hello Application Insights")
    """
    running = get_bridge()
    bridge = init(config=config, customizers=customizers)
    try:
        yield bridge
    finally:
        if bridge is not running:
            shutdown()
