"""Contract for runtime telemetry and structured logging sinks."""

from __future__ import annotations

import logging
from typing import Protocol

from rich.console import Console
from rich.logging import RichHandler


class Telemetry(Protocol):
    """Reports session events such as coin transfers and snapshot writes."""

    def emit(self, event_name: str, payload: dict) -> None:
        """Publish telemetry event to the configured sink."""


class LoggingTelemetry:
    """Telemetry sink that forwards events to a standard logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("geocoins.telemetry")

    def emit(self, event_name: str, payload: dict) -> None:
        self._logger.info(event_name, extra={"payload": payload})


class NullTelemetry:
    def emit(self, event_name: str, payload: dict) -> None:
        return None


def configure_logging(level: str = "INFO") -> None:
    """Route ``geocoins.*`` loggers to a rich console handler."""
    logger = logging.getLogger("geocoins")
    logger.setLevel(level.upper())
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True))
