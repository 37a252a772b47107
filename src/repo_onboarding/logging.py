"""Logging helpers and the injectable pipeline telemetry sink."""

import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

_LOGGER_NAME = "repo_onboarding"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the repo_onboarding hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    level: str = "INFO", log_file: Optional[Path] = None
) -> logging.Logger:
    """Configure console output (and an optional file sink) for the package."""
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers so repeated CLI invocations don't duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(
        logging.Formatter("[repo-onboarding] %(levelname)s %(message)s")
    )
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


# ── Telemetry ─────────────────────────────────────────────────────────────

STAGE_STARTED = "stage_started"
STAGE_COMPLETED = "stage_completed"
STAGE_FAILED = "stage_failed"
FALLBACK_TRIGGERED = "fallback_triggered"
FILE_SKIPPED = "file_skipped"

_LEVELS = {
    STAGE_STARTED: logging.INFO,
    STAGE_COMPLETED: logging.INFO,
    STAGE_FAILED: logging.ERROR,
    FALLBACK_TRIGGERED: logging.WARNING,
    FILE_SKIPPED: logging.DEBUG,
}


class TelemetryEvent(BaseModel):
    """One discrete pipeline observation."""

    kind: str
    stage: str
    detail: str = ""
    fields: dict[str, Any] = Field(default_factory=dict)


class Telemetry:
    """Records pipeline events in order and mirrors them to the logger.

    A single instance is handed to every component of a run so tests can
    assert on what happened without scraping log output.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or get_logger("pipeline")
        self.events: list[TelemetryEvent] = []

    def emit(self, kind: str, stage: str, detail: str = "", /, **fields: Any) -> None:
        event = TelemetryEvent(kind=kind, stage=stage, detail=detail, fields=fields)
        self.events.append(event)
        extra = " ".join(f"{k}={v}" for k, v in fields.items())
        self._logger.log(
            _LEVELS.get(kind, logging.INFO),
            "%s %s %s %s", stage, kind, detail, extra,
        )

    def stage_started(self, stage: str, **fields: Any) -> None:
        self.emit(STAGE_STARTED, stage, **fields)

    def stage_completed(self, stage: str, **fields: Any) -> None:
        self.emit(STAGE_COMPLETED, stage, **fields)

    def stage_failed(self, stage: str, detail: str, **fields: Any) -> None:
        self.emit(STAGE_FAILED, stage, detail, **fields)

    def fallback(self, stage: str, reason: str, **fields: Any) -> None:
        self.emit(FALLBACK_TRIGGERED, stage, reason, **fields)

    def of_kind(self, kind: str) -> list[TelemetryEvent]:
        return [e for e in self.events if e.kind == kind]
