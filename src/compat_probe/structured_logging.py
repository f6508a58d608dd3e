"""
Structured logging configuration for compat-probe.

Emits machine-readable JSON events on stderr so that stdout stays
reserved for the rendered diagnostic list.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class EventLogger:
    """Structured logger emitting named events with key/value context."""

    def __init__(self, name: str = "compat_probe"):
        self.logger = logging.getLogger(f"compat_probe.{name}")
        self._setup_logger()
        self.run_context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.propagate = False
            self.logger.setLevel(logging.WARNING)

    def set_run_context(
        self,
        run_id: Optional[str] = None,
        artifact: Optional[str] = None,
    ) -> None:
        """Set run context attached to every event."""
        self.run_context = {}
        if run_id:
            self.run_context["run_id"] = run_id
        if artifact:
            self.run_context["artifact"] = artifact

    def clear_run_context(self) -> None:
        self.run_context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.run_context, **kwargs}
        getattr(self.logger, level.lower())(event_type, extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        self._log("info", event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        self._log("warning", event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        self._log("error", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        self._log("debug", event_type, **kwargs)


_pipeline_logger = EventLogger("pipeline")
_extractor_logger = EventLogger("extractor")
_build_logger = EventLogger("build")
_resolver_logger = EventLogger("resolver")

_ALL_LOGGERS = [_pipeline_logger, _extractor_logger, _build_logger, _resolver_logger]


def get_pipeline_logger() -> EventLogger:
    return _pipeline_logger


def get_extractor_logger() -> EventLogger:
    return _extractor_logger


def get_build_logger() -> EventLogger:
    return _build_logger


def get_resolver_logger() -> EventLogger:
    return _resolver_logger


def log_experiment_start(run_id: str, artifact: str, library: str, v1: str, v2: str) -> None:
    """Log experiment start and attach the run context to every logger."""
    set_run_context(run_id=run_id, artifact=artifact)
    _pipeline_logger.info(
        "experiment_started",
        library=library,
        old_version=v1,
        new_version=v2,
    )


def log_stage_complete(stage: str, **kwargs) -> None:
    """Log completion of one pipeline stage."""
    _pipeline_logger.info("stage_completed", stage=stage, **kwargs)


def log_dependency_upgraded(dependency: str, old_version: Optional[str], new_version: str) -> None:
    _pipeline_logger.info(
        "dependency_upgraded",
        dependency=dependency,
        previous_version=old_version,
        new_version=new_version,
    )


def log_dependency_not_found(dependency: str) -> None:
    _pipeline_logger.warning("dependency_not_found", dependency=dependency)


def log_build_finished(exit_status: int, line_count: int) -> None:
    """Log the end of the external build process."""
    if exit_status == 0:
        _build_logger.info("build_finished", exit_status=exit_status, lines=line_count)
    else:
        _build_logger.warning("build_finished", exit_status=exit_status, lines=line_count)


def log_line_unparsed(line: str, reason: str) -> None:
    _extractor_logger.debug("line_unparsed", line=line, reason=reason)


def log_extraction_complete(diagnostics: int, anchors: int, unparsed: int) -> None:
    _extractor_logger.info(
        "extraction_completed",
        diagnostics=diagnostics,
        anchor_lines=anchors,
        unparsed_lines=unparsed,
    )


def log_artifact_resolved(
    coordinate: str, path: str, cached: bool, duration_ms: Optional[int] = None
) -> None:
    log_data = {"coordinate": coordinate, "path": path, "cached": cached}
    if duration_ms is not None:
        log_data["duration_ms"] = duration_ms
    _resolver_logger.info("artifact_resolved", **log_data)


def set_run_context(run_id: Optional[str] = None, artifact: Optional[str] = None) -> None:
    """Set global run context for all loggers."""
    for logger in _ALL_LOGGERS:
        logger.set_run_context(run_id, artifact)


def clear_run_context() -> None:
    """Clear global run context."""
    for logger in _ALL_LOGGERS:
        logger.clear_run_context()


def configure_logging(log_level: str = "WARNING") -> None:
    """Configure logging levels for the application loggers."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    for logger in _ALL_LOGGERS:
        logger.logger.setLevel(level)
