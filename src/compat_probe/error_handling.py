"""
Error handling for compat-probe.

Defines the exception hierarchy raised by the pipeline stages and a
centralized error handler providing structured logging, error callbacks
and per-category statistics.
"""

import logging
import re
import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse


class CompatProbeError(Exception):
    """Base class for every fatal pipeline error."""


class ArchiveError(CompatProbeError):
    """The client archive could not be read or unpacked."""


class DescriptorNotFoundError(CompatProbeError):
    """No build descriptor exists under the extracted root."""


class DescriptorError(CompatProbeError):
    """The build descriptor could not be parsed or written back."""


class DependencyMatchError(CompatProbeError):
    """The requested dependency matched zero or several entries (strict policy)."""


class BuildLaunchError(CompatProbeError):
    """The external build command could not be spawned."""


class ResolutionError(CompatProbeError):
    """A remote artifact could not be downloaded."""


class ConfigurationError(CompatProbeError):
    """Configuration values are missing or invalid."""


class ErrorLevel(Enum):
    """Error severity levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ErrorCategory(Enum):
    """Error categories, one per pipeline concern."""

    PARSING = "PARSING"
    ARCHIVE = "ARCHIVE"
    DESCRIPTOR = "DESCRIPTOR"
    BUILD = "BUILD"
    NETWORK = "NETWORK"
    CONFIGURATION = "CONFIGURATION"
    FILESYSTEM = "FILESYSTEM"


@dataclass
class ErrorContext:
    """Structured error context information."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    traceback_info: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error context to dictionary for logging."""
        return {
            "level": self.level.value,
            "category": self.category.value,
            "message": self.message,
            "module": self.module,
            "function": self.function,
            "details": self.details,
            "exception_type": type(self.exception).__name__ if self.exception else None,
            "exception_message": str(self.exception) if self.exception else None,
            "traceback": self.traceback_info,
            "suggestions": self.suggestions,
        }


class ProbeLogger:
    """Logger that strips credentials from repository URLs before emitting."""

    _CREDENTIAL_URL = re.compile(r"(https?://[^@\s/]+:)[^@\s]+@")

    def __init__(self, name: str, level: int = logging.WARNING):
        """
        Initialize the logger.

        Args:
            name: Logger name
            level: Logging level
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def _sanitize_message(self, message: str) -> str:
        return self._CREDENTIAL_URL.sub(r"\1[REDACTED]@", message)

    def log_error_context(self, context: ErrorContext):
        """
        Log error context with appropriate level.

        Args:
            context: Error context to log
        """
        log_data = {
            "category": context.category.value,
            "module": context.module,
            "function": context.function,
            "details": {
                key: self._sanitize_message(value) if isinstance(value, str) else value
                for key, value in context.details.items()
            },
        }

        if context.exception:
            log_data["exception"] = type(context.exception).__name__

        if context.suggestions:
            log_data["suggestions"] = context.suggestions

        log_message = f"{self._sanitize_message(context.message)} | {log_data}"
        self.logger.log(getattr(logging, context.level.value), log_message)


ErrorCallback = Callable[[ErrorContext], None]


class ErrorHandler:
    """
    Centralized error handler for consistent error management.

    Provides logging, callbacks, and structured error handling
    for the pipeline stages.
    """

    def __init__(
        self,
        logger_name: str = "compat_probe",
        log_level: int = logging.WARNING,
        enable_callbacks: bool = True,
    ):
        self.logger = ProbeLogger(logger_name, log_level)
        self.enable_callbacks = enable_callbacks
        self.error_callbacks: Dict[ErrorCategory, List[ErrorCallback]] = {}
        self.global_callbacks: List[ErrorCallback] = []
        self.error_stats: Dict[str, int] = {}

    def register_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ):
        """
        Register error callback.

        Args:
            callback: Function to call on errors
            category: Error category to filter, None for all errors
        """
        if not self.enable_callbacks:
            return

        if category is None:
            self.global_callbacks.append(callback)
        else:
            self.error_callbacks.setdefault(category, []).append(callback)

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        """
        Handle an error with structured logging and callbacks.

        Args:
            level: Error severity level
            category: Error category
            message: Error message
            module: Module where error occurred
            function: Function where error occurred
            exception: Optional exception object
            details: Additional error details
            suggestions: Suggested fixes

        Returns:
            ErrorContext: The created error context
        """
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            traceback_info=(
                "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
                if exception
                else None
            ),
            suggestions=suggestions or [],
        )

        stat_key = f"{category.value}_{level.value}"
        self.error_stats[stat_key] = self.error_stats.get(stat_key, 0) + 1

        self.logger.log_error_context(context)

        if self.enable_callbacks:
            for callback in self.error_callbacks.get(category, []) + self.global_callbacks:
                try:
                    callback(context)
                except Exception as cb_error:
                    # Callback failures never break the pipeline
                    self.logger.logger.error(f"Error in callback: {cb_error}")

        return context

    def warning(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle warning level error."""
        return self.handle_error(
            ErrorLevel.WARNING, category, message, module, function, **kwargs
        )

    def error(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle error level error."""
        return self.handle_error(
            ErrorLevel.ERROR, category, message, module, function, **kwargs
        )

    def get_error_stats(self) -> Dict[str, int]:
        """Get error statistics."""
        return self.error_stats.copy()


_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """
    Get the global error handler instance.

    Returns:
        ErrorHandler: Global error handler
    """
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(
    log_level: int = logging.WARNING,
    enable_callbacks: bool = True,
    logger_name: str = "compat_probe",
) -> ErrorHandler:
    """
    Setup global error handling configuration.

    Args:
        log_level: Logging level
        enable_callbacks: Whether to enable callbacks
        logger_name: Logger name

    Returns:
        ErrorHandler: Configured error handler
    """
    global _global_error_handler
    _global_error_handler = ErrorHandler(logger_name, log_level, enable_callbacks)
    return _global_error_handler


# Maps each fatal exception type to the category it is reported under.
CATEGORY_BY_ERROR = {
    ArchiveError: ErrorCategory.ARCHIVE,
    DescriptorNotFoundError: ErrorCategory.FILESYSTEM,
    DescriptorError: ErrorCategory.DESCRIPTOR,
    DependencyMatchError: ErrorCategory.DESCRIPTOR,
    BuildLaunchError: ErrorCategory.BUILD,
    ResolutionError: ErrorCategory.NETWORK,
    ConfigurationError: ErrorCategory.CONFIGURATION,
}


def category_for(error: Exception) -> ErrorCategory:
    """Return the reporting category of a pipeline exception."""
    for error_type, category in CATEGORY_BY_ERROR.items():
        if isinstance(error, error_type):
            return category
    return ErrorCategory.FILESYSTEM


def log_parsing_error(
    message: str,
    module: str,
    function: str,
    line_number: Optional[int] = None,
    file_path: Optional[str] = None,
    exception: Optional[Exception] = None,
):
    """
    Convenience function for logging non-fatal parsing errors.

    Args:
        message: Error message
        module: Module name
        function: Function name
        line_number: Line number where error occurred
        file_path: File being parsed
        exception: Optional exception
    """
    details = {}
    if line_number is not None:
        details["line_number"] = line_number
    if file_path is not None:
        details["file_path"] = Path(file_path).name

    get_error_handler().handle_error(
        ErrorLevel.DEBUG,
        ErrorCategory.PARSING,
        message,
        module,
        function,
        details=details,
        exception=exception,
    )


def log_network_error(
    message: str,
    module: str,
    function: str,
    url: Optional[str] = None,
    status_code: Optional[int] = None,
    exception: Optional[Exception] = None,
):
    """
    Convenience function for logging network errors.

    Args:
        message: Error message
        module: Module name
        function: Function name
        url: URL that failed (will be sanitized)
        status_code: HTTP status code
        exception: Optional exception
    """
    details = {}
    if url is not None:
        parsed = urlparse(url)
        sanitized_url = f"{parsed.scheme}://{parsed.hostname}"
        if parsed.port:
            sanitized_url += f":{parsed.port}"
        sanitized_url += parsed.path
        details["url"] = sanitized_url

    if status_code is not None:
        details["status_code"] = status_code

    suggestions = [
        "Check network connectivity",
        "Verify the repository URL and the artifact coordinate",
    ]

    get_error_handler().error(
        ErrorCategory.NETWORK,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=suggestions,
    )
