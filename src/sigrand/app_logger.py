"""
Application logger used by every sigrand component.

Components log through the AppLogger protocol with a LogContext naming the
component, so the output can be filtered per component and rendered either
as JSON lines or as plain text.
"""

import json
import logging
import os
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Protocol


@dataclass
class LogContext:
    """Structured log context information."""

    component: str
    operation: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging, dropping unset fields."""
        result = asdict(self)
        return {k: v for k, v in result.items() if v is not None}


class AppLogger(Protocol):
    """Protocol for application logging interface."""

    def debug(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None: ...

    def info(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None: ...

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None: ...

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None: ...


def format_message(
    format_type: str, message: str, context: Optional[LogContext] = None, **kwargs
) -> str:
    """
    Render a message with its context and keyword metadata.

    Args:
        format_type: "structured" for a JSON object, anything else for text
        message: The log message
        context: Optional component context
        **kwargs: Extra fields attached to the record

    Returns:
        The formatted message
    """
    if format_type == "structured":
        log_data: Dict[str, Any] = {
            "message": message,
            "timestamp": time.time(),
            "pid": os.getpid(),
        }
        if context:
            log_data.update(context.to_dict())
        if kwargs:
            log_data["additional"] = kwargs
        return json.dumps(log_data, default=str)

    parts = [message]
    if context:
        parts.append(f"[{context.component}]")
        if context.operation:
            parts.append(f"({context.operation})")
    if kwargs:
        parts.append("[" + ", ".join(f"{k}={v}" for k, v in kwargs.items()) + "]")
    return " ".join(parts)


class StandardAppLogger:
    """Standard implementation using Python's logging module."""

    def __init__(self, logger_name: str = "sigrand", format_type: str = "simple"):
        self._logger = logging.getLogger(logger_name)
        self._format_type = format_type

    def debug(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        self._logger.debug(format_message(self._format_type, message, context, **kwargs))

    def info(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        self._logger.info(format_message(self._format_type, message, context, **kwargs))

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        self._logger.warning(
            format_message(self._format_type, message, context, **kwargs)
        )

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        self._logger.error(
            format_message(self._format_type, message, context, **kwargs),
            exc_info=exc_info,
        )


class NullAppLogger:
    """Null object implementation for testing or disabled logging."""

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        pass

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        pass

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        pass

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        pass


_default_logger: Optional[AppLogger] = None


def get_default_logger() -> AppLogger:
    """Get the default application logger, building one from the environment."""
    global _default_logger
    if _default_logger is None:
        from sigrand.logging_config import create_logger_from_env

        _default_logger = create_logger_from_env()
    return _default_logger


def set_default_logger(logger: Optional[AppLogger]) -> None:
    """Set (or with None, reset) the default application logger."""
    global _default_logger
    _default_logger = logger
