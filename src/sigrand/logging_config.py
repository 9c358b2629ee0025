"""
Logging configuration with verbosity control and multiple handlers.

Supports console, plain file and rotating file output, three message formats
and per-component filtering. Settings start from the SIGRAND_LOG_* environment
variables; the CLI applies its own options on top.
"""

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from sigrand.app_logger import AppLogger, LogContext, format_message


class LogHandler(Enum):
    """Available log handler types."""

    CONSOLE = "console"
    FILE = "file"
    ROTATING_FILE = "rotating_file"
    NULL = "null"


class LogFormat(Enum):
    """Available log format types."""

    STRUCTURED = "structured"  # JSON lines
    SIMPLE = "simple"
    DETAILED = "detailed"  # with timestamps


class VerbosityLevel(Enum):
    """Verbosity levels for controlling log output."""

    QUIET = 1  # warnings and errors
    NORMAL = 2
    VERBOSE = 3  # debug


_VERBOSITY_TO_LEVEL = {
    VerbosityLevel.QUIET: "WARNING",
    VerbosityLevel.NORMAL: "INFO",
    VerbosityLevel.VERBOSE: "DEBUG",
}

_FORMAT_NAMES = {
    "json": LogFormat.STRUCTURED,
    "structured": LogFormat.STRUCTURED,
    "simple": LogFormat.SIMPLE,
    "detailed": LogFormat.DETAILED,
}


@dataclass
class HandlerConfig:
    """Configuration for a single log handler."""

    type: LogHandler
    level: Optional[str] = None  # None means the global level
    filename: Optional[str] = None
    max_bytes: int = 1024 * 1024
    backup_count: int = 3
    date_format: str = "%Y-%m-%d %H:%M:%S"


@dataclass
class LoggingConfig:
    """Complete logging configuration."""

    verbosity: VerbosityLevel = VerbosityLevel.NORMAL
    global_level: Optional[str] = None
    global_format: LogFormat = LogFormat.SIMPLE
    logger_name: str = "sigrand"
    handlers: List[HandlerConfig] = field(
        default_factory=lambda: [HandlerConfig(type=LogHandler.CONSOLE)]
    )
    exclude_components: List[str] = field(default_factory=list)

    @property
    def effective_level(self) -> str:
        """Explicit level if one was given, else the verbosity's level."""
        if self.global_level:
            return self.global_level.upper()
        return _VERBOSITY_TO_LEVEL[self.verbosity]


class ConfigurableAppLogger:
    """AppLogger backed by a configured Python logger."""

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config or LoggingConfig()
        self._python_logger = logging.getLogger(self.config.logger_name)
        self._setup_logging()

    def _setup_logging(self) -> None:
        self._python_logger.setLevel(self.config.effective_level)
        for handler in list(self._python_logger.handlers):
            self._python_logger.removeHandler(handler)
            handler.close()

        for handler_config in self.config.handlers:
            self._python_logger.addHandler(self._create_handler(handler_config))

        # Avoid duplicates through the root logger
        self._python_logger.propagate = False

    def _create_handler(self, config: HandlerConfig) -> logging.Handler:
        if config.type == LogHandler.CONSOLE:
            handler: logging.Handler = logging.StreamHandler(sys.stderr)
        elif config.type == LogHandler.NULL:
            return logging.NullHandler()
        else:
            if not config.filename:
                raise ValueError(f"{config.type.value} handler requires a filename")
            Path(config.filename).parent.mkdir(parents=True, exist_ok=True)
            if config.type == LogHandler.ROTATING_FILE:
                handler = logging.handlers.RotatingFileHandler(
                    filename=config.filename,
                    maxBytes=config.max_bytes,
                    backupCount=config.backup_count,
                )
            else:
                handler = logging.FileHandler(config.filename)

        handler.setLevel((config.level or self.config.effective_level).upper())
        handler.setFormatter(self._create_formatter(config))
        return handler

    def _create_formatter(self, config: HandlerConfig) -> logging.Formatter:
        format_type = self.config.global_format
        if format_type == LogFormat.STRUCTURED:
            # message is already a JSON object
            return logging.Formatter("%(message)s")
        if format_type == LogFormat.DETAILED:
            return logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt=config.date_format,
            )
        return logging.Formatter("%(levelname)s: %(message)s")

    def should_log_component(self, component: str) -> bool:
        return component not in self.config.exclude_components

    def reconfigure(self, new_config: LoggingConfig) -> None:
        """Reconfigure logging with new settings."""
        self.config = new_config
        self._python_logger = logging.getLogger(self.config.logger_name)
        self._setup_logging()

    def _emit(
        self,
        level: int,
        message: str,
        context: Optional[LogContext],
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        if context and not self.should_log_component(context.component):
            return
        format_type = (
            "structured"
            if self.config.global_format == LogFormat.STRUCTURED
            else "simple"
        )
        self._python_logger.log(
            level, format_message(format_type, message, context, **kwargs),
            exc_info=exc_info,
        )

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        self._emit(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        self._emit(logging.INFO, message, context, **kwargs)

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        self._emit(logging.WARNING, message, context, **kwargs)

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        self._emit(logging.ERROR, message, context, exc_info=exc_info, **kwargs)


def parse_log_format(name: Optional[str]) -> LogFormat:
    """Map a user-facing format name onto a LogFormat, defaulting to simple."""
    return _FORMAT_NAMES.get((name or "simple").lower(), LogFormat.SIMPLE)


def config_from_env() -> LoggingConfig:
    """Build a LoggingConfig from SIGRAND_LOG_* environment variables."""
    config = LoggingConfig()

    verbosity_map = {
        "quiet": VerbosityLevel.QUIET,
        "normal": VerbosityLevel.NORMAL,
        "verbose": VerbosityLevel.VERBOSE,
    }
    config.verbosity = verbosity_map.get(
        os.getenv("SIGRAND_LOG_VERBOSITY", "normal").lower(), VerbosityLevel.NORMAL
    )

    if level := os.getenv("SIGRAND_LOG_LEVEL"):
        config.global_level = level.upper()

    config.global_format = parse_log_format(os.getenv("SIGRAND_LOG_FORMAT"))

    handler_configs = []
    log_file = os.getenv("SIGRAND_LOG_FILE", "")
    for name in os.getenv("SIGRAND_LOG_HANDLERS", "console").split(","):
        name = name.strip().lower()
        if name == "console":
            handler_configs.append(HandlerConfig(type=LogHandler.CONSOLE))
        elif name in ("file", "rotating") and log_file:
            handler_type = LogHandler.FILE if name == "file" else LogHandler.ROTATING_FILE
            handler_configs.append(HandlerConfig(type=handler_type, filename=log_file))
        elif name == "null":
            handler_configs.append(HandlerConfig(type=LogHandler.NULL))
    if handler_configs:
        config.handlers = handler_configs

    if exclude := os.getenv("SIGRAND_LOG_EXCLUDE"):
        config.exclude_components = [c.strip() for c in exclude.split(",")]

    return config


def create_logger_from_env() -> AppLogger:
    """Create logger from SIGRAND_LOG_* environment variables."""
    return ConfigurableAppLogger(config_from_env())
