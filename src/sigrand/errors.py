"""
Exception hierarchy for sigrand.

Every fatal condition the daemon can hit is represented by a subclass of
SigrandError so the CLI can report it uniformly and exit non-zero. A stale
pid is not an error: the supervisor logs it and carries on.
"""

from typing import Optional


class SigrandError(Exception):
    """Base class for all sigrand failures."""


class ConfigError(SigrandError):
    """The configuration file could not be read, parsed or written."""


class SingletonViolation(SigrandError):
    """Another live sigrand process already holds the recorded pid."""

    def __init__(self, pid: int):
        self.pid = pid
        super().__init__(f"sigrand already running at pid {pid}")


class CorpusError(SigrandError):
    """The signature corpus could not be read or contains no records."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{message}: {path}"
        super().__init__(message)


class PipeError(SigrandError):
    """The named pipe could not be created, opened or written."""


class SignalRegistrationError(SigrandError):
    """Shutdown signal handlers could not be installed."""
