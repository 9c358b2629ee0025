"""
Single-instance supervision for the sigrand daemon.

The ProcessSupervisor is the only component that touches the persisted pid.
It changes it at exactly three points: cleared before the instance claims
singleton status, set once the worker process exists, and cleared again on
shutdown. Process-level operations go through a ProcessPlatform so the
fork-based POSIX implementation can be swapped for a spawn-based one, or a
fake in tests.
"""

import os
import signal
import subprocess
import sys
import threading
from pathlib import Path
from typing import List, Optional, Protocol

from sigrand.app_logger import LogContext, get_default_logger
from sigrand.config import ConfigManager, DaemonState
from sigrand.errors import SigrandError, SignalRegistrationError, SingletonViolation

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ProcessPlatform(Protocol):
    """Process primitives the supervisor relies on."""

    def getpid(self) -> int: ...

    def is_alive(self, pid: int) -> bool: ...

    def detach(self) -> Optional[int]:
        """
        Start the worker process.

        Returns:
            The worker's pid in the supervising process, None in the worker
        """
        ...

    def terminate(self, pid: int) -> None: ...


class PosixPlatform:
    """fork()-based detachment for POSIX systems."""

    def getpid(self) -> int:
        return os.getpid()

    def is_alive(self, pid: int) -> bool:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists, but belongs to someone else
            return True
        return True

    def detach(self) -> Optional[int]:
        pid = os.fork()
        if pid > 0:
            return pid
        os.setsid()
        return None

    def terminate(self, pid: int) -> None:
        os.kill(pid, signal.SIGTERM)


class SpawnPlatform(PosixPlatform):
    """
    Detachment for platforms without fork().

    Relaunches the program in foreground mode as a new session. The caller
    always continues as the supervising process.
    """

    def __init__(self, argv: Optional[List[str]] = None, config_path: Optional[Path] = None):
        if argv is None:
            argv = [sys.executable, "-m", "sigrand"]
            if config_path is not None:
                argv += ["--config", str(config_path)]
            argv.append("--foreground")
        self.argv = argv

    def detach(self) -> Optional[int]:
        process = subprocess.Popen(
            self.argv,
            stdin=subprocess.DEVNULL,
            start_new_session=True,
        )
        return process.pid


def default_platform(config_path: Optional[Path] = None) -> ProcessPlatform:
    if hasattr(os, "fork"):
        return PosixPlatform()
    return SpawnPlatform(config_path=config_path)


class ProcessSupervisor:
    """Owns the singleton invariant and the cooperative stop flag."""

    def __init__(
        self,
        config_manager: ConfigManager,
        state: DaemonState,
        platform: Optional[ProcessPlatform] = None,
    ):
        self.config_manager = config_manager
        self.state = state
        self.platform = platform or default_platform(config_manager.config_path)
        self._stop_event = threading.Event()
        self._logger = get_default_logger()
        self._log_context = LogContext(component="ProcessSupervisor")

    def check_singleton(self) -> None:
        """
        Refuse to start if the recorded pid belongs to a live process.

        Raises:
            SingletonViolation: If another instance is running
        """
        pid = self.state.pid
        if pid is None:
            return
        if pid <= 1:
            self._logger.warning(
                "Found invalid pid; ignoring", context=self._log_context, pid=pid
            )
            return
        if pid == self.platform.getpid():
            return
        if self.platform.is_alive(pid):
            self._logger.debug("Recorded pid is alive", context=self._log_context, pid=pid)
            raise SingletonViolation(pid)
        self._logger.warning("Ignoring stale pid", context=self._log_context, pid=pid)

    def release_claim(self) -> None:
        """Clear the recorded pid and persist the cleared state."""
        self.state.pid = None
        self.config_manager.save(self.state)

    def _record_pid(self, pid: int) -> None:
        self.state.pid = pid
        self.config_manager.save(self.state)

    def detach(self) -> bool:
        """
        Split into supervising and worker processes.

        Returns:
            True in the supervising process, which should exit 0; False in
            the worker, which should carry on into the publish loop
        """
        try:
            child = self.platform.detach()
        except OSError as e:
            raise SigrandError(f"Failed to detach worker process: {e}") from e
        if child is None:
            self._log_context = LogContext(component="ProcessSupervisor", operation="worker")
            return False

        self._logger.info(
            "Forked child process; exiting", context=self._log_context, child=child
        )
        self._record_pid(child)
        return True

    def claim_foreground(self) -> None:
        """Record this process as the running instance without detaching."""
        self._record_pid(self.platform.getpid())

    def _handle_signal(self, signum, frame) -> None:
        self._stop_event.set()

    def install_signal_handlers(self) -> None:
        """
        Make SIGINT and SIGTERM request a cooperative stop.

        Raises:
            SignalRegistrationError: If a handler cannot be installed
        """
        for signum in SHUTDOWN_SIGNALS:
            try:
                signal.signal(signum, self._handle_signal)
            except (ValueError, OSError) as e:
                raise SignalRegistrationError(
                    f"Cannot install handler for {signal.Signals(signum).name}: {e}"
                ) from e

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def request_stop(self) -> None:
        self._stop_event.set()

    def shutdown(self) -> None:
        """Restore the no-instance-running state."""
        self._logger.debug("Shutting down", context=self._log_context)
        self.release_claim()

    def stop_running_instance(self) -> bool:
        """
        Ask the recorded instance to shut down.

        Returns:
            True if SIGTERM was delivered, False if nothing was running
        """
        pid = self.state.pid
        if pid is None or pid <= 1 or not self.platform.is_alive(pid):
            self._logger.info("No running instance", context=self._log_context, pid=pid)
            return False
        self._logger.info("Sending SIGTERM", context=self._log_context, pid=pid)
        try:
            self.platform.terminate(pid)
        except ProcessLookupError:
            return False
        return True
