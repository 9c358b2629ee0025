"""
Top-level daemon that wires configuration, supervision and publishing.

SigrandDaemon.run() performs the whole lifecycle: singleton check, pipe
setup, detachment, signal registration, the publish loop, and the final pid
cleanup. It returns a process exit code rather than raising.
"""

from typing import Optional

from sigrand.app_logger import LogContext, get_default_logger
from sigrand.config import ConfigManager, DaemonState
from sigrand.errors import SigrandError, SingletonViolation
from sigrand.publisher import CYCLE_DELAY, PublishLoop
from sigrand.selector import ReservoirSelector
from sigrand.supervisor import ProcessPlatform, ProcessSupervisor


class SigrandDaemon:
    """Runs one sigrand instance against a persisted DaemonState."""

    def __init__(
        self,
        config_manager: ConfigManager,
        foreground: bool = False,
        platform: Optional[ProcessPlatform] = None,
        selector: Optional[ReservoirSelector] = None,
        cycle_delay: float = CYCLE_DELAY,
    ):
        self.config_manager = config_manager
        self.foreground = foreground
        self.platform = platform
        self.selector = selector
        self.cycle_delay = cycle_delay
        self.state: Optional[DaemonState] = None
        self.supervisor: Optional[ProcessSupervisor] = None
        self.error: Optional[SigrandError] = None
        self._logger = get_default_logger()
        self._log_context = LogContext(component="SigrandDaemon")

    def _load(self) -> ProcessSupervisor:
        self.state = self.config_manager.load()
        self.supervisor = ProcessSupervisor(self.config_manager, self.state, self.platform)
        return self.supervisor

    def run(self) -> int:
        """
        Main execution method.

        Returns:
            Exit code (0 for success, 1 for error)
        """
        claimed = False
        try:
            supervisor = self._load()
            supervisor.check_singleton()
            supervisor.release_claim()

            publisher = PublishLoop(
                self.state.expanded_fifo(),
                self.state.expanded_signature_file(),
                selector=self.selector,
                cycle_delay=self.cycle_delay,
            )
            publisher.ensure_pipe()

            self._logger.info("Starting sigrand", context=self._log_context)
            if self.foreground:
                supervisor.claim_foreground()
            elif supervisor.detach():
                return 0
            claimed = True

            supervisor.install_signal_handlers()
            publisher.run(lambda: supervisor.stop_requested)

            claimed = False
            supervisor.shutdown()
            return 0

        except SingletonViolation as e:
            self.error = e
            self._logger.error(str(e), context=self._log_context)
            return 1
        except SigrandError as e:
            self.error = e
            self._logger.error(str(e), context=self._log_context)
            if claimed:
                self._release_best_effort()
            return 1

    def _release_best_effort(self) -> None:
        try:
            self.supervisor.release_claim()
        except SigrandError as e:
            self._logger.warning(
                "Could not clear pid on exit", context=self._log_context, error=str(e)
            )

    def stop(self) -> bool:
        """
        Signal the recorded instance to shut down.

        Returns:
            True if a running instance was signalled
        """
        return self._load().stop_running_instance()
