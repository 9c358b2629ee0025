"""
Publish loop that feeds random signatures into a named pipe.

Each cycle re-reads the corpus, picks one record and writes it to the FIFO.
Opening the FIFO for writing blocks until a reader opens the other end, so
exactly one selection is made per read rather than per unit of time.
"""

import os
import stat
import time
from pathlib import Path
from typing import Callable, Optional, Union

from sigrand.app_logger import LogContext, get_default_logger
from sigrand.errors import CorpusError, PipeError
from sigrand.record_stream import RecordStream
from sigrand.selector import ReservoirSelector

FIFO_MODE = 0o644
CYCLE_DELAY = 0.2


class PublishLoop:
    """Repeatedly selects a record and delivers it to the named pipe."""

    def __init__(
        self,
        fifo_path: Union[str, Path],
        corpus_path: Union[str, Path],
        selector: Optional[ReservoirSelector] = None,
        cycle_delay: float = CYCLE_DELAY,
    ):
        """
        Args:
            fifo_path: Named pipe to write signatures to
            corpus_path: %%-delimited signature file, re-read every cycle
            selector: Record selector, a default ReservoirSelector if omitted
            cycle_delay: Seconds to wait after each write so the reader has
                closed its end before the pipe is reopened
        """
        self.fifo_path = Path(fifo_path)
        self.corpus_path = Path(corpus_path)
        self.selector = selector or ReservoirSelector()
        self.cycle_delay = cycle_delay
        self._logger = get_default_logger()
        self._log_context = LogContext(component="PublishLoop")

    def ensure_pipe(self) -> None:
        """
        Create the named pipe if it does not exist yet.

        Raises:
            PipeError: If the path exists but is not a FIFO, or mkfifo fails
        """
        try:
            mode = self.fifo_path.stat().st_mode
        except FileNotFoundError:
            try:
                self.fifo_path.parent.mkdir(parents=True, exist_ok=True)
                os.mkfifo(self.fifo_path, FIFO_MODE)
            except OSError as e:
                raise PipeError(f"Failed to create named pipe {self.fifo_path}: {e}") from e
            self._logger.info(
                "Created named pipe", context=self._log_context, path=str(self.fifo_path)
            )
            return
        except OSError as e:
            raise PipeError(f"Cannot stat {self.fifo_path}: {e}") from e

        if not stat.S_ISFIFO(mode):
            raise PipeError(
                f"{self.fifo_path} must be a named pipe; try `mkfifo -m u=rw '{self.fifo_path}'`"
            )

    def select_signature(self) -> str:
        """
        Pick one record from a fresh pass over the corpus.

        Raises:
            CorpusError: If the corpus cannot be read or holds no records
        """
        with RecordStream.open(self.corpus_path) as records:
            signature = self.selector.select(records)
        if signature is None:
            raise CorpusError("No signatures found", str(self.corpus_path))
        return signature

    def write_signature(self, signature: str) -> None:
        """
        Write one record to the pipe, blocking until a reader opens it.

        Raises:
            PipeError: If the pipe cannot be opened or the write fails
        """
        self._logger.debug(
            "Opening pipe", context=self._log_context, path=str(self.fifo_path)
        )
        try:
            fd = os.open(self.fifo_path, os.O_WRONLY)
            with os.fdopen(fd, "w", encoding="utf-8") as pipe:
                pipe.write(signature)
        except OSError as e:
            raise PipeError(f"Error writing to {self.fifo_path}: {e}") from e

    def run_cycle(self) -> None:
        signature = self.select_signature()
        self.write_signature(signature)
        self._logger.debug("Wrote signature", context=self._log_context, length=len(signature))

    def run(self, should_stop: Callable[[], bool]) -> int:
        """
        Publish until ``should_stop`` returns True.

        The stop check happens between cycles, never during the blocking
        write, so a pending write still completes once a reader arrives.

        Returns:
            Number of completed cycles
        """
        cycles = 0
        self._logger.debug("Starting loop", context=self._log_context)
        while not should_stop():
            self.run_cycle()
            cycles += 1
            if self.cycle_delay > 0:
                time.sleep(self.cycle_delay)
        self._logger.info("Publish loop stopped", context=self._log_context, cycles=cycles)
        return cycles
