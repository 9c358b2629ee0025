"""
Sigrand - serves a random signature through a named pipe.

A long-running daemon reads a %%-delimited corpus of signatures, picks one
uniformly at random and writes it to a FIFO each time a reader drains it.
"""

__version__ = "1.0.0"

from .config import ConfigManager, DaemonState
from .daemon import SigrandDaemon
from .publisher import PublishLoop
from .record_stream import RecordStream
from .selector import ReservoirSelector
from .supervisor import ProcessSupervisor

__all__ = [
    "__version__",
    "ConfigManager",
    "DaemonState",
    "ProcessSupervisor",
    "PublishLoop",
    "RecordStream",
    "ReservoirSelector",
    "SigrandDaemon",
]
