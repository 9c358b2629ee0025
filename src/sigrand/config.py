"""
Persistent daemon configuration.

DaemonState is the value object shared between the CLI and the daemon. It is
loaded once at startup and written back only by the ProcessSupervisor when
the active pid changes.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from sigrand.errors import ConfigError

APP_NAME = "sigrand"


def default_config_path() -> Path:
    """Return the config file location, honouring SIGRAND_CONFIG."""
    if override := os.getenv("SIGRAND_CONFIG"):
        return Path(override).expanduser()
    base = os.getenv("XDG_CONFIG_HOME") or "~/.config"
    return Path(base).expanduser() / APP_NAME / "config.json"


class DaemonState(BaseModel):
    """Paths the daemon works with and the pid of the running instance."""

    fifo: str = Field(default="~/.signature", description="Named pipe to publish to")
    signature_file: str = Field(
        default="~/.sigfile", description="Corpus of %%-delimited signatures"
    )
    pid: Optional[int] = Field(default=None, description="Pid of the running daemon")

    @field_validator("pid", mode="before")
    @classmethod
    def reject_non_integer_pid(cls, v):
        if v is None:
            return v
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError(f"pid must be an integer, got {v!r}")
        return v

    def expanded_fifo(self) -> Path:
        return Path(self.fifo).expanduser()

    def expanded_signature_file(self) -> Path:
        return Path(self.signature_file).expanduser()


class ConfigManager:
    """Loads and saves DaemonState as JSON."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else default_config_path()

    def load(self) -> DaemonState:
        """Load state from disk, or return defaults if no file exists yet."""
        if not self.config_path.exists():
            return DaemonState()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return DaemonState(**data)
        except (OSError, ValueError, TypeError, ValidationError) as e:
            raise ConfigError(f"Failed to load config from {self.config_path}: {e}")

    def save(self, state: DaemonState) -> None:
        """
        Persist state, creating the config directory if needed.

        The file is written beside the target and renamed over it, so a
        concurrent load() sees either the old state or the new one.
        """
        temp_path = None
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=self.config_path.parent,
                prefix=f".{self.config_path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.model_dump(), f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.config_path)
        except OSError as e:
            if temp_path is not None:
                Path(temp_path).unlink(missing_ok=True)
            raise ConfigError(f"Failed to save config to {self.config_path}: {e}")
