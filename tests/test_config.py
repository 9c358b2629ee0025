"""
Tests for DaemonState and ConfigManager.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from sigrand.config import ConfigManager, DaemonState, default_config_path
from sigrand.errors import ConfigError


class TestDaemonState:
    """Test cases for the configuration value object."""

    def test_defaults(self):
        state = DaemonState()

        assert state.fifo == "~/.signature"
        assert state.signature_file == "~/.sigfile"
        assert state.pid is None

    def test_paths_expand_home(self, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("HOME", str(temp_dir))
        state = DaemonState()

        assert state.expanded_fifo() == temp_dir / ".signature"
        assert state.expanded_signature_file() == temp_dir / ".sigfile"

    def test_rejects_non_integer_pid(self):
        with pytest.raises(ValidationError):
            DaemonState(pid="1234")

    def test_rejects_boolean_pid(self):
        with pytest.raises(ValidationError):
            DaemonState(pid=True)


class TestConfigManager:
    """Test cases for loading and saving state."""

    def test_load_missing_file_returns_defaults(self, config_manager: ConfigManager):
        assert config_manager.load() == DaemonState()

    def test_save_creates_directory_and_round_trips(self, config_manager: ConfigManager):
        state = DaemonState(fifo="/tmp/pipe", signature_file="/tmp/sigs", pid=321)

        config_manager.save(state)

        assert config_manager.config_path.exists()
        assert config_manager.load() == state

    def test_saved_file_is_json(self, config_manager: ConfigManager):
        config_manager.save(DaemonState(pid=77))

        data = json.loads(config_manager.config_path.read_text())

        assert data == {"fifo": "~/.signature", "signature_file": "~/.sigfile", "pid": 77}

    def test_load_partial_file_fills_defaults(self, config_manager: ConfigManager):
        config_manager.config_path.parent.mkdir(parents=True)
        config_manager.config_path.write_text('{"fifo": "/tmp/other"}')

        state = config_manager.load()

        assert state.fifo == "/tmp/other"
        assert state.signature_file == "~/.sigfile"
        assert state.pid is None

    def test_load_invalid_json_raises_config_error(self, config_manager: ConfigManager):
        config_manager.config_path.parent.mkdir(parents=True)
        config_manager.config_path.write_text("{not json")

        with pytest.raises(ConfigError, match="Failed to load config"):
            config_manager.load()

    def test_load_invalid_pid_raises_config_error(self, config_manager: ConfigManager):
        config_manager.config_path.parent.mkdir(parents=True)
        config_manager.config_path.write_text('{"pid": "abc"}')

        with pytest.raises(ConfigError):
            config_manager.load()

    def test_save_failure_raises_config_error(self, temp_dir: Path):
        blocker = temp_dir / "blocker"
        blocker.write_text("a file, not a directory")
        manager = ConfigManager(blocker / "config.json")

        with pytest.raises(ConfigError, match="Failed to save config"):
            manager.save(DaemonState())

    def test_save_replaces_file_instead_of_rewriting_it(self, config_manager: ConfigManager):
        config_manager.save(DaemonState(pid=100))
        inode = config_manager.config_path.stat().st_ino

        config_manager.save(DaemonState(pid=200))

        assert config_manager.config_path.stat().st_ino != inode
        assert list(config_manager.config_path.parent.iterdir()) == [config_manager.config_path]
        assert config_manager.load().pid == 200

    def test_failed_replace_keeps_old_state(self, config_manager: ConfigManager):
        config_manager.save(DaemonState(pid=100))

        with patch("os.replace", side_effect=OSError("disk full")):
            with pytest.raises(ConfigError, match="disk full"):
                config_manager.save(DaemonState(pid=200))

        assert list(config_manager.config_path.parent.iterdir()) == [config_manager.config_path]
        assert config_manager.load().pid == 100


class TestDefaultConfigPath:
    """Test cases for locating the config file."""

    def test_env_override(self, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("SIGRAND_CONFIG", str(temp_dir / "custom.json"))

        assert default_config_path() == temp_dir / "custom.json"
        assert ConfigManager().config_path == temp_dir / "custom.json"

    def test_xdg_config_home(self, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(temp_dir))

        assert default_config_path() == temp_dir / "sigrand" / "config.json"

    def test_falls_back_to_home(self, monkeypatch, temp_dir: Path):
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(temp_dir))

        assert default_config_path() == temp_dir / ".config" / "sigrand" / "config.json"
