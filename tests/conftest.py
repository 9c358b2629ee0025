"""
Shared test fixtures and configuration for sigrand tests.

This module provides common fixtures and utilities used across
all test modules in the sigrand test suite.
"""

import os
import tempfile
from pathlib import Path
from typing import Generator, List, Optional

import pytest

from sigrand.app_logger import NullAppLogger, set_default_logger
from sigrand.config import ConfigManager, DaemonState


def pytest_addoption(parser):
    """Add command line options to enable specific test categories."""
    parser.addoption(
        "--enable-slow",
        action="store_true",
        default=False,
        help="Enable tests marked with @pytest.mark.slow (skipped by default)",
    )


def pytest_configure(config):
    """Register the custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (>5 seconds) - skipped by default, use --enable-slow",
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless they were asked for."""
    enable_slow = config.getoption("--enable-slow") or os.getenv(
        "ENABLE_SLOW_TESTS", ""
    ).lower() in ("true", "1", "yes")

    if not enable_slow:
        skip_slow = pytest.mark.skip(
            reason="Use --enable-slow or set ENABLE_SLOW_TESTS=true to run slow tests"
        )
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def quiet_logger(monkeypatch):
    """Keep component logging out of test output and off the environment."""
    monkeypatch.delenv("SIGRAND_CONFIG", raising=False)
    set_default_logger(NullAppLogger())
    yield
    set_default_logger(None)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for testing.

    Yields:
        Path to the temporary directory
    """
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


SAMPLE_SIGNATURES = [
    "The best way to predict the future\nis to invent it.\n",
    "Simple things should be simple.\n",
    "  -- indented attribution\n\n",
]


@pytest.fixture
def sample_signatures() -> List[str]:
    return list(SAMPLE_SIGNATURES)


@pytest.fixture
def corpus_file(temp_dir: Path, sample_signatures: List[str]) -> Path:
    """
    Write a well-formed corpus holding the sample signatures.

    Returns:
        Path to the corpus file
    """
    corpus = temp_dir / "sigfile"
    corpus.write_text("".join(sig + "%%\n" for sig in sample_signatures))
    return corpus


@pytest.fixture
def empty_corpus(temp_dir: Path) -> Path:
    corpus = temp_dir / "empty_sigfile"
    corpus.write_text("")
    return corpus


@pytest.fixture
def fifo_path(temp_dir: Path) -> Path:
    """Path where a named pipe can be created."""
    return temp_dir / "signature"


@pytest.fixture
def config_manager(temp_dir: Path) -> ConfigManager:
    return ConfigManager(temp_dir / "config" / "config.json")


@pytest.fixture
def saved_state(config_manager: ConfigManager, fifo_path: Path, corpus_file: Path):
    """
    Persist a state pointing at the test pipe and corpus.

    Returns:
        A factory taking an optional pid and returning the saved DaemonState
    """

    def _save(pid: Optional[int] = None) -> DaemonState:
        state = DaemonState(fifo=str(fifo_path), signature_file=str(corpus_file), pid=pid)
        config_manager.save(state)
        return state

    return _save


class FakePlatform:
    """Process platform that never forks or signals real processes."""

    def __init__(self, pid: int = 4242, alive: Optional[set] = None, child: Optional[int] = None):
        self.pid = pid
        self.alive = set(alive or ())
        self.child = child
        self.detach_calls = 0
        self.terminated: List[int] = []

    def getpid(self) -> int:
        return self.pid

    def is_alive(self, pid: int) -> bool:
        return pid in self.alive

    def detach(self) -> Optional[int]:
        self.detach_calls += 1
        return self.child

    def terminate(self, pid: int) -> None:
        self.terminated.append(pid)
        self.alive.discard(pid)


@pytest.fixture
def fake_platform() -> FakePlatform:
    return FakePlatform()
