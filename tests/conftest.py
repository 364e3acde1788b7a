from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Generator, Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner

from gitscribe.events import InMemoryEventBus

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def configure_test_logging() -> Generator[None, None, None]:
    """Configure structlog for test environment.

    Runs for every test so log output goes to stderr at WARNING level and
    never mixes with command stdout.
    """
    from gitscribe.logging import configure_logging

    configure_logging(level=logging.WARNING)
    yield


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for test files.

    Also saves and restores the current working directory so tests that
    call os.chdir() do not affect each other.
    """
    original_cwd = os.getcwd()
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
    os.chdir(original_cwd)


@pytest.fixture
def clean_env(
    temp_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """Remove GITSCRIBE_ environment variables and hide the user config."""
    original_env = os.environ.copy()
    for key in list(os.environ.keys()):
        if key.startswith("GITSCRIBE_"):
            del os.environ[key]
    monkeypatch.setattr(
        "gitscribe.config.get_user_config_path",
        lambda: temp_dir / "no-user-config.yaml",
    )
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def fixture_text() -> Callable[[str], str]:
    """Return a reader for files under tests/fixtures/git_output/."""

    def read(name: str) -> str:
        return (FIXTURES_DIR / "git_output" / name).read_text(encoding="utf-8")

    return read
