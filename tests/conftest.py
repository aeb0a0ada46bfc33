"""Shared fixtures: a durable log in tmp_path, a scratch workspace and a quiet console."""
from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from arch_installer.console import InstallerConsole
from arch_installer.engine import Workspace
from arch_installer.logging_utils import configure_logging, shutdown_logging


@pytest.fixture
def log_path(tmp_path: Path):
    actual = configure_logging(str(tmp_path / "installer.log"))
    yield Path(actual)
    shutdown_logging()


@pytest.fixture
def console() -> InstallerConsole:
    return InstallerConsole(Console(file=io.StringIO(), width=120, force_terminal=False, color_system=None))


@pytest.fixture
def workspace(tmp_path: Path):
    ws = Workspace.create(tmp_path / "scratch")
    yield ws
    ws.cleanup()

