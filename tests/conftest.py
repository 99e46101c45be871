"""Shared fixtures for start-wizard tests.

Provides TTY on/off switches, a zero kill-settle delay, and factories for
port bindings, conflicts and run contexts.
"""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from start_wizard.config import settings
from start_wizard.models.ports import Listener, PortBinding, PortConflict
from start_wizard.models.wizard import RunArgs, RunContext


# ---------------------------------------------------------------------------
# Terminal mode
# ---------------------------------------------------------------------------

@pytest.fixture
def no_tty():
    """Patch is_interactive() to report a non-interactive session."""
    with patch("start_wizard.services.tty_prompts.is_interactive", return_value=False):
        yield


@pytest.fixture
def tty():
    """Patch is_interactive() to report an interactive session."""
    with patch("start_wizard.services.tty_prompts.is_interactive", return_value=True):
        yield


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def fast_settle(monkeypatch):
    """No pause between kill signals and re-inspection."""
    monkeypatch.setattr(settings, "kill_settle_ms", 0)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_binding(port: int, service: str = "svc", flexible: bool = False,
                 option_name: str | None = None) -> PortBinding:
    return PortBinding(port=port, desired_service=service, flexible=flexible,
                       option_name=option_name)


def make_conflict(port: int, pids=(123,), flexible: bool = False,
                  option_name: str | None = None, service: str = "svc") -> PortConflict:
    return PortConflict(
        port=port,
        desired_service=service,
        flexible=flexible,
        option_name=option_name,
        listeners=[Listener(pid=pid, command=f"proc-{pid}") for pid in pids],
    )


@pytest.fixture
def context_factory(tmp_path):
    """Factory for RunContext instances.

    Usage:
        ctx = context_factory(mode="local", yes=True)
    """
    def _factory(mode: str = "local", yes: bool = False, kill: bool = False,
                 options: dict | None = None) -> RunContext:
        return RunContext(
            repo_root=tmp_path,
            product_id="web",
            mode=mode,
            args=RunArgs(yes=yes, kill=kill),
            options=options or {},
        )
    return _factory
