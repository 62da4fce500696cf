"""Pytest configuration and fixtures."""

import os
import sys
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

# Add src to path (for 'proman.*' imports without an install)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root / "src"))

from proman.core.log_bus import get_log_bus  # noqa: E402
from proman.core.logging import (  # noqa: E402
    VerbosityLevel,
    set_colors,
    set_console_enabled,
    set_log_sink,
    set_verbosity,
)


@pytest.fixture(autouse=True)
def _isolate_logging():
    """Reset global logging state so verbosity and subscribers never leak between tests."""
    get_log_bus().clear()
    set_log_sink(None)
    set_verbosity(VerbosityLevel.NORMAL)
    set_console_enabled(True)
    set_colors(False)
    yield
    get_log_bus().clear()
    set_log_sink(None)
    set_verbosity(VerbosityLevel.NORMAL)
    set_console_enabled(True)
    set_colors(True)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Drop PROMAN_* variables from the environment."""
    for key in list(os.environ):
        if key.startswith("PROMAN_"):
            monkeypatch.delenv(key, raising=False)


class FakeRun:
    """Stand-in for CommandRun with canned output and exit status."""

    def __init__(self, lines: list[str], status: int) -> None:
        self.lines = lines
        self.status = status
        self.returncode: int | None = None

    def __iter__(self) -> Iterator[str]:
        yield from self.lines
        self.returncode = self.status


class FakeExecutor:
    """Records every command instead of spawning it.

    `echo` prints its arguments joined by spaces; other programs print the
    lines configured in `outputs` and exit with the status in `statuses`.
    """

    def __init__(
        self,
        outputs: dict[str, list[str]] | None = None,
        statuses: dict[str, int] | None = None,
    ) -> None:
        self.outputs = outputs or {}
        self.statuses = statuses or {}
        self.calls: list[tuple[str, list[str]]] = []
        self._lock = threading.Lock()

    def run(self, program, arguments, cwd=None):
        with self._lock:
            self.calls.append((program, list(arguments)))
        if program in self.outputs:
            lines = list(self.outputs[program])
        elif program == "echo":
            lines = [" ".join(arguments)]
        else:
            lines = []
        return FakeRun(lines, self.statuses.get(program, 0))


@pytest.fixture
def fake_executor():
    """Create a FakeExecutor.

    Returns:
        FakeExecutor instance with no canned output
    """
    return FakeExecutor()


@pytest.fixture
def make_profile():
    """Factory building a Profile from YAML-shaped keyword arguments.

    Returns:
        Callable(language, project_types, steps, requirements) -> Profile
    """
    from proman.core.profile import Profile

    def _make(language="rust", project_types=("binary", "library"), steps=(), requirements=()):
        return Profile.from_mapping(
            {
                "language": language,
                "requirements": list(requirements),
                "project_types": list(project_types),
                "steps": list(steps),
            },
            source=f"<test:{language}>",
        )

    return _make


@pytest.fixture
def rust_like_profile(make_profile):
    """Profile mirroring the bundled rust one, with echo instead of cargo."""
    return make_profile(
        language="rust",
        project_types=("binary", "library"),
        steps=[
            {"name": "Choose project type", "action": "prompt_project_type"},
            {"name": "Choose project name", "action": "prompt_project_name"},
            {
                "name": "Summary",
                "action": {
                    "shell": {
                        "program": "echo",
                        "args": ["created {project_type} crate {project_name}"],
                    }
                },
            },
        ],
    )


def wait_until(
    predicate: Callable[[], bool],
    timeout: float = 5.0,
    step: Callable[[], None] | None = None,
) -> bool:
    """Poll predicate (calling step first each round) until true or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if step is not None:
            step()
        if predicate():
            return True
        time.sleep(0.005)
    return False


@pytest.fixture
def poll():
    """Expose wait_until to tests."""
    return wait_until
