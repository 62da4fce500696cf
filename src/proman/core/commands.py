"""Shell command execution for ShellCommand steps.

CommandExecutor.run() returns a CommandRun: iterate it to receive output
lines as the program produces them (stderr merged into stdout), then read
returncode. A program that cannot be started yields one explanatory line and
reports exit status 127, so callers never have to handle spawn exceptions.
"""

from __future__ import annotations

import subprocess
from collections.abc import Iterator, Sequence
from pathlib import Path

from proman.core.logging import get_logger

log = get_logger(__name__)

SPAWN_FAILURE_STATUS = 127


class CommandRun:
    """One execution of an external program."""

    def __init__(self, program: str, arguments: Sequence[str], cwd: Path | None = None) -> None:
        self.program = program
        self.arguments = list(arguments)
        self.cwd = cwd
        self.returncode: int | None = None
        self._consumed = False

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.arguments]

    def __iter__(self) -> Iterator[str]:
        if self._consumed:
            raise RuntimeError("CommandRun output can only be iterated once")
        self._consumed = True
        return self._lines()

    def _lines(self) -> Iterator[str]:
        log.debug(f"Spawning: {' '.join(self.argv)} (cwd={self.cwd or '.'})")
        try:
            proc = subprocess.Popen(
                self.argv,
                cwd=self.cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (OSError, ValueError) as e:
            self.returncode = SPAWN_FAILURE_STATUS
            log.verbose(f"Could not start {self.program}: {e}")
            yield f"could not start '{self.program}': {getattr(e, 'strerror', None) or e}"
            return

        assert proc.stdout is not None
        with proc:
            for line in proc.stdout:
                yield line.rstrip("\r\n")
            self.returncode = proc.wait()

        log.debug(f"{self.program} exited with status {self.returncode}")

    def wait(self) -> int:
        """Drain remaining output and return the exit status."""
        if not self._consumed:
            for _line in self:
                pass
        assert self.returncode is not None
        return self.returncode


class CommandExecutor:
    """Default executor backed by subprocess."""

    def __init__(self, cwd: Path | None = None) -> None:
        self.cwd = cwd

    def run(self, program: str, arguments: Sequence[str], cwd: Path | None = None) -> CommandRun:
        return CommandRun(program, arguments, cwd=cwd or self.cwd)
