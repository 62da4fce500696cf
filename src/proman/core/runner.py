"""Step runner - executes one profile's steps on a background thread.

The runner fronts a single daemon thread that walks the steps in order and
reports everything it does as Envelope messages on an EventBus:

    StepStarted(name)
    CommandOutput(line)                  for each line a shell step prints
    RequestTextInput, RequestProjectName for a project-name prompt
    RequestChoice, RequestProjectType    for a project-type prompt with 2+ options
    Done (terminal)                      after the last step

Prompts block the thread until the consumer answers the embedded
ReplyChannel. The answers land in two lock-guarded cells that later shell
steps read through the {project_name} / {project_type} placeholders.

Step failures never raise: failing commands, unstartable programs, steps
that raise and unanswered prompts all become CommandOutput lines. The only
runner-level error is NoBusError from start_or_attach().
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

from proman.core.bus import EventBus, Subscription
from proman.core.commands import CommandExecutor
from proman.core.config import RunnerSettings
from proman.core.errors import NoBusError
from proman.core.events import (
    CommandOutput,
    Done,
    Envelope,
    ReplyChannel,
    RequestChoice,
    RequestProjectName,
    RequestProjectType,
    RequestTextInput,
    RunEvent,
    StepStarted,
)
from proman.core.logging import get_logger
from proman.core.profile import (
    ProjectType,
    PromptProjectName,
    PromptProjectType,
    ShellCommand,
    Step,
)

log = get_logger(__name__)

Emit = Callable[[RunEvent], None]
T = TypeVar("T")


class StepRunner:
    """Owns one run of a profile's steps.

    Example:
        runner = profile.create_runner()
        sub = runner.start_or_attach()
        while (envelope := sub.recv()) is not None:
            ...
            if envelope.is_terminal:
                break
    """

    def __init__(
        self,
        steps: Sequence[Step],
        supported_project_types: Iterable[ProjectType],
        *,
        executor: CommandExecutor | None = None,
        settings: RunnerSettings | None = None,
    ) -> None:
        self.steps: tuple[Step, ...] = tuple(steps)
        self.supported_project_types: tuple[ProjectType, ...] = tuple(
            sorted(set(supported_project_types))
        )
        self.settings = settings or RunnerSettings()
        self.executor = executor or CommandExecutor(cwd=self.settings.workdir)

        self._cells_lock = threading.Lock()
        self._project_name: str | None = None
        self._project_type: ProjectType | None = None

        self._started = False
        self._bus: EventBus[Envelope] | None = None
        self._thread: threading.Thread | None = None
        self._start_lock = threading.Lock()

        self._cancelled = threading.Event()
        self._pending_reply: ReplyChannel | None = None
        self._aborted = False

    # -- shared cells -------------------------------------------------------

    @property
    def project_name(self) -> str | None:
        with self._cells_lock:
            return self._project_name

    @property
    def project_type(self) -> ProjectType | None:
        with self._cells_lock:
            return self._project_type

    def _store_name(self, name: str) -> None:
        with self._cells_lock:
            self._project_name = name

    def _store_type(self, project_type: ProjectType) -> None:
        with self._cells_lock:
            self._project_type = project_type

    # -- lifecycle ----------------------------------------------------------

    @property
    def started(self) -> bool:
        return self._started

    @property
    def was_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def aborted(self) -> bool:
        """True when a failing command stopped the run (abort policy)."""
        return self._aborted

    def start_or_attach(self) -> Subscription[Envelope]:
        """Start the run on first call; later calls attach a new subscription.

        A later subscription only sees events broadcast after it was created.

        Raises:
            NoBusError: If the runner was started but its bus is gone
        """
        with self._start_lock:
            if self._started:
                if self._bus is None:
                    raise NoBusError()
                return self._bus.subscribe()

            self._started = True
            self._bus = EventBus(self.settings.bus_capacity)
            # Subscribe before the thread exists so the first reader misses nothing.
            subscription = self._bus.subscribe()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._bus,),
                name="proman-step-runner",
                daemon=True,
            )
            self._thread.start()
            log.debug(f"Runner started with {len(self.steps)} step(s)")
            return subscription

    def cancel(self) -> None:
        """Stop after the current step; a waiting prompt is abandoned."""
        self._cancelled.set()
        pending = self._pending_reply
        if pending is not None:
            pending.close()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the background thread; True when it has finished."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    # -- background thread --------------------------------------------------

    def _run(self, bus: EventBus[Envelope]) -> None:
        def emit(event: RunEvent) -> None:
            bus.broadcast(Envelope.of(event))

        total = len(self.steps)
        try:
            for index, step in enumerate(self.steps, 1):
                if self._cancelled.is_set():
                    log.verbose(f"Run cancelled before step {index}/{total}")
                    break

                log.verbose(f"Step {index}/{total}: {step.name}")
                emit(StepStarted(step.name))

                try:
                    keep_going = self._run_step(step, emit)
                except Exception as e:
                    log.error(f"Step '{step.name}' failed: {e}")
                    emit(CommandOutput(f"step '{step.name}' failed: {e}"))
                    keep_going = self._continue_after_failure(emit)
                if not keep_going:
                    break
        finally:
            emit(Done())
            log.debug("Runner finished")

    def _run_step(self, step: Step, emit: Emit) -> bool:
        """Dispatch one step; False when the remaining steps must be skipped."""
        action = step.action
        if isinstance(action, ShellCommand):
            return self._run_command(action, emit)
        if isinstance(action, PromptProjectName):
            self._prompt_name(emit)
        elif isinstance(action, PromptProjectType):
            self._prompt_type(emit)
        return True

    def _continue_after_failure(self, emit: Emit) -> bool:
        if self.settings.abort_on_failure:
            self._aborted = True
            emit(CommandOutput("Aborting remaining steps"))
            return False
        return True

    def _run_command(self, action: ShellCommand, emit: Emit) -> bool:
        """Run a shell step; False when the remaining steps must be skipped."""
        arguments = action.expand(self._placeholders())
        run = self.executor.run(action.program, arguments)
        for line in run:
            emit(CommandOutput(line))

        status = run.returncode
        if status in (0, None):
            return True

        emit(CommandOutput(f"'{action.program}' exited with status {status}"))
        log.verbose(f"{action.program} exited with status {status}")
        return self._continue_after_failure(emit)

    def _prompt_name(self, emit: Emit) -> None:
        reply: ReplyChannel[str] = ReplyChannel()
        emit(RequestTextInput())
        emit(RequestProjectName(reply))

        name = self._await(reply)
        if name is None:
            emit(CommandOutput("No project name given"))
            return
        self._store_name(name)
        log.verbose(f"Project name set: {name}")

    def _prompt_type(self, emit: Emit) -> None:
        options = self.supported_project_types
        if not options:
            emit(CommandOutput("Profile supports no project types; nothing to choose"))
            return

        if len(options) == 1:
            self._store_type(options[0])
            log.verbose(f"Project type set without prompting: {options[0].value}")
            return

        reply: ReplyChannel[ProjectType] = ReplyChannel()
        emit(RequestChoice(options))
        emit(RequestProjectType(options, reply))

        answer = self._await(reply)
        if answer is None:
            emit(CommandOutput("No project type chosen"))
            return
        try:
            chosen = ProjectType.parse(answer)
        except ValueError:
            chosen = None
        if chosen is None or chosen not in options:
            emit(CommandOutput(f"Ignoring unsupported project type '{answer}'"))
            return
        self._store_type(chosen)
        log.verbose(f"Project type set: {chosen.value}")

    def _await(self, reply: ReplyChannel[T]) -> T | None:
        self._pending_reply = reply
        try:
            if self._cancelled.is_set():
                return None
            timeout = self.settings.prompt_timeout or None
            return reply.wait(timeout=timeout, cancelled=self._cancelled)
        finally:
            self._pending_reply = None

    def _placeholders(self) -> dict[str, str]:
        values: dict[str, str] = {}
        name = self.project_name
        if name is not None:
            values["project_name"] = name
        project_type = self.project_type
        if project_type is not None:
            values["project_type"] = project_type.value
        return values
