"""Application state machine driving a wizard session.

    Main --confirm--> Starting --tick--> Running --Done--> Stopping

Main holds the catalog in a SelectableList. Starting is a one-tick
pass-through that builds the StepRunner. Running attaches to the runner's
bus once and then folds at most one event per tick into a RunState; a
nested input mode (none / text / choice) decides what key presses do.
Stopping accepts no input; the session ends after one final draw.

The machine never blocks: tick() drains without waiting and handle_key()
only touches local state or answers a reply channel.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum, StrEnum
from typing import Union

from proman.core.bus import Subscription
from proman.core.errors import ReplyError
from proman.core.events import (
    CommandOutput,
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
from proman.core.profile import Profile, ProjectType
from proman.core.runner import StepRunner
from proman.core.selectable_list import SelectableList

log = get_logger(__name__)


class Screen(StrEnum):
    MAIN = "main"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class InputMode(StrEnum):
    NONE = "none"
    TEXT = "text"
    CHOICE = "choice"


class KeyKind(Enum):
    QUIT = "quit"
    UP = "up"
    DOWN = "down"
    CONFIRM = "confirm"
    CHAR = "char"
    BACKSPACE = "backspace"
    OTHER = "other"


@dataclass(frozen=True)
class KeyPress:
    kind: KeyKind
    char: str = ""

    @classmethod
    def of_char(cls, char: str) -> KeyPress:
        return cls(KeyKind.CHAR, char)

    def is_char(self, *chars: str) -> bool:
        return self.kind is KeyKind.CHAR and self.char in chars


@dataclass
class RunState:
    """Consumer-side view of a run, rebuilt from bus events."""

    step_name: str = ""
    scrollback: list[str] = field(default_factory=list)
    input_mode: InputMode = InputMode.NONE
    input_buffer: str = ""
    choice_list: SelectableList[ProjectType] | None = None
    project_name: str | None = None
    project_type: ProjectType | None = None
    pending_reply: ReplyChannel | None = None


@dataclass
class MainState:
    profiles: SelectableList[Profile]


@dataclass
class StartingState:
    profile: Profile


@dataclass
class RunningState:
    profile: Profile
    runner: StepRunner
    run_state: RunState | None = None
    subscription: Subscription[Envelope] | None = None


@dataclass
class StoppingState:
    profile: Profile | None = None
    runner: StepRunner | None = None
    run_state: RunState | None = None


AppState = Union[MainState, StartingState, RunningState, StoppingState]


@dataclass(frozen=True)
class View:
    """Everything the renderer needs for one frame."""

    screen: Screen
    items: list[str] = field(default_factory=list)
    cursor: int = 0
    language: str = ""
    requirements: list[str] = field(default_factory=list)
    missing_requirements: list[str] = field(default_factory=list)
    step_name: str = ""
    scrollback: list[str] = field(default_factory=list)
    input_mode: InputMode = InputMode.NONE
    input_buffer: str = ""
    choices: list[str] = field(default_factory=list)
    choice_cursor: int = 0
    project_name: str | None = None
    project_type: ProjectType | None = None
    finished: bool = False


RunnerFactory = Callable[[Profile], StepRunner]


class App:
    """Wizard session state machine.

    Example:
        app = App(load_catalog())
        while not app.finished:
            app.tick()
            render(app.view())
            app.handle_key(poll_key())
    """

    def __init__(
        self,
        catalog: Sequence[Profile],
        *,
        runner_factory: RunnerFactory | None = None,
    ) -> None:
        self.catalog = list(catalog)
        self.runner_factory: RunnerFactory = runner_factory or (lambda p: p.create_runner())
        self.state: AppState = MainState(SelectableList(self.catalog))
        self.history: list[Screen] = [Screen.MAIN]
        self.should_quit = False

    @property
    def screen(self) -> Screen:
        if isinstance(self.state, MainState):
            return Screen.MAIN
        if isinstance(self.state, StartingState):
            return Screen.STARTING
        if isinstance(self.state, RunningState):
            return Screen.RUNNING
        return Screen.STOPPING

    @property
    def finished(self) -> bool:
        return self.should_quit or isinstance(self.state, StoppingState)

    def _enter(self, state: AppState) -> None:
        self.state = state
        self.history.append(self.screen)
        log.debug(f"Screen -> {self.screen.value}")

    # -- ticks --------------------------------------------------------------

    def tick(self) -> None:
        """Advance render-driven transitions.

        Raises:
            NoBusError: If the runner lost its bus (unrecoverable)
        """
        state = self.state
        if isinstance(state, StartingState):
            log.info(f"Starting profile: {state.profile.language}")
            runner = self.runner_factory(state.profile)
            self._enter(RunningState(profile=state.profile, runner=runner))
        elif isinstance(state, RunningState):
            self._tick_running(state)

    def _tick_running(self, state: RunningState) -> None:
        if state.subscription is None:
            state.subscription = state.runner.start_or_attach()

        envelope = state.subscription.try_recv()
        if envelope is None:
            return

        if state.run_state is None:
            state.run_state = RunState()
        _fold(state.run_state, envelope.event)

        if envelope.is_terminal:
            state.subscription.close()
            state.run_state.project_name = state.runner.project_name
            state.run_state.project_type = state.runner.project_type
            self._enter(
                StoppingState(profile=state.profile, runner=state.runner, run_state=state.run_state)
            )

    # -- keys ---------------------------------------------------------------

    def handle_key(self, key: KeyPress | None) -> None:
        if key is None or self.should_quit:
            return

        state = self.state
        if isinstance(state, MainState):
            self._handle_main_key(state, key)
        elif isinstance(state, RunningState):
            self._handle_running_key(state, key)

    def _handle_main_key(self, state: MainState, key: KeyPress) -> None:
        if key.kind is KeyKind.QUIT or key.is_char("q"):
            self.should_quit = True
        elif key.kind is KeyKind.UP or key.is_char("k"):
            state.profiles.previous()
        elif key.kind is KeyKind.DOWN or key.is_char("j"):
            state.profiles.next()
        elif key.kind is KeyKind.CONFIRM:
            profile = state.profiles.selected_item()
            if profile is not None:
                self._enter(StartingState(profile))

    def _handle_running_key(self, state: RunningState, key: KeyPress) -> None:
        run = state.run_state
        mode = run.input_mode if run is not None else InputMode.NONE

        if mode is InputMode.TEXT and run is not None:
            if key.kind is KeyKind.QUIT:
                self._quit_run(state)
            elif key.kind is KeyKind.CHAR:
                run.input_buffer += key.char
            elif key.kind is KeyKind.BACKSPACE:
                run.input_buffer = run.input_buffer[:-1]
            elif key.kind is KeyKind.CONFIRM:
                self._submit_text(run)
            return

        if mode is InputMode.CHOICE and run is not None:
            if key.kind is KeyKind.QUIT or key.is_char("q"):
                self._quit_run(state)
            elif run.choice_list is not None and (key.kind is KeyKind.UP or key.is_char("k")):
                run.choice_list.previous()
            elif run.choice_list is not None and (key.kind is KeyKind.DOWN or key.is_char("j")):
                run.choice_list.next()
            elif key.kind is KeyKind.CONFIRM:
                self._submit_choice(run)
            return

        if key.kind is KeyKind.QUIT or key.is_char("q"):
            self._quit_run(state)

    def _submit_text(self, run: RunState) -> None:
        reply = run.pending_reply
        if reply is None:
            # The reply channel arrives on the next event; keep typing.
            return
        value = run.input_buffer
        if _answer(reply, value):
            run.project_name = value
        run.input_buffer = ""
        run.pending_reply = None
        run.input_mode = InputMode.NONE

    def _submit_choice(self, run: RunState) -> None:
        reply = run.pending_reply
        if reply is None or run.choice_list is None:
            return
        selected = run.choice_list.selected_item()
        if selected is None:
            return
        if _answer(reply, selected):
            run.project_type = selected
        run.pending_reply = None
        run.input_mode = InputMode.NONE

    def _quit_run(self, state: RunningState) -> None:
        log.info("Quitting; cancelling the running profile")
        state.runner.cancel()
        if state.run_state is not None and state.run_state.pending_reply is not None:
            state.run_state.pending_reply.close()
        if state.subscription is not None:
            state.subscription.close()
        self.should_quit = True

    # -- rendering ----------------------------------------------------------

    def view(self) -> View:
        state = self.state
        if isinstance(state, MainState):
            selected = state.profiles.selected_item()
            return View(
                screen=Screen.MAIN,
                items=state.profiles.labels(),
                cursor=state.profiles.selected_index(),
                language=selected.language if selected else "",
                requirements=list(selected.requirements) if selected else [],
                missing_requirements=selected.missing_requirements() if selected else [],
                finished=self.finished,
            )

        if isinstance(state, StartingState):
            return View(
                screen=Screen.STARTING,
                language=state.profile.language,
                finished=self.finished,
            )

        run = state.run_state or RunState()
        choices = run.choice_list
        return View(
            screen=self.screen,
            language=state.profile.language if state.profile else "",
            step_name=run.step_name,
            scrollback=list(run.scrollback),
            input_mode=run.input_mode,
            input_buffer=run.input_buffer,
            choices=choices.labels() if choices is not None else [],
            choice_cursor=choices.selected_index() if choices is not None else 0,
            project_name=run.project_name,
            project_type=run.project_type,
            finished=self.finished,
        )


def _fold(run: RunState, event: RunEvent) -> None:
    """Merge one bus event into the run state."""
    if isinstance(event, StepStarted):
        run.step_name = event.name
    elif isinstance(event, CommandOutput):
        run.scrollback.append(event.line)
    elif isinstance(event, RequestTextInput):
        run.input_mode = InputMode.TEXT
        run.input_buffer = ""
    elif isinstance(event, RequestProjectName):
        run.input_mode = InputMode.TEXT
        run.pending_reply = event.reply
    elif isinstance(event, RequestChoice):
        run.input_mode = InputMode.CHOICE
        if run.choice_list is None:
            run.choice_list = SelectableList(event.options)
        else:
            run.choice_list.replace_items(event.options)
    elif isinstance(event, RequestProjectType):
        run.input_mode = InputMode.CHOICE
        run.pending_reply = event.reply
        if run.choice_list is None:
            run.choice_list = SelectableList(event.options)


def _answer(reply: ReplyChannel, value: object) -> bool:
    try:
        reply.send(value)
    except ReplyError as e:
        log.warning(f"Prompt answer dropped: {e.message}")
        return False
    return True
