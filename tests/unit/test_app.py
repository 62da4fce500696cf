"""Tests for the wizard state machine."""

from __future__ import annotations

import pytest

from proman.core.app import (
    App,
    InputMode,
    KeyKind,
    KeyPress,
    MainState,
    RunningState,
    Screen,
)
from proman.core.errors import NoBusError
from proman.core.profile import Profile, ProjectType

UP = KeyPress(KeyKind.UP)
DOWN = KeyPress(KeyKind.DOWN)
CONFIRM = KeyPress(KeyKind.CONFIRM)
ESC = KeyPress(KeyKind.QUIT)
BACKSPACE = KeyPress(KeyKind.BACKSPACE)


def _type(app, text):
    for char in text:
        app.handle_key(KeyPress.of_char(char))


def _awaiting_reply(app):
    state = app.state
    return (
        isinstance(state, RunningState)
        and state.run_state is not None
        and state.run_state.pending_reply is not None
    )


@pytest.fixture
def app_factory(fake_executor):
    def _make(catalog):
        return App(catalog, runner_factory=lambda p: p.create_runner(executor=fake_executor))

    return _make


class TestMainScreen:
    """Catalog navigation."""

    def test_initial_view(self, app_factory, make_profile):
        app = app_factory([make_profile("rust"), make_profile("go", requirements=("go",))])
        view = app.view()
        assert view.screen is Screen.MAIN
        assert view.items == ["go", "rust"]
        assert view.cursor == 0
        assert view.language == "go"
        assert view.requirements == ["go"]
        assert not view.finished

    def test_blank_requirement_does_not_break_view(self, app_factory):
        app = app_factory([Profile(language="x", requirements=("",))])
        view = app.view()
        assert view.language == "x"
        assert view.missing_requirements == []

    def test_navigation_wraps(self, app_factory, make_profile):
        app = app_factory([make_profile("go"), make_profile("rust"), make_profile("zig")])
        app.handle_key(UP)
        assert app.view().language == "zig"
        app.handle_key(KeyPress.of_char("j"))
        assert app.view().language == "go"
        app.handle_key(DOWN)
        app.handle_key(KeyPress.of_char("k"))
        assert app.view().cursor == 0

    @pytest.mark.parametrize("key", [ESC, KeyPress.of_char("q")])
    def test_quit(self, app_factory, make_profile, key):
        app = app_factory([make_profile("rust")])
        app.handle_key(key)
        assert app.finished
        assert isinstance(app.state, MainState)

    def test_confirm_on_empty_catalog(self, app_factory):
        app = app_factory([])
        app.handle_key(CONFIRM)
        assert app.screen is Screen.MAIN

    def test_no_key_is_ignored(self, app_factory, make_profile):
        app = app_factory([make_profile("rust")])
        app.handle_key(None)
        assert app.screen is Screen.MAIN


class TestRun:
    """Main -> Starting -> Running -> Stopping."""

    def test_full_session(self, app_factory, rust_like_profile, fake_executor, poll):
        app = app_factory([rust_like_profile])

        app.handle_key(CONFIRM)
        assert app.screen is Screen.STARTING
        assert app.view().language == "rust"

        app.tick()
        assert app.screen is Screen.RUNNING

        assert poll(lambda: _awaiting_reply(app), step=app.tick)
        view = app.view()
        assert view.input_mode is InputMode.CHOICE
        assert view.choices == ["Binary", "Library"]
        assert view.step_name == "Choose project type"

        app.handle_key(DOWN)
        assert app.view().choice_cursor == 1
        app.handle_key(CONFIRM)
        assert app.view().project_type is ProjectType.LIBRARY
        assert app.view().input_mode is InputMode.NONE

        assert poll(lambda: _awaiting_reply(app), step=app.tick)
        assert app.view().input_mode is InputMode.TEXT
        _type(app, "prok")
        app.handle_key(BACKSPACE)
        _type(app, "j")
        assert app.view().input_buffer == "proj"
        app.handle_key(CONFIRM)

        assert poll(lambda: app.finished, step=app.tick)
        view = app.view()
        assert view.screen is Screen.STOPPING
        assert view.scrollback == ["created library crate proj"]
        assert view.project_name == "proj"
        assert view.project_type is ProjectType.LIBRARY
        assert app.history == [Screen.MAIN, Screen.STARTING, Screen.RUNNING, Screen.STOPPING]
        assert fake_executor.calls == [("echo", ["created library crate proj"])]

    def test_runner_created_once(self, make_profile, poll):
        created = []

        def factory(profile):
            runner = profile.create_runner()
            created.append(runner)
            return runner

        app = App([make_profile("zig", steps=[])], runner_factory=factory)
        app.handle_key(CONFIRM)
        assert poll(lambda: app.finished, step=app.tick)
        assert len(created) == 1
        assert app.screen is Screen.STOPPING

    def test_confirm_before_reply_keeps_text(self, app_factory, rust_like_profile, poll):
        app = app_factory([rust_like_profile])
        app.handle_key(CONFIRM)
        app.tick()
        assert poll(lambda: _awaiting_reply(app), step=app.tick)
        app.handle_key(CONFIRM)

        state = app.state
        assert isinstance(state, RunningState)
        # One event per tick: text mode starts before the reply channel arrives.
        assert poll(lambda: app.view().input_mode is InputMode.TEXT, step=app.tick)
        assert state.run_state is not None
        assert state.run_state.pending_reply is None

        _type(app, "ab")
        app.handle_key(CONFIRM)
        assert app.view().input_buffer == "ab"

        assert poll(lambda: _awaiting_reply(app), step=app.tick)
        app.handle_key(CONFIRM)
        assert poll(lambda: app.finished, step=app.tick)
        assert app.view().project_name == "ab"

    def test_quit_while_prompting_cancels(self, app_factory, rust_like_profile, poll):
        app = app_factory([rust_like_profile])
        app.handle_key(CONFIRM)
        app.tick()
        assert poll(lambda: _awaiting_reply(app), step=app.tick)

        state = app.state
        assert isinstance(state, RunningState)
        app.handle_key(KeyPress.of_char("q"))

        assert app.finished
        assert state.runner.was_cancelled
        assert state.subscription is not None and state.subscription.closed
        assert state.runner.join(5.0)

    def test_q_is_text_in_name_prompt(self, app_factory, rust_like_profile, poll):
        app = app_factory([rust_like_profile])
        app.handle_key(CONFIRM)
        app.tick()
        assert poll(lambda: _awaiting_reply(app), step=app.tick)
        app.handle_key(CONFIRM)
        assert poll(lambda: _awaiting_reply(app), step=app.tick)

        app.handle_key(KeyPress.of_char("q"))
        assert not app.finished
        assert app.view().input_buffer == "q"

        app.handle_key(ESC)
        assert app.finished

    def test_lost_bus_is_fatal(self, app_factory, rust_like_profile):
        app = app_factory([rust_like_profile])
        app.handle_key(CONFIRM)
        app.tick()
        state = app.state
        assert isinstance(state, RunningState)

        state.runner.start_or_attach().close()
        state.runner._bus = None

        with pytest.raises(NoBusError):
            app.tick()
        state.runner.cancel()
