"""Curses session loop.

Each iteration: advance the state machine (one bus event at most), draw the
frame, stop if the session is finished, then wait up to one poll interval
for a key. curses.wrapper restores the terminal on every exit path,
including a NoBusError escaping from App.tick().
"""

from __future__ import annotations

import curses
import os
from typing import Any

from proman.core.app import App
from proman.core.config import UISettings
from proman.core.logging import console_enabled, get_logger, set_console_enabled
from proman.tui.keys import poll_key
from proman.tui.render import draw
from proman.tui.theme import Theme

# Must be set before curses initializes so Esc quits without a long delay.
os.environ.setdefault("ESCDELAY", "25")

log = get_logger(__name__)


def run_session(app: App, settings: UISettings | None = None) -> App:
    """Run the interactive wizard until the user quits or the run finishes."""
    ui = settings or UISettings()
    was_enabled = console_enabled()
    set_console_enabled(False)
    try:
        curses.wrapper(_loop, app, ui)
    finally:
        set_console_enabled(was_enabled)
    return app


def _loop(stdscr: Any, app: App, ui: UISettings) -> None:
    theme = Theme(ui)
    theme.init_colors()
    try:
        curses.curs_set(0)
    except curses.error:
        log.debug("Terminal cannot hide the cursor")
    stdscr.keypad(True)
    stdscr.timeout(ui.poll_interval_ms)

    while True:
        app.tick()
        draw(stdscr, app.view(), theme)
        if app.finished:
            break
        app.handle_key(poll_key(stdscr))
