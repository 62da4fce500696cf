"""Translate curses key codes into state-machine key presses."""

from __future__ import annotations

import curses
from typing import Any

from proman.core.app import KeyKind, KeyPress

_ESC = 27
_CONFIRM_CODES = {curses.KEY_ENTER, 10, 13}
_BACKSPACE_CODES = {curses.KEY_BACKSPACE, 8, 127}


def classify(code: int | str) -> KeyPress | None:
    """Classify one key from getch()/get_wch(); None means no key was pressed."""
    if isinstance(code, str):
        if code == "":
            return None
        if len(code) == 1 and ord(code) < 256 and not code.isprintable():
            return classify(ord(code))
        if code.isprintable():
            return KeyPress.of_char(code)
        return KeyPress(KeyKind.OTHER)

    if code == curses.ERR:
        return None
    if code == _ESC:
        return KeyPress(KeyKind.QUIT)
    if code == curses.KEY_UP:
        return KeyPress(KeyKind.UP)
    if code == curses.KEY_DOWN:
        return KeyPress(KeyKind.DOWN)
    if code in _CONFIRM_CODES:
        return KeyPress(KeyKind.CONFIRM)
    if code in _BACKSPACE_CODES:
        return KeyPress(KeyKind.BACKSPACE)
    if 32 <= code < 127:
        return KeyPress.of_char(chr(code))
    return KeyPress(KeyKind.OTHER)


def poll_key(stdscr: Any) -> KeyPress | None:
    """Wait up to the window timeout for one key press."""
    try:
        code = stdscr.get_wch()
    except curses.error:
        return None
    return classify(code)
