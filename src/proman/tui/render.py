"""Curses drawing for each screen of the wizard."""

from __future__ import annotations

import contextlib
import curses
from typing import Any

from proman.core.app import InputMode, Screen, View
from proman.tui.theme import Theme

MAIN_HELP = " Up/Down:Navigate  Enter:Select  q:Quit "
TEXT_HELP = " Type the project name  Enter:Confirm  Esc:Quit "
RUNNING_HELP = " q:Quit "


def draw(stdscr: Any, view: View, theme: Theme) -> None:
    """Draw one frame for the given view."""
    stdscr.erase()
    height, width = stdscr.getmaxyx()
    if height < 8 or width < 20:
        _put(stdscr, 0, 0, "Terminal too small"[: max(width - 1, 0)], 0)
        stdscr.refresh()
        return

    stdscr.bkgd(" ", theme.attr(Theme.PAIR_BORDER))

    if view.screen is Screen.MAIN:
        _draw_main(stdscr, view, theme, height, width)
    elif view.screen is Screen.STARTING:
        _draw_box(stdscr, theme, 1, 1, 3, width - 2, f"Starting {view.language}")
    else:
        _draw_running(stdscr, view, theme, height, width)

    stdscr.refresh()


def _draw_main(stdscr: Any, view: View, theme: Theme, height: int, width: int) -> None:
    box_h = height - 2
    box_w = width - 2
    _draw_box(stdscr, theme, 1, 1, box_h, box_w, "Please choose a language")

    list_h = box_h - 5
    top = max(0, view.cursor - list_h + 1)
    for row, label in enumerate(view.items[top : top + list_h]):
        idx = top + row
        selected = idx == view.cursor
        marker = ">> " if selected else "   "
        text = f"{marker}{label}".ljust(box_w - 4)[: box_w - 4]
        attr = theme.attr(Theme.PAIR_CURSOR if selected else Theme.PAIR_WINDOW)
        _put(stdscr, 3 + row, 3, text, attr)

    if view.requirements:
        parts = [
            f"{req} (missing)" if req in view.missing_requirements else req
            for req in view.requirements
        ]
        detail = "Requires: " + ", ".join(parts)
        attr = theme.attr(Theme.PAIR_ERROR if view.missing_requirements else Theme.PAIR_WINDOW)
        _put(stdscr, box_h - 2, 3, detail[: box_w - 4], attr)

    help_text = MAIN_HELP.center(box_w - 4)[: box_w - 4]
    _put(stdscr, box_h - 1, 3, help_text, theme.attr(Theme.PAIR_WINDOW))


def _draw_running(stdscr: Any, view: View, theme: Theme, height: int, width: int) -> None:
    prompt_h = 0
    if view.input_mode is InputMode.TEXT:
        prompt_h = 3
    elif view.input_mode is InputMode.CHOICE:
        prompt_h = min(len(view.choices), 8) + 2

    box_w = width - 2
    scroll_h = height - 2 - prompt_h
    title = f"Step: {view.step_name}" if view.step_name else view.language
    if view.screen is Screen.STOPPING:
        title = f"Finished: {view.language}"
    _draw_box(stdscr, theme, 1, 1, scroll_h, box_w, title)

    visible = scroll_h - 3
    lines = view.scrollback[-visible:] if visible > 0 else []
    for row, line in enumerate(lines):
        _put(stdscr, 2 + row, 3, line[: box_w - 4], theme.attr(Theme.PAIR_WINDOW))

    if prompt_h == 0:
        _put(
            stdscr,
            scroll_h - 1,
            3,
            RUNNING_HELP.center(box_w - 4)[: box_w - 4],
            theme.attr(Theme.PAIR_WINDOW),
        )
        return

    prompt_y = 1 + scroll_h
    if view.input_mode is InputMode.TEXT:
        _draw_box(stdscr, theme, prompt_y, 1, prompt_h, box_w, TEXT_HELP.strip())
        field_w = box_w - 4
        text = view.input_buffer[-(field_w - 1) :] + "_"
        _put(stdscr, prompt_y + 1, 3, text.ljust(field_w)[:field_w], theme.attr(Theme.PAIR_WINDOW))
        return

    _draw_box(stdscr, theme, prompt_y, 1, prompt_h, box_w, "Project types")
    rows = prompt_h - 2
    top = max(0, view.choice_cursor - rows + 1)
    for row, label in enumerate(view.choices[top : top + rows]):
        idx = top + row
        selected = idx == view.choice_cursor
        text = (">> " if selected else "   ") + label
        attr = theme.attr(Theme.PAIR_CURSOR if selected else Theme.PAIR_WINDOW)
        _put(stdscr, prompt_y + 1 + row, 3, text.ljust(box_w - 4)[: box_w - 4], attr)


def _draw_box(stdscr: Any, theme: Theme, y: int, x: int, h: int, w: int, title: str) -> None:
    """Draw a filled, bordered box with a centered title."""
    if h < 2 or w < 4:
        return
    attr = theme.attr(Theme.PAIR_WINDOW)
    for row in range(y, y + h):
        _put(stdscr, row, x, " " * w, attr)

    with contextlib.suppress(curses.error):
        stdscr.addch(y, x, curses.ACS_ULCORNER, attr)
        stdscr.addch(y, x + w - 1, curses.ACS_URCORNER, attr)
        stdscr.addch(y + h - 1, x, curses.ACS_LLCORNER, attr)
        stdscr.addch(y + h - 1, x + w - 1, curses.ACS_LRCORNER, attr)
        for i in range(1, w - 1):
            stdscr.addch(y, x + i, curses.ACS_HLINE, attr)
            stdscr.addch(y + h - 1, x + i, curses.ACS_HLINE, attr)
        for i in range(1, h - 1):
            stdscr.addch(y + i, x, curses.ACS_VLINE, attr)
            stdscr.addch(y + i, x + w - 1, curses.ACS_VLINE, attr)

    label = f" {title} "
    if len(label) > w - 4:
        label = label[: w - 7] + "..."
    _put(stdscr, y, x + (w - len(label)) // 2, label, theme.attr(Theme.PAIR_TITLE))


def _put(stdscr: Any, y: int, x: int, text: str, attr: int) -> None:
    # Writing the bottom-right cell raises even though it succeeds.
    with contextlib.suppress(curses.error):
        stdscr.addstr(y, x, text, attr)
