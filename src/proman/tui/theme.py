"""TUI theme system - color schemes for the wizard screens."""

from __future__ import annotations

import curses
from typing import Any

from proman.core.config import UISettings

# Blue frame, red cursor bar
DEFAULT_THEME = {
    "border_bg": curses.COLOR_BLUE,
    "border_fg": curses.COLOR_WHITE,
    "window_bg": curses.COLOR_WHITE,
    "window_fg": curses.COLOR_BLACK,
    "cursor_bg": curses.COLOR_RED,
    "cursor_fg": curses.COLOR_WHITE,
    "error_fg": curses.COLOR_RED,
}

# Terminal defaults everywhere; selection shown by reverse video only
MONO_THEME = {key: -1 for key in DEFAULT_THEME}

COLOR_NAMES = {
    "default": -1,
    "black": curses.COLOR_BLACK,
    "red": curses.COLOR_RED,
    "green": curses.COLOR_GREEN,
    "yellow": curses.COLOR_YELLOW,
    "blue": curses.COLOR_BLUE,
    "magenta": curses.COLOR_MAGENTA,
    "cyan": curses.COLOR_CYAN,
    "white": curses.COLOR_WHITE,
}


class Theme:
    """Color pairs used by the renderer."""

    PAIR_BORDER = 1
    PAIR_WINDOW = 2
    PAIR_CURSOR = 3
    PAIR_TITLE = 4
    PAIR_ERROR = 5

    def __init__(self, settings: UISettings | None = None):
        self.settings = settings or UISettings()
        self.mono = self.settings.theme == "mono"
        self._colors = self._load_colors()
        self._enabled = False

    def _load_colors(self) -> dict[str, int]:
        if self.settings.theme == "mono":
            return MONO_THEME.copy()
        if self.settings.theme == "custom":
            return self._load_custom_colors(self.settings.custom_theme)
        return DEFAULT_THEME.copy()

    @staticmethod
    def _load_custom_colors(custom: dict[str, Any]) -> dict[str, int]:
        """Custom scheme; unknown or missing names fall back to the default."""
        colors = {}
        for key, default in DEFAULT_THEME.items():
            color_name = str(custom.get(key, "")).lower()
            colors[key] = COLOR_NAMES.get(color_name, default)
        return colors

    def init_colors(self) -> None:
        """Initialize curses color pairs (no-op on terminals without color)."""
        if not curses.has_colors():
            return
        curses.start_color()
        curses.use_default_colors()
        c = self._colors
        curses.init_pair(self.PAIR_BORDER, c["border_fg"], c["border_bg"])
        curses.init_pair(self.PAIR_WINDOW, c["window_fg"], c["window_bg"])
        curses.init_pair(self.PAIR_CURSOR, c["cursor_fg"], c["cursor_bg"])
        curses.init_pair(self.PAIR_TITLE, c["cursor_fg"], c["cursor_bg"])
        curses.init_pair(self.PAIR_ERROR, c["error_fg"], c["window_bg"])
        self._enabled = True

    def attr(self, pair_id: int) -> int:
        if not self._enabled:
            return curses.A_REVERSE if pair_id in (self.PAIR_CURSOR, self.PAIR_TITLE) else 0
        extra = curses.A_REVERSE if self.mono and pair_id == self.PAIR_CURSOR else 0
        return curses.color_pair(pair_id) | extra
