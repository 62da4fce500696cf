"""Curses terminal UI for the wizard."""

from proman.tui.session import run_session

__all__ = ["run_session"]
