"""Centralized logging for proman.

Provides unified logging with 4 verbosity levels:
- QUIET (0): Warnings + errors
- NORMAL (1): Info + warnings + errors
- VERBOSE (2): Detailed info
- DEBUG (3): Everything including internal state

Usage:
    from proman.core.logging import get_logger, set_verbosity

    logger = get_logger(__name__)
    set_verbosity(2)  # VERBOSE

    logger.debug("Internal state")
    logger.verbose("Step 2/3 started")
    logger.info("Profile selected")
    logger.warning("Skipping malformed profile")
    logger.error("Runner lost its event bus")

While the curses session owns the terminal, console output is switched off
with set_console_enabled(False); records still reach the LogBus and any file
sink installed with install_file_sink().
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable
from enum import IntEnum
from pathlib import Path

from proman.core.config import LoggingPolicy
from proman.core.log_bus import LogRecord, get_log_bus


class VerbosityLevel(IntEnum):
    """Verbosity levels for proman."""

    QUIET = 0  # Warnings + errors
    NORMAL = 1  # Info + warnings + errors
    VERBOSE = 2  # Detailed info
    DEBUG = 3  # Everything


# Global verbosity level
_VERBOSITY: VerbosityLevel = VerbosityLevel.NORMAL

# Color support
_USE_COLORS: bool = True

# Console output (disabled while curses draws the screen)
_CONSOLE_ENABLED: bool = True

# Backward compatible log sink
_LOG_SINK: Callable[[str], None] | None = None
_SINK_ADAPTER: Callable[[LogRecord], None] | None = None


def set_verbosity(level: int | VerbosityLevel) -> None:
    """Set global verbosity level.

    Args:
        level: Verbosity level (0-3 or VerbosityLevel enum)
    """
    global _VERBOSITY

    if isinstance(level, int):
        level = VerbosityLevel(level)

    _VERBOSITY = level


def get_verbosity() -> VerbosityLevel:
    """Get current verbosity level."""
    return _VERBOSITY


def apply_logging_policy(policy: LoggingPolicy) -> None:
    """Apply a resolved LoggingPolicy to core logging."""
    if policy.level_name == "debug":
        set_verbosity(VerbosityLevel.DEBUG)
    elif policy.level_name == "verbose":
        set_verbosity(VerbosityLevel.VERBOSE)
    elif policy.emit_info:
        set_verbosity(VerbosityLevel.NORMAL)
    else:
        set_verbosity(VerbosityLevel.QUIET)


def set_colors(enabled: bool) -> None:
    """Enable or disable colored output."""
    global _USE_COLORS
    _USE_COLORS = enabled


def set_console_enabled(enabled: bool) -> None:
    """Enable or disable printing log lines to stdout/stderr."""
    global _CONSOLE_ENABLED
    _CONSOLE_ENABLED = enabled


def console_enabled() -> bool:
    return _CONSOLE_ENABLED


def set_log_sink(sink: Callable[[str], None] | None) -> None:
    """Set a global log sink callback.

    Adapter over LogBus: the sink receives the plain text of every record.

    Args:
        sink: Callback receiving a single log line, or None to disable.
    """
    global _LOG_SINK
    global _SINK_ADAPTER

    if _SINK_ADAPTER is not None:
        get_log_bus().unsubscribe_all(_SINK_ADAPTER)
        _SINK_ADAPTER = None

    _LOG_SINK = sink

    if sink is None:
        return

    def _adapter(rec: LogRecord) -> None:
        try:
            sink(rec.plain)
        except Exception:
            return

    _SINK_ADAPTER = _adapter
    get_log_bus().subscribe_all(_adapter)


def get_log_sink() -> Callable[[str], None] | None:
    """Get the current global log sink callback (if any)."""
    return _LOG_SINK


def install_file_sink(path: Path | str) -> Callable[[], None]:
    """Append every published record to a file.

    Returns:
        A callable that removes the sink again.
    """
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    lock = threading.Lock()

    def _write(rec: LogRecord) -> None:
        with lock, open(target, "a", encoding="utf-8") as f:
            f.write(f"{rec.logger_name}: {rec.plain}\n")

    bus = get_log_bus()
    bus.subscribe_all(_write)

    def _remove() -> None:
        bus.unsubscribe_all(_write)

    return _remove


class ProManLogger:
    """Logger for proman with verbosity support."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "VERBOSE": "\033[34m",  # Blue
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "RESET": "\033[0m",
    }

    def __init__(self, name: str):
        """Initialize logger.

        Args:
            name: Logger name (usually module name)
        """
        self.name = name

    def _should_log(self, level: VerbosityLevel) -> bool:
        return level <= _VERBOSITY

    def _format_message(self, level: str, message: str) -> str:
        """Format log message, colored when writing to a terminal."""
        if _USE_COLORS and sys.stdout.isatty():
            color = self.COLORS.get(level, "")
            reset = self.COLORS["RESET"]
            return f"{color}[{level.lower()}]{reset} {message}"
        return f"[{level.lower()}] {message}"

    def _log(self, level: VerbosityLevel, level_name: str, message: str) -> None:
        """Internal logging method.

        Args:
            level: Required verbosity level
            level_name: Level name for display
            message: Message to log
        """
        if not self._should_log(level):
            return

        plain = f"[{level_name.lower()}] {message}"
        get_log_bus().publish(LogRecord(level_name=level_name, plain=plain, logger_name=self.name))

        if _CONSOLE_ENABLED:
            formatted = self._format_message(level_name, message)
            print(formatted, file=sys.stderr if level_name == "ERROR" else sys.stdout)

    def debug(self, message: str) -> None:
        """Log debug message (verbosity >= DEBUG)."""
        self._log(VerbosityLevel.DEBUG, "DEBUG", message)

    def verbose(self, message: str) -> None:
        """Log verbose message (verbosity >= VERBOSE)."""
        self._log(VerbosityLevel.VERBOSE, "VERBOSE", message)

    def info(self, message: str) -> None:
        """Log info message (verbosity >= NORMAL)."""
        self._log(VerbosityLevel.NORMAL, "INFO", message)

    def warning(self, message: str) -> None:
        """Log warning message (verbosity >= QUIET)."""
        self._log(VerbosityLevel.QUIET, "WARNING", message)

    def error(self, message: str) -> None:
        """Log error message (always shown)."""
        self._log(VerbosityLevel.QUIET, "ERROR", message)


# Logger registry
_LOGGERS: dict[str, ProManLogger] = {}


def get_logger(name: str = __name__) -> ProManLogger:
    """Get logger instance for module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    if name not in _LOGGERS:
        _LOGGERS[name] = ProManLogger(name)

    return _LOGGERS[name]
