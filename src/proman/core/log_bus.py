"""Process-wide LogBus for publishing log records.

Every record the core logger emits is published here, so sinks (a log file,
the headless driver, tests) can observe logging without touching the console.
Publishing is fail-safe: a raising subscriber never breaks the caller.

Records may be published from the runner thread while the foreground thread
subscribes, so the registry is guarded by a lock and snapshotted per publish.
"""

from __future__ import annotations

import contextlib
import sys
import threading
import traceback
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class LogRecord:
    level_name: str
    plain: str
    logger_name: str


class LogBus:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs_by_level: dict[str, list[Callable[[LogRecord], None]]] = {}
        self._subs_all: list[Callable[[LogRecord], None]] = []

    def subscribe(self, level_name: str, cb: Callable[[LogRecord], None]) -> None:
        with self._lock:
            self._subs_by_level.setdefault(level_name, []).append(cb)

    def unsubscribe(self, level_name: str, cb: Callable[[LogRecord], None]) -> None:
        with self._lock:
            subs = self._subs_by_level.get(level_name)
            if not subs or cb not in subs:
                return
            subs.remove(cb)
            if not subs:
                self._subs_by_level.pop(level_name, None)

    def subscribe_all(self, cb: Callable[[LogRecord], None]) -> None:
        with self._lock:
            self._subs_all.append(cb)

    def unsubscribe_all(self, cb: Callable[[LogRecord], None]) -> None:
        with self._lock:
            if cb in self._subs_all:
                self._subs_all.remove(cb)

    def publish(self, record: LogRecord) -> None:
        with self._lock:
            targets = list(self._subs_all) + list(self._subs_by_level.get(record.level_name, []))

        for cb in targets:
            self._invoke_cb(cb, record)

    def clear(self) -> None:
        with self._lock:
            self._subs_by_level.clear()
            self._subs_all.clear()

    def _invoke_cb(self, cb: Callable[[LogRecord], None], record: LogRecord) -> None:
        try:
            cb(record)
        except Exception:
            # Never route through the core logger here (recursion).
            msg = "LogBus subscriber raised; suppressed.\n" + traceback.format_exc()
            with contextlib.suppress(Exception):
                sys.stderr.write(msg)


_LOG_BUS: LogBus | None = None
_LOG_BUS_LOCK = threading.Lock()


def get_log_bus() -> LogBus:
    global _LOG_BUS
    with _LOG_BUS_LOCK:
        if _LOG_BUS is None:
            _LOG_BUS = LogBus()
        return _LOG_BUS
