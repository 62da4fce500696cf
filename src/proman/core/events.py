"""Run events carried on the event bus, and the prompt reply handshake.

The runner thread broadcasts Envelope(event, is_terminal) values. Prompt
requests embed a ReplyChannel: a single-use handoff the consumer answers
exactly once (or closes to abandon the prompt).
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Generic, TypeVar, Union

from proman.core.errors import ReplyError
from proman.core.profile import ProjectType

T = TypeVar("T")

_WAIT_SLICE = 0.05


class ReplyChannel(Generic[T]):
    """One-shot reply channel.

    Example:
        reply: ReplyChannel[str] = ReplyChannel()
        # consumer thread
        reply.send("demo")
        # runner thread
        name = reply.wait()  # "demo"
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._value: T | None = None
        self._answered = False
        self._closed = False

    @property
    def answered(self) -> bool:
        with self._cond:
            return self._answered

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def send(self, value: T) -> None:
        """Deliver the reply.

        Raises:
            ReplyError: If a reply was already sent or the channel was closed
        """
        with self._cond:
            if self._answered:
                raise ReplyError("Reply already sent on this channel")
            if self._closed:
                raise ReplyError("Reply channel was closed before a reply was sent")
            self._value = value
            self._answered = True
            self._cond.notify_all()

    def close(self) -> None:
        """Abandon the prompt; a waiter sees it as unanswered."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def wait(
        self,
        timeout: float | None = None,
        cancelled: threading.Event | None = None,
    ) -> T | None:
        """Block until answered.

        Returns None when the channel is closed, the timeout elapses or the
        cancelled flag is set before a reply arrives.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._answered:
                if self._closed:
                    return None
                if cancelled is not None and cancelled.is_set():
                    return None
                slice_s = _WAIT_SLICE
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                    slice_s = min(slice_s, remaining)
                self._cond.wait(slice_s)
            return self._value


@dataclass(frozen=True)
class StepStarted:
    name: str


@dataclass(frozen=True)
class RequestTextInput:
    pass


@dataclass(frozen=True)
class RequestProjectName:
    reply: ReplyChannel[str] = field(compare=False)


@dataclass(frozen=True)
class RequestChoice:
    options: tuple[ProjectType, ...]


@dataclass(frozen=True)
class RequestProjectType:
    options: tuple[ProjectType, ...]
    reply: ReplyChannel[ProjectType] = field(compare=False)


@dataclass(frozen=True)
class CommandOutput:
    line: str


@dataclass(frozen=True)
class Done:
    pass


RunEvent = Union[
    StepStarted,
    RequestTextInput,
    RequestProjectName,
    RequestChoice,
    RequestProjectType,
    CommandOutput,
    Done,
]


@dataclass(frozen=True)
class Envelope:
    """A run event plus its terminal flag; only Done is terminal."""

    event: RunEvent
    is_terminal: bool = False

    @classmethod
    def of(cls, event: RunEvent) -> Envelope:
        return cls(event=event, is_terminal=isinstance(event, Done))
