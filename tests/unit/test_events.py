"""Tests for run events and reply channels."""

from __future__ import annotations

import threading

import pytest

from proman.core.errors import ReplyError
from proman.core.events import (
    CommandOutput,
    Done,
    Envelope,
    ReplyChannel,
    RequestProjectName,
    StepStarted,
)


class TestReplyChannel:
    """One-shot reply semantics."""

    def test_send_then_wait(self):
        reply: ReplyChannel[str] = ReplyChannel()
        reply.send("demo")
        assert reply.answered
        assert reply.wait(timeout=0.1) == "demo"

    def test_wait_receives_from_other_thread(self):
        reply: ReplyChannel[str] = ReplyChannel()
        timer = threading.Timer(0.05, reply.send, args=("later",))
        timer.start()
        try:
            assert reply.wait(timeout=2.0) == "later"
        finally:
            timer.cancel()

    def test_double_send_rejected(self):
        reply: ReplyChannel[str] = ReplyChannel()
        reply.send("a")
        with pytest.raises(ReplyError):
            reply.send("b")
        assert reply.wait() == "a"

    def test_send_after_close_rejected(self):
        reply: ReplyChannel[str] = ReplyChannel()
        reply.close()
        assert reply.closed
        with pytest.raises(ReplyError):
            reply.send("late")

    def test_close_wakes_waiter(self):
        reply: ReplyChannel[str] = ReplyChannel()
        timer = threading.Timer(0.05, reply.close)
        timer.start()
        try:
            assert reply.wait(timeout=2.0) is None
        finally:
            timer.cancel()

    def test_timeout(self):
        reply: ReplyChannel[str] = ReplyChannel()
        assert reply.wait(timeout=0.05) is None
        assert not reply.answered

    def test_cancelled_flag(self):
        reply: ReplyChannel[str] = ReplyChannel()
        cancelled = threading.Event()
        timer = threading.Timer(0.05, cancelled.set)
        timer.start()
        try:
            assert reply.wait(timeout=2.0, cancelled=cancelled) is None
        finally:
            timer.cancel()


class TestEnvelope:
    """Terminal flag and event equality."""

    def test_only_done_is_terminal(self):
        assert Envelope.of(Done()).is_terminal
        assert not Envelope.of(StepStarted("x")).is_terminal
        assert not Envelope.of(CommandOutput("line")).is_terminal

    def test_requests_compare_without_reply(self):
        assert RequestProjectName(ReplyChannel()) == RequestProjectName(ReplyChannel())
