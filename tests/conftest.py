"""Shared fixtures for storyboard tests."""

import pytest

from storyboard.core import CryptoCodec, GraphDocument


class FakeTimer:
    def __init__(self, clock, deadline, fn):
        self.clock = clock
        self.deadline = deadline
        self.fn = fn
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Manual clock whose timers fire only when advanced."""

    def __init__(self):
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def timer_factory(self, interval, fn):
        timer = FakeTimer(self, self.now + interval, fn)
        self.timers.append(timer)
        return timer

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if not t.cancelled and t.deadline <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.deadline)
            self.timers.remove(timer)
            self.now = timer.deadline
            timer.fn()
        self.now = target

    def pending(self):
        return [t for t in self.timers if not t.cancelled]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def codec():
    return CryptoCodec(bytes(range(32)))


@pytest.fixture
def document():
    return GraphDocument()
