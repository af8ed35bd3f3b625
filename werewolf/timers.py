"""
Timer scheduling for session phases.

Sessions never call gevent directly; they go through a scheduler with a
single ``call_later`` method so tests can swap in a virtual clock.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import gevent


@dataclass(frozen=True)
class TimerToken:
    """Identifies the state a timer was scheduled for."""
    phase: str
    day: int
    stage: Optional[str] = None

    def __str__(self):
        return f"{self.phase}/{self.day}/{self.stage or '-'}"


class TimerHandle:
    """Cancellable handle around a spawned greenlet."""

    def __init__(self, greenlet):
        self._greenlet = greenlet

    def cancel(self):
        """Kill the greenlet unless it is the one running this call.

        A timer callback that ends the game cancels every timer, including
        its own; killing itself would interrupt it at the next yield.
        """
        if self._greenlet is None:
            return
        if self._greenlet is not gevent.getcurrent():
            self._greenlet.kill(block=False)
        self._greenlet = None

    @property
    def active(self) -> bool:
        return self._greenlet is not None and not self._greenlet.dead


class GeventScheduler:
    """Production scheduler backed by ``gevent.spawn_later``."""

    def call_later(self, delay: float, func: Callable, *args) -> TimerHandle:
        return TimerHandle(gevent.spawn_later(max(0.0, delay), func, *args))


class TimerSet:
    """The outstanding timers of one session."""

    def __init__(self, scheduler):
        self.scheduler = scheduler
        self._handles = []

    def schedule(self, delay: float, func: Callable, *args):
        handle = self.scheduler.call_later(delay, func, *args)
        self._handles = [h for h in self._handles if h.active]
        self._handles.append(handle)
        return handle

    def cancel_all(self) -> int:
        count = len(self._handles)
        for handle in self._handles:
            handle.cancel()
        self._handles = []
        return count

    def __len__(self):
        return len(self._handles)
