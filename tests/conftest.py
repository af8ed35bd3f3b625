import os
import random
import tempfile

import pytest

# app.py configures file logging at import time
os.environ.setdefault("WEREWOLF_LOG_DIR", tempfile.mkdtemp(prefix="werewolf-logs-"))

from werewolf.events import GameListener
from werewolf.rules import GameRules
from werewolf.session import GameSession


class FakeHandle:
    def __init__(self, when, seq, func, args):
        self.when = when
        self.seq = seq
        self.func = func
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    @property
    def active(self):
        return not (self.cancelled or self.fired)


class FakeScheduler:
    """Virtual clock. Timers only fire inside advance()."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = 0

    def call_later(self, delay, func, *args):
        handle = FakeHandle(self.now + max(0.0, delay), self._seq, func, args)
        self._seq += 1
        self._queue.append(handle)
        return handle

    def advance(self, seconds):
        deadline = self.now + seconds
        while True:
            due = [h for h in self._queue if h.active and h.when <= deadline]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self.now = max(self.now, handle.when)
            handle.fired = True
            handle.func(*handle.args)
        self.now = deadline
        self._queue = [h for h in self._queue if h.active]

    @property
    def pending(self):
        return [h for h in self._queue if h.active]


LISTENER_EVENTS = [
    "on_role_assigned",
    "on_night_prompt_needed",
    "on_night_phase_skipped",
    "on_day_report",
    "on_seer_result",
    "on_voting_opened",
    "on_voting_result",
    "on_hunter_retaliation_needed",
    "on_hunter_shot",
    "on_werewolf_team_changed",
    "on_phase_changed",
    "on_game_ended",
]


class RecordingListener(GameListener):
    def __init__(self):
        self.events = []

    def of(self, name):
        return [args for event, args in self.events if event == name]

    def names(self):
        return [event for event, _ in self.events]


def _recorder(name):
    def record(self, *args):
        self.events.append((name, args))
    return record


for _name in LISTENER_EVENTS:
    setattr(RecordingListener, _name, _recorder(_name))


class NoShuffle(random.Random):
    """Keeps the role pool in distribution order so seating decides roles."""

    def shuffle(self, x, *args, **kwargs):
        return None


def make_session(roles, listener=None, scheduler=None, **rule_overrides):
    """
    Session with players p1..pN seated in order, already started.

    ``roles`` must list each role id in one contiguous run, e.g.
    ["WEREWOLF", "SEER", "VILLAGER", "VILLAGER"]; p1 gets the first role.
    """
    distribution = {}
    for role in roles:
        distribution[role] = distribution.get(role, 0) + 1
    rules = GameRules(role_distribution=distribution, **rule_overrides)
    session = GameSession(
        "p1", "P1",
        rules=rules,
        listener=listener or RecordingListener(),
        scheduler=scheduler or FakeScheduler(),
        rng=NoShuffle(7),
    )
    for i in range(2, len(roles) + 1):
        assert session.add_player(f"p{i}", f"P{i}").success
    result = session.start_game()
    assert result.success, result.message
    return session


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def lobby(scheduler, listener):
    return GameSession("p1", "P1", listener=listener, scheduler=scheduler, rng=NoShuffle(7))
