"""
Action ledger and per-actor submission guard.

The ledger stores the current night's submissions keyed by acting player and
keeps every finished night in a history keyed by night number. The guard
rejects a second in-flight call for the same actor instead of queueing it.
"""

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from gevent.lock import Semaphore

from .constants import NightPhase
from .errors import AlreadyActed, Busy
from .night_actions import NightAction


class ActionLedger:
    """
    Per-night storage of submitted actions.

    Usage:
        ledger = ActionLedger()
        ledger.begin_night(1)
        ledger.record(NightAction(...))
        ledger.actions_for(NightPhase.WEREWOLF)
        ledger.archive()
    """

    def __init__(self):
        self.night: int = 0
        self._current: Dict[str, NightAction] = {}  # actor_id -> action, in submission order
        self.history: Dict[int, List[NightAction]] = {}

    def begin_night(self, night: int):
        """Start collecting for a new night. Any unarchived actions are archived first."""
        if self._current:
            self.archive()
        self.night = night

    def get(self, actor_id: str) -> Optional[NightAction]:
        return self._current.get(actor_id)

    def has_acted(self, actor_id: str) -> bool:
        return actor_id in self._current

    def ensure_not_acted(self, actor_id: str):
        existing = self._current.get(actor_id)
        if existing is not None:
            raise AlreadyActed(
                f"You already chose: {existing.choice.describe()}.",
                existing=existing.choice.describe(),
            )

    def record(self, action: NightAction):
        """Store an action. A second action for the same actor is rejected untouched."""
        self.ensure_not_acted(action.actor_id)
        self._current[action.actor_id] = action

    def actions_for(self, phase: NightPhase) -> List[NightAction]:
        """Actions recorded for a sub-phase, in submission order."""
        return [a for a in self._current.values() if a.phase == phase]

    def archive(self) -> List[NightAction]:
        """Move the current night into history and clear it."""
        actions = list(self._current.values())
        self.history.setdefault(self.night, []).extend(actions)
        self._current = {}
        return actions

    def history_for(self, night: int) -> List[NightAction]:
        return list(self.history.get(night, []))


class KeyedGuard:
    """
    Non-blocking mutual exclusion keyed by actor id.

    A second ``hold(key)`` while the first is still inside its block raises
    ``Busy`` immediately. The key is always released on exit.
    """

    def __init__(self):
        self._locks: Dict[str, Semaphore] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = Semaphore()
        if not lock.acquire(blocking=False):
            raise Busy("Your previous action is still being processed, please wait.")
        try:
            yield
        finally:
            lock.release()

    def is_held(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()
