"""Seer vision bookkeeping: record per night, deliver exactly once."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple


@dataclass(frozen=True)
class SeerVision:
    night: int
    seer_id: str
    target_id: str
    is_werewolf: bool


class SeerTracker:
    """
    Stores what each Seer inspected on each night.

    A vision recorded for night N is handed out once at the start of the day
    that follows night N, whether or not the Seer survived the night.
    """

    def __init__(self):
        self._visions: Dict[Tuple[int, str], SeerVision] = {}
        self._delivered: Set[Tuple[int, str]] = set()

    def record(self, night: int, seer_id: str, target_id: str, is_werewolf: bool) -> SeerVision:
        vision = SeerVision(night, seer_id, target_id, is_werewolf)
        self._visions[(night, seer_id)] = vision
        return vision

    def get(self, night: int, seer_id: str) -> Optional[SeerVision]:
        return self._visions.get((night, seer_id))

    def pending(self, night: int) -> List[SeerVision]:
        """Undelivered visions from the given night."""
        return [
            vision for key, vision in self._visions.items()
            if key[0] == night and key not in self._delivered
        ]

    def mark_delivered(self, vision: SeerVision):
        self._delivered.add((vision.night, vision.seer_id))

    def is_delivered(self, night: int, seer_id: str) -> bool:
        return (night, seer_id) in self._delivered

    def history_for(self, seer_id: str) -> List[SeerVision]:
        return sorted(
            (v for v in self._visions.values() if v.seer_id == seer_id),
            key=lambda v: v.night,
        )
