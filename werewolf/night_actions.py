"""
Night action types.

Every submitted night choice is turned into one of these tagged records before
it touches game state. Raw strings from the chat binding ("attack:<id>",
"curse:<id>", "heal", "kill:<id>", "none", or a bare player id) are parsed here
once, at the boundary.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .constants import NO_ACTION, NightPhase
from .errors import InvalidTarget


@dataclass(frozen=True)
class Pass:
    """Explicit or timed-out 'no action'."""
    timed_out: bool = False

    def describe(self) -> str:
        return "no action (timed out)" if self.timed_out else "no action"


@dataclass(frozen=True)
class Attack:
    target_id: str

    def describe(self) -> str:
        return f"attack {self.target_id}"


@dataclass(frozen=True)
class Curse:
    target_id: str

    def describe(self) -> str:
        return f"curse {self.target_id}"


@dataclass(frozen=True)
class Inspect:
    target_id: str

    def describe(self) -> str:
        return f"inspect {self.target_id}"


@dataclass(frozen=True)
class Protect:
    target_id: str

    def describe(self) -> str:
        return f"protect {self.target_id}"


@dataclass(frozen=True)
class WitchBrew:
    heal: bool = False
    poison_target_id: Optional[str] = None

    def describe(self) -> str:
        parts = []
        if self.heal:
            parts.append("heal")
        if self.poison_target_id:
            parts.append(f"poison {self.poison_target_id}")
        return " + ".join(parts) or "no action"


Choice = Union[Pass, Attack, Curse, Inspect, Protect, WitchBrew]
CHOICE_TYPES = (Pass, Attack, Curse, Inspect, Protect, WitchBrew)


@dataclass(frozen=True)
class NightAction:
    """One actor's submission for one night sub-phase."""
    actor_id: str
    choice: Choice
    phase: NightPhase
    day: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actor": self.actor_id,
            "choice": self.choice.describe(),
            "phase": self.phase.value,
            "day": self.day,
        }


# =============================================================================
# RAW CHOICE PARSING
# =============================================================================

def _is_pass(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and raw.strip().lower() in (NO_ACTION, "", "pass"))


def _split_prefixed(raw: str):
    """'attack:abc' -> ('attack', 'abc'); 'abc' -> (None, 'abc')."""
    raw = raw.strip()
    for separator in (":", "_"):
        head, sep, tail = raw.partition(separator)
        if sep and head.lower() in ("attack", "curse", "kill", "heal", "poison"):
            return head.lower(), tail.strip()
    return None, raw


def parse_target_choice(raw: Any, factory) -> Choice:
    """Parse a single-target choice (seer, bodyguard)."""
    if isinstance(raw, CHOICE_TYPES):
        return raw
    if _is_pass(raw):
        return Pass()
    if not isinstance(raw, str):
        raise InvalidTarget("That choice is not understood")
    prefix, target = _split_prefixed(raw)
    if prefix is not None or not target:
        raise InvalidTarget("That choice is not understood")
    return factory(target)


def parse_werewolf_choice(raw: Any, allow_curse: bool) -> Choice:
    """Parse an attack or (cursed werewolf only) a curse."""
    if isinstance(raw, CHOICE_TYPES):
        choice = raw
    elif _is_pass(raw):
        return Pass()
    elif isinstance(raw, str):
        prefix, target = _split_prefixed(raw)
        if not target:
            raise InvalidTarget("That choice is not understood")
        if prefix in (None, "attack"):
            choice = Attack(target)
        elif prefix == "curse":
            choice = Curse(target)
        else:
            raise InvalidTarget("That choice is not understood")
    else:
        raise InvalidTarget("That choice is not understood")

    if isinstance(choice, Curse) and not allow_curse:
        raise InvalidTarget("Only the Cursed Werewolf can curse")
    if not isinstance(choice, (Attack, Curse, Pass)):
        raise InvalidTarget("Werewolves can only attack")
    return choice


def parse_witch_choice(raw: Any) -> Choice:
    """
    Parse a witch choice.

    Accepts "heal", "kill:<id>", "heal,kill:<id>", "none", or a dict
    {"heal": bool, "kill": "<id>"}.
    """
    if isinstance(raw, CHOICE_TYPES):
        if not isinstance(raw, (WitchBrew, Pass)):
            raise InvalidTarget("The witch can only heal or poison")
        return raw
    if _is_pass(raw):
        return Pass()

    heal = False
    poison = None
    if isinstance(raw, dict):
        heal = bool(raw.get("heal"))
        poison = raw.get("kill") or raw.get("poison") or None
    elif isinstance(raw, str):
        for part in raw.replace("+", ",").split(","):
            part = part.strip()
            if not part:
                continue
            if part.lower() == "heal":
                heal = True
                continue
            prefix, target = _split_prefixed(part)
            if prefix in ("kill", "poison") and target:
                poison = target
            else:
                raise InvalidTarget("That choice is not understood")
    else:
        raise InvalidTarget("That choice is not understood")

    if not heal and not poison:
        return Pass()
    return WitchBrew(heal=heal, poison_target_id=poison)
