"""Shared enums and fixed orderings for the werewolf engine."""

from enum import Enum


class Phase(str, Enum):
    """Top-level game phase."""
    LOBBY = "LOBBY"
    NIGHT = "NIGHT"
    DAY = "DAY"
    VOTING = "VOTING"
    ENDED = "ENDED"


class NightPhase(str, Enum):
    """Night sub-phases. Declaration order is resolution order."""
    WEREWOLF = "WEREWOLF"
    SEER = "SEER"
    BODYGUARD = "BODYGUARD"
    WITCH = "WITCH"


class Team(str, Enum):
    """Alignment used by the win condition."""
    WEREWOLF = "WEREWOLF"
    VILLAGER = "VILLAGER"


class RoleId(str, Enum):
    WEREWOLF = "WEREWOLF"
    CURSED_WEREWOLF = "CURSED_WEREWOLF"
    SEER = "SEER"
    BODYGUARD = "BODYGUARD"
    WITCH = "WITCH"
    HUNTER = "HUNTER"
    VILLAGER = "VILLAGER"


class DeathCause(str, Enum):
    WEREWOLF = "WEREWOLF"
    WITCH = "WITCH"
    VOTE = "VOTE"
    HUNTER = "HUNTER"


NIGHT_PHASE_ORDER = (
    NightPhase.WEREWOLF,
    NightPhase.SEER,
    NightPhase.BODYGUARD,
    NightPhase.WITCH,
)

# Only NIGHT <-> DAY loops (through VOTING); everything else moves forward.
ALLOWED_TRANSITIONS = {
    Phase.LOBBY: {Phase.NIGHT, Phase.ENDED},
    Phase.NIGHT: {Phase.DAY, Phase.ENDED},
    Phase.DAY: {Phase.VOTING, Phase.ENDED},
    Phase.VOTING: {Phase.NIGHT, Phase.ENDED},
    Phase.ENDED: set(),
}

# Raw choice keywords accepted from the binding
NO_ACTION = "none"
ABSTAIN = "skip"
