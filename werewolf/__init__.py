"""Werewolf game session engine."""

from .constants import NightPhase, Phase, RoleId, Team
from .errors import ActionResult, GameError
from .events import GameListener
from .game_state import GameState, Player
from .registry import SessionRegistry
from .roles import ROLE_TABLE, get_role
from .rules import DEFAULT_RULES, GameRules
from .session import GameSession
from .win_conditions import check_win_condition

__all__ = [
    "ActionResult",
    "DEFAULT_RULES",
    "GameError",
    "GameListener",
    "GameRules",
    "GameSession",
    "GameState",
    "NightPhase",
    "Phase",
    "Player",
    "ROLE_TABLE",
    "RoleId",
    "SessionRegistry",
    "Team",
    "check_win_condition",
    "get_role",
]
