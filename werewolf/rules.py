"""
Centralized game rules configuration.

All timeouts, role-mix thresholds and stand-in agent tuning live here.
Rule helpers return (allowed, reason) so callers can surface the reason.
"""

from dataclasses import dataclass, field, fields
from typing import Dict, Optional, Tuple

from .constants import RoleId


@dataclass
class GameRules:
    """
    All configurable game rules in one place.

    Defaults match the behavior of the original chat bot.
    """

    # Lobby
    min_players: int = 4

    # Timeouts (seconds)
    night_action_timeout: float = 60.0
    discussion_time: float = 90.0
    voting_time: float = 60.0
    hunter_timeout: float = 30.0

    # Bodyguard rules
    bodyguard_can_self_protect: bool = True
    bodyguard_can_protect_same_twice: bool = False  # Cooldown on consecutive nights

    # Witch rules
    witch_can_self_poison: bool = False

    # Role-mix scaling
    witch_min_players: int = 8
    cursed_werewolf_min_players: int = 10
    role_distribution: Optional[Dict[str, int]] = None  # Explicit override, by role id

    # Stand-in agent pacing: (min, max) delay before acting
    ai_action_delay: Tuple[float, float] = (1.0, 3.0)
    ai_vote_delays: Dict[str, Tuple[float, float]] = field(
        default_factory=lambda: {"quick": (1.0, 2.0), "normal": (2.0, 4.0), "slow": (3.0, 6.0)}
    )

    # Stand-in agent heuristics
    ai_curse_chance: float = 0.3
    ai_witch_heal_chance: float = 0.7
    ai_witch_poison_chance: float = 0.3
    ai_hunter_shoot_chance: float = 0.9

    @classmethod
    def from_dict(cls, overrides: Dict) -> "GameRules":
        """Build rules from a plain dict, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown rule setting(s): {', '.join(sorted(unknown))}")
        values = dict(overrides)
        if "ai_action_delay" in values:
            values["ai_action_delay"] = tuple(values["ai_action_delay"])
        if "ai_vote_delays" in values:
            values["ai_vote_delays"] = {k: tuple(v) for k, v in values["ai_vote_delays"].items()}
        return cls(**values)


# =============================================================================
# RULE HELPER FUNCTIONS
# =============================================================================

def build_role_distribution(rules: GameRules, player_count: int) -> Dict[RoleId, int]:
    """
    Role counts for a given roster size.

    Starts from one werewolf, one seer and two villagers and scales up at
    6/8/10/12 players. Any shortfall is filled with villagers.
    """
    if rules.role_distribution:
        distribution = {RoleId(role): count for role, count in rules.role_distribution.items()}
    else:
        distribution = {
            RoleId.WEREWOLF: 1,
            RoleId.CURSED_WEREWOLF: 0,
            RoleId.VILLAGER: 2,
            RoleId.SEER: 1,
            RoleId.BODYGUARD: 0,
            RoleId.WITCH: 0,
            RoleId.HUNTER: 0,
        }

        if player_count >= 6:
            distribution[RoleId.BODYGUARD] = 1

        if player_count >= 8:
            distribution[RoleId.WEREWOLF] += 1
            distribution[RoleId.HUNTER] = 1

        if player_count >= rules.witch_min_players:
            distribution[RoleId.WITCH] = 1

        if player_count >= 10:
            distribution[RoleId.WEREWOLF] = 3

        if player_count >= rules.cursed_werewolf_min_players and distribution[RoleId.WEREWOLF] > 1:
            distribution[RoleId.WEREWOLF] -= 1
            distribution[RoleId.CURSED_WEREWOLF] = 1

        if player_count >= 12:
            distribution[RoleId.VILLAGER] += 2

    total = sum(distribution.values())
    if total < player_count:
        distribution[RoleId.VILLAGER] = distribution.get(RoleId.VILLAGER, 0) + (player_count - total)

    return {role: count for role, count in distribution.items() if count > 0}


def can_bodyguard_protect(
    rules: GameRules,
    bodyguard_id: str,
    target_id: str,
    last_protected: Optional[Tuple[str, int]],
    night: int,
) -> Tuple[bool, str]:
    """
    Check if a bodyguard can shield a given target tonight.

    Args:
        last_protected: (target_id, night) of the bodyguard's previous shield, if any

    Returns:
        (can_protect, reason) - reason is empty string if allowed
    """
    if target_id == bodyguard_id and not rules.bodyguard_can_self_protect:
        return False, "You cannot protect yourself"

    if not rules.bodyguard_can_protect_same_twice and last_protected:
        previous_target, previous_night = last_protected
        if previous_target == target_id and previous_night == night - 1:
            return False, "You protected that player last night"

    return True, ""


def can_witch_heal(potions, werewolf_target: Optional[str]) -> Tuple[bool, str]:
    """Check if the witch can use her heal potion tonight."""
    if not potions.heal:
        return False, "Your heal potion is already used"
    if werewolf_target is None:
        return False, "Nobody was attacked tonight"
    return True, ""


def can_witch_poison(rules: GameRules, potions, witch_id: str, target_id: str) -> Tuple[bool, str]:
    """Check if the witch can poison a given target."""
    if not potions.kill:
        return False, "Your kill potion is already used"
    if target_id == witch_id and not rules.witch_can_self_poison:
        return False, "You cannot poison yourself"
    return True, ""


# =============================================================================
# DEFAULT RULES INSTANCE
# =============================================================================

DEFAULT_RULES = GameRules()
