"""
Stand-in agents for seats without a human.

An agent only decides; the session submits the decision through the same
``submit_*`` entry points a human uses. Decisions are raw choice strings.
"""

import random
from dataclasses import dataclass
from typing import Any, Dict, List, Set

from .constants import ABSTAIN, NO_ACTION, RoleId


AI_NAMES = [
    "Bot-Tinh", "Bot-Tue", "Bot-Minh", "Bot-Tri", "Bot-Thong",
    "Bot-Anh", "Bot-Hao", "Bot-Dung", "Bot-Khoi", "Bot-Quan",
    "Bot-Chau", "Bot-Linh", "Bot-Mai", "Bot-Thao", "Bot-Quynh",
    "Bot-Hai", "Bot-Phong", "Bot-Duong", "Bot-Phuc", "Bot-Vinh",
]


@dataclass(frozen=True)
class Personality:
    type: str
    skip_vote_chance: float
    vote_pace: str  # key into GameRules.ai_vote_delays


PERSONALITY_TRAITS = [
    Personality("strategic", 0.05, "normal"),
    Personality("impulsive", 0.02, "quick"),
    Personality("cautious", 0.15, "slow"),
]


class AgentNamer:
    """Hands out agent names without repeats, suffixing once the list runs out."""

    def __init__(self, rng: random.Random):
        self.rng = rng
        self.used: Set[str] = set()
        self._overflow = 0

    def next_name(self, taken: Set[str] = frozenset()) -> str:
        available = [n for n in AI_NAMES if n not in self.used and n not in taken]
        if available:
            name = self.rng.choice(available)
        else:
            name = None
            while name is None or name in self.used or name in taken:
                self._overflow += 1
                name = f"{self.rng.choice(AI_NAMES)}_{self._overflow}"
        self.used.add(name)
        return name


class StandInAgent:
    """Simple heuristic decision maker for one AI seat."""

    def __init__(self, player_id: str, personality: Personality, rules, rng: random.Random):
        self.player_id = player_id
        self.personality = personality
        self.rules = rules
        self.rng = rng

    # -- pacing ----------------------------------------------------------

    def action_delay(self) -> float:
        low, high = self.rules.ai_action_delay
        return self.rng.uniform(low, high)

    def vote_delay(self) -> float:
        low, high = self.rules.ai_vote_delays.get(self.personality.vote_pace, (0.0, 0.0))
        return self.rng.uniform(low, high)

    # -- decisions -------------------------------------------------------

    def choose_night_action(self, game_state, player, prompt_context: Dict[str, Any]) -> str:
        """Pick a raw choice from the legal options offered in the prompt."""
        values = [c["value"] for c in prompt_context.get("choices", [])]

        if player.role in (RoleId.WEREWOLF, RoleId.CURSED_WEREWOLF):
            return self._werewolf_choice(values, prompt_context)
        if player.role == RoleId.WITCH:
            return self._witch_choice(values)

        # Seer and bodyguard pick uniformly among what they may target
        if not values:
            return NO_ACTION
        return self.rng.choice(values)

    def _werewolf_choice(self, values: List[str], prompt_context: Dict[str, Any]) -> str:
        attacks = [v for v in values if v.startswith("attack:")]
        curses = [v for v in values if v.startswith("curse:")]
        extras = prompt_context.get("extras", {})
        if curses and extras.get("curse_available") and self.rng.random() < self.rules.ai_curse_chance:
            return self.rng.choice(curses)
        if not attacks:
            return NO_ACTION
        return self.rng.choice(attacks)

    def _witch_choice(self, values: List[str]) -> str:
        if "heal" in values and self.rng.random() < self.rules.ai_witch_heal_chance:
            return "heal"
        poisons = [v for v in values if v.startswith("kill:")]
        if poisons and self.rng.random() < self.rules.ai_witch_poison_chance:
            return self.rng.choice(poisons)
        return NO_ACTION

    def choose_retaliation(self, candidates: List) -> str:
        if candidates and self.rng.random() < self.rules.ai_hunter_shoot_chance:
            return self.rng.choice(candidates).player_id
        return NO_ACTION

    def choose_vote(self, game_state, player) -> str:
        if self.rng.random() < self.personality.skip_vote_chance:
            return ABSTAIN

        candidates = [p for p in game_state.get_alive_players() if p.player_id != player.player_id]
        if player.is_werewolf:
            preferred = [p for p in candidates if not p.is_werewolf]
            candidates = preferred or candidates
        if not candidates:
            return ABSTAIN
        return self.rng.choice(candidates).player_id


def random_personality(rng: random.Random) -> Personality:
    return rng.choice(PERSONALITY_TRAITS)

