"""
Role definitions and the role behavior table.

Each role is an immutable record keyed by ``RoleId``. Roles with a night
action supply four functions:

    parse(raw)                          -> typed choice
    describe_prompt(state, player)      -> prompt context for the binding
    record(state, player, choice)       -> validate + apply immediate effects, return message
    resolve(state, actions)             -> run once when the role's sub-phase closes

Any role may supply ``on_death(state, player)`` for death-triggered effects.
Players only hold a ``RoleId``; the table is shared by every session.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .constants import NightPhase, RoleId, Team
from .errors import InvalidTarget
from .night_actions import (
    Attack,
    Curse,
    Inspect,
    Pass,
    Protect,
    WitchBrew,
    parse_target_choice,
    parse_werewolf_choice,
    parse_witch_choice,
)
from .prompts import render_night_prompt
from .rules import can_bodyguard_protect, can_witch_heal, can_witch_poison


@dataclass(frozen=True)
class HunterRetaliation:
    """Death effect: the hunter gets one last shot."""
    hunter_id: str


@dataclass(frozen=True)
class RoleBehavior:
    role_id: RoleId
    name: str
    description: str
    team: Team
    emoji: str
    night_phase: Optional[NightPhase] = None
    parse: Optional[Callable[[Any], Any]] = None
    describe_prompt: Optional[Callable] = None
    record: Optional[Callable] = None
    resolve: Optional[Callable] = None
    on_death: Optional[Callable] = None

    @property
    def acts_at_night(self) -> bool:
        return self.night_phase is not None

    def info(self) -> Dict[str, Any]:
        return {
            "id": self.role_id.value,
            "name": self.name,
            "description": self.description,
            "team": self.team.value,
            "emoji": self.emoji,
            "night_phase": self.night_phase.value if self.night_phase else None,
        }


# =============================================================================
# SHARED HELPERS
# =============================================================================

def _living_target(state, target_id: str):
    target = state.get_player(target_id)
    if target is None or not target.alive:
        raise InvalidTarget("That player is not alive")
    return target


def _choice_list(players, prefix: str = "") -> List[Dict[str, str]]:
    return [{"value": f"{prefix}{p.player_id}", "label": p.name} for p in players]


def _teammate_names(state, player) -> List[str]:
    return [
        p.name for p in state.get_alive_players()
        if p.is_werewolf and p.player_id != player.player_id
    ]


def _non_werewolf_targets(state):
    return [p for p in state.get_alive_players() if not p.is_werewolf]


# =============================================================================
# WEREWOLF / CURSED WEREWOLF
# =============================================================================

def _werewolf_parse(raw):
    return parse_werewolf_choice(raw, allow_curse=False)


def _cursed_parse(raw):
    return parse_werewolf_choice(raw, allow_curse=True)


def _werewolf_prompt(state, player) -> Dict[str, Any]:
    role = get_role(player.role)
    targets = _non_werewolf_targets(state)
    teammates = _teammate_names(state, player)
    return {
        "description": render_night_prompt(
            "werewolf", role, state.day, teammates=teammates, targets=targets
        ),
        "choices": _choice_list(targets, "attack:"),
        "teammates": teammates,
    }


def _cursed_prompt(state, player) -> Dict[str, Any]:
    role = get_role(player.role)
    targets = _non_werewolf_targets(state)
    curse_available = player.player_id not in state.curse_used
    choices = _choice_list(targets, "attack:")
    if curse_available:
        choices += [
            {"value": f"curse:{p.player_id}", "label": f"Curse {p.name}"} for p in targets
        ]
    return {
        "description": render_night_prompt(
            "cursed_werewolf", role, state.day, curse_available=curse_available
        ),
        "choices": choices,
        "teammates": _teammate_names(state, player),
        "curse_available": curse_available,
    }


def _werewolf_record(state, player, choice) -> str:
    if isinstance(choice, Pass):
        return "You chose not to attack tonight."

    target = _living_target(state, choice.target_id)
    if target.is_werewolf:
        raise InvalidTarget("You cannot target a fellow werewolf")

    if isinstance(choice, Curse):
        if player.player_id in state.curse_used:
            raise InvalidTarget("You have already used your curse")
        state.curse_used.add(player.player_id)
        state.night.curse_queue.append(target.player_id)
        return f"You cursed {target.name}. They will join the pack at dawn."

    return f"You chose to attack {target.name}."


def tally_werewolf_votes(actions) -> Optional[str]:
    """Plurality over attack votes; ties go to the first target to reach the top count."""
    vote_counts: Dict[str, int] = {}
    for action in actions:
        if isinstance(action.choice, Attack):
            target_id = action.choice.target_id
            vote_counts[target_id] = vote_counts.get(target_id, 0) + 1

    target_id = None
    max_votes = 0
    for candidate, count in vote_counts.items():
        if count > max_votes:
            max_votes = count
            target_id = candidate
    return target_id


def _werewolf_resolve(state, actions):
    state.night.werewolf_target = tally_werewolf_votes(actions)


# =============================================================================
# SEER
# =============================================================================

def _seer_parse(raw):
    return parse_target_choice(raw, Inspect)


def _seer_prompt(state, player) -> Dict[str, Any]:
    targets = [p for p in state.get_alive_players() if p.player_id != player.player_id]
    return {
        "description": render_night_prompt("seer", get_role(player.role), state.day),
        "choices": _choice_list(targets),
    }


def _seer_record(state, player, choice) -> str:
    if isinstance(choice, Pass):
        return "You chose not to look at anyone tonight."
    if choice.target_id == player.player_id:
        raise InvalidTarget("You cannot inspect yourself")
    target = _living_target(state, choice.target_id)
    return f"You chose to look into {target.name}. You will learn the result at dawn."


def _seer_resolve(state, actions):
    for action in actions:
        if isinstance(action.choice, Inspect):
            target = state.get_player(action.choice.target_id)
            state.seer_tracker.record(state.day, action.actor_id, target.player_id, target.is_werewolf)


# =============================================================================
# BODYGUARD
# =============================================================================

def _bodyguard_parse(raw):
    return parse_target_choice(raw, Protect)


def _bodyguard_prompt(state, player) -> Dict[str, Any]:
    choices = []
    blocked_name = None
    last = state.last_protected.get(player.player_id)
    for target in state.get_alive_players():
        allowed, _ = can_bodyguard_protect(
            state.rules, player.player_id, target.player_id, last, state.day
        )
        if not allowed:
            if target.player_id != player.player_id:
                blocked_name = target.name
            continue
        label = f"{target.name} (yourself)" if target.player_id == player.player_id else target.name
        choices.append({"value": target.player_id, "label": label})
    return {
        "description": render_night_prompt(
            "bodyguard", get_role(player.role), state.day, blocked_name=blocked_name
        ),
        "choices": choices,
    }


def _bodyguard_record(state, player, choice) -> str:
    if isinstance(choice, Pass):
        return "You chose not to protect anyone tonight."
    target = _living_target(state, choice.target_id)
    allowed, reason = can_bodyguard_protect(
        state.rules, player.player_id, target.player_id,
        state.last_protected.get(player.player_id), state.day,
    )
    if not allowed:
        raise InvalidTarget(reason)
    if target.player_id == player.player_id:
        return "You chose to protect yourself tonight."
    return f"You chose to protect {target.name} tonight."


def _bodyguard_resolve(state, actions):
    for action in actions:
        if isinstance(action.choice, Protect):
            state.night.protected_ids.add(action.choice.target_id)
            state.last_protected[action.actor_id] = (action.choice.target_id, state.day)


# =============================================================================
# WITCH
# =============================================================================

def _witch_prompt(state, player) -> Dict[str, Any]:
    potions = state.potions_for(player.player_id)
    target_id = state.night.werewolf_target
    target_name = state.player_name(target_id) if target_id else None
    heal_available, _ = can_witch_heal(potions, target_id)

    choices = []
    if heal_available:
        choices.append({"value": "heal", "label": f"Save {target_name}"})
    if potions.kill:
        for target in state.get_alive_players():
            allowed, _ = can_witch_poison(state.rules, potions, player.player_id, target.player_id)
            if allowed:
                choices.append({"value": f"kill:{target.player_id}", "label": f"Poison {target.name}"})
    choices.append({"value": "none", "label": "Do nothing"})

    return {
        "description": render_night_prompt(
            "witch", get_role(player.role), state.day,
            target_name=target_name, heal_available=potions.heal, kill_available=potions.kill,
        ),
        "choices": choices,
        "werewolf_target": target_id,
        "heal_available": potions.heal,
        "kill_available": potions.kill,
    }


def _witch_record(state, player, choice) -> str:
    if isinstance(choice, Pass):
        return "You decided not to use any potion."

    potions = state.potions_for(player.player_id)
    werewolf_target = state.night.werewolf_target
    messages = []

    if choice.heal:
        allowed, reason = can_witch_heal(potions, werewolf_target)
        if not allowed:
            raise InvalidTarget(reason)

    poison_target = None
    if choice.poison_target_id:
        poison_target = _living_target(state, choice.poison_target_id)
        allowed, reason = can_witch_poison(
            state.rules, potions, player.player_id, poison_target.player_id
        )
        if not allowed:
            raise InvalidTarget(reason)
        if choice.heal and poison_target.player_id == werewolf_target:
            raise InvalidTarget("You cannot save and poison the same player")

    # Validation passed, consume potions
    if choice.heal:
        potions.heal = False
        messages.append(f"You used your heal potion on {state.player_name(werewolf_target)}.")
    if poison_target is not None:
        potions.kill = False
        messages.append(f"You poisoned {poison_target.name}.")
    return " ".join(messages)


def _witch_resolve(state, actions):
    for action in actions:
        if isinstance(action.choice, WitchBrew):
            if action.choice.heal:
                state.night.healed = True
            if action.choice.poison_target_id:
                state.night.poison_targets.append((action.actor_id, action.choice.poison_target_id))


# =============================================================================
# HUNTER
# =============================================================================

def _hunter_on_death(state, player) -> HunterRetaliation:
    return HunterRetaliation(player.player_id)


# =============================================================================
# ROLE TABLE
# =============================================================================

ROLE_TABLE: Dict[RoleId, RoleBehavior] = {
    RoleId.WEREWOLF: RoleBehavior(
        role_id=RoleId.WEREWOLF,
        name="Werewolf",
        description="Each night, choose a player to kill together with the pack.",
        team=Team.WEREWOLF,
        emoji="🐺",
        night_phase=NightPhase.WEREWOLF,
        parse=_werewolf_parse,
        describe_prompt=_werewolf_prompt,
        record=_werewolf_record,
        resolve=_werewolf_resolve,
    ),
    RoleId.CURSED_WEREWOLF: RoleBehavior(
        role_id=RoleId.CURSED_WEREWOLF,
        name="Cursed Werewolf",
        description="A werewolf who can turn one villager into a werewolf, once per game.",
        team=Team.WEREWOLF,
        emoji="🧟",
        night_phase=NightPhase.WEREWOLF,
        parse=_cursed_parse,
        describe_prompt=_cursed_prompt,
        record=_werewolf_record,
        resolve=_werewolf_resolve,
    ),
    RoleId.SEER: RoleBehavior(
        role_id=RoleId.SEER,
        name="Seer",
        description="Each night, learn whether one other player is a werewolf.",
        team=Team.VILLAGER,
        emoji="👁️",
        night_phase=NightPhase.SEER,
        parse=_seer_parse,
        describe_prompt=_seer_prompt,
        record=_seer_record,
        resolve=_seer_resolve,
    ),
    RoleId.BODYGUARD: RoleBehavior(
        role_id=RoleId.BODYGUARD,
        name="Bodyguard",
        description="Each night, protect one player from the werewolves' attack.",
        team=Team.VILLAGER,
        emoji="🛡️",
        night_phase=NightPhase.BODYGUARD,
        parse=_bodyguard_parse,
        describe_prompt=_bodyguard_prompt,
        record=_bodyguard_record,
        resolve=_bodyguard_resolve,
    ),
    RoleId.WITCH: RoleBehavior(
        role_id=RoleId.WITCH,
        name="Witch",
        description="You hold two potions: one to save a life, one to take it.",
        team=Team.VILLAGER,
        emoji="🧙",
        night_phase=NightPhase.WITCH,
        parse=parse_witch_choice,
        describe_prompt=_witch_prompt,
        record=_witch_record,
        resolve=_witch_resolve,
    ),
    RoleId.HUNTER: RoleBehavior(
        role_id=RoleId.HUNTER,
        name="Hunter",
        description="When you die, you may shoot one other player.",
        team=Team.VILLAGER,
        emoji="🏹",
        on_death=_hunter_on_death,
    ),
    RoleId.VILLAGER: RoleBehavior(
        role_id=RoleId.VILLAGER,
        name="Villager",
        description="You have no special ability. Vote wisely.",
        team=Team.VILLAGER,
        emoji="🧑‍🌾",
    ),
}


def get_role(role_id) -> RoleBehavior:
    """Look up a role by id. Raises KeyError for an unknown role."""
    return ROLE_TABLE[RoleId(role_id)]


def roles_for_phase(phase: NightPhase) -> List[RoleBehavior]:
    return [r for r in ROLE_TABLE.values() if r.night_phase == phase]
