"""
Night resolution.

Walks the fixed sub-phase order, works out who is eligible to act in each
sub-phase, closes a sub-phase by handing its actions to the role table, and
turns the night's transient state into deaths and conversions at dawn.
"""

from typing import List, Optional

from .constants import NIGHT_PHASE_ORDER, DeathCause, NightPhase, RoleId
from .game_state import Death, GameState, NightState, Player
from .ledger import ActionLedger
from .night_actions import NightAction, Pass
from .roles import get_role, roles_for_phase


class NightResolver:
    """Applies the role table to one session's night."""

    def __init__(self, game_state: GameState, ledger: ActionLedger):
        self.game_state = game_state
        self.ledger = ledger

    def begin_night(self):
        self.game_state.night = NightState()
        self.game_state.night_deaths = []
        self.ledger.begin_night(self.game_state.day)

    def next_phase(self, current: Optional[NightPhase]) -> Optional[NightPhase]:
        """Sub-phase after ``current``; the first one when ``current`` is None."""
        if current is None:
            return NIGHT_PHASE_ORDER[0]
        index = NIGHT_PHASE_ORDER.index(current)
        if index + 1 < len(NIGHT_PHASE_ORDER):
            return NIGHT_PHASE_ORDER[index + 1]
        return None

    def eligible_actors(self, phase: NightPhase) -> List[Player]:
        """Living players whose role acts in this sub-phase, in seating order."""
        role_ids = {role.role_id for role in roles_for_phase(phase)}
        return self.game_state.get_alive_players_with_roles(role_ids)

    def pending_actors(self, phase: NightPhase) -> List[Player]:
        return [p for p in self.eligible_actors(phase) if not self.ledger.has_acted(p.player_id)]

    def is_phase_complete(self, phase: NightPhase) -> bool:
        return not self.pending_actors(phase)

    def fill_missing(self, phase: NightPhase) -> List[Player]:
        """Record a timed-out Pass for every eligible actor who did not submit."""
        missing = self.pending_actors(phase)
        for player in missing:
            self.ledger.record(NightAction(player.player_id, Pass(timed_out=True), phase, self.game_state.day))
        return missing

    def close_phase(self, phase: NightPhase):
        """Run each distinct resolve function of the sub-phase once over its actions."""
        actions = self.ledger.actions_for(phase)
        seen = set()
        for role in roles_for_phase(phase):
            if role.resolve is None or role.resolve in seen:
                continue
            seen.add(role.resolve)
            role.resolve(self.game_state, actions)

    def compute_deaths(self) -> List[Death]:
        """
        Deaths caused by tonight's actions.

        The werewolf target dies unless shielded or healed; poison always kills.
        Each player appears at most once.
        """
        night = self.game_state.night
        day = self.game_state.day
        deaths: List[Death] = []
        dying = set()

        target_id = night.werewolf_target
        if target_id and target_id not in night.protected_ids and not night.healed:
            target = self.game_state.get_player(target_id)
            if target is not None and target.alive:
                deaths.append(Death(target_id, DeathCause.WEREWOLF, day))
                dying.add(target_id)

        for _witch_id, poison_id in night.poison_targets:
            target = self.game_state.get_player(poison_id)
            if target is not None and target.alive and poison_id not in dying:
                deaths.append(Death(poison_id, DeathCause.WITCH, day))
                dying.add(poison_id)

        return deaths

    def apply_conversions(self) -> List[Player]:
        """Turn surviving cursed players into werewolves."""
        converted = []
        for target_id in self.game_state.night.curse_queue:
            target = self.game_state.get_player(target_id)
            if target is None or not target.alive or target.is_werewolf:
                continue
            target.role = RoleId.WEREWOLF
            converted.append(target)
        self.game_state.night.curse_queue = []
        return converted

    def finish_night(self) -> List[NightAction]:
        return self.ledger.archive()


def death_effects(game_state: GameState, player: Player):
    role = get_role(player.role)
    if role.on_death is None:
        return None
    return role.on_death(game_state, player)
