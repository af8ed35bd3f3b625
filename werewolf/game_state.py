"""Session data: players, per-night transient state and the audit log."""

import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from .constants import DeathCause, NightPhase, Phase, RoleId, Team
from .roles import get_role
from .rules import DEFAULT_RULES, GameRules
from .seer_tracker import SeerTracker


class Player:
    """Represents a player in the game."""

    def __init__(self, player_id: str, name: str, is_ai: bool = False):
        self.player_id = player_id
        self.name = name
        self.is_ai = is_ai
        self.role: Optional[RoleId] = None
        self._alive = True
        # Per-round voting state, reset when voting opens
        self.has_voted = False
        self.vote_count = 0

    @property
    def alive(self) -> bool:
        return self._alive

    def mark_dead(self) -> bool:
        """Kill the player. Returns False if already dead. There is no way back."""
        if not self._alive:
            return False
        self._alive = False
        return True

    @property
    def team(self) -> Optional[Team]:
        if self.role is None:
            return None
        return get_role(self.role).team

    @property
    def is_werewolf(self) -> bool:
        return self.team == Team.WEREWOLF

    def reset_round(self):
        self.has_voted = False
        self.vote_count = 0

    def to_dict(self, reveal_role: bool = False) -> Dict[str, Any]:
        return {
            "id": self.player_id,
            "name": self.name,
            "is_ai": self.is_ai,
            "alive": self.alive,
            "role": self.role.value if (reveal_role and self.role) else None,
        }

    def __repr__(self):
        status = "alive" if self.alive else "dead"
        return f"Player(id={self.player_id}, name={self.name}, role={self.role}, {status})"


@dataclass
class WitchPotions:
    heal: bool = True
    kill: bool = True


@dataclass(frozen=True)
class Death:
    player_id: str
    cause: DeathCause
    day: int


@dataclass
class NightState:
    """Everything that only lives for the duration of one night."""

    werewolf_target: Optional[str] = None
    protected_ids: Set[str] = field(default_factory=set)
    healed: bool = False
    poison_targets: List[Tuple[str, str]] = field(default_factory=list)  # (witch_id, target_id)
    curse_queue: List[str] = field(default_factory=list)


class GameState:
    """
    Aggregate root data for one game session.

    Holds the roster, phase, day counter, night transient state, potion and
    cooldown bookkeeping, and a unified event log. The state machine that
    mutates it lives in ``session.GameSession``.
    """

    def __init__(self, host_id: str, rules: GameRules = None, session_id: str = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.host_id = host_id
        self.rules = rules or DEFAULT_RULES
        self.players: "OrderedDict[str, Player]" = OrderedDict()
        self.phase = Phase.LOBBY
        self.phase_history: List[Phase] = [Phase.LOBBY]
        self.day = 0
        self.night_phase: Optional[NightPhase] = None
        self.night = NightState()
        self.night_deaths: List[Death] = []

        # Cross-night role state
        self.witch_potions: Dict[str, WitchPotions] = {}
        self.curse_used: Set[str] = set()
        self.last_protected: Dict[str, Tuple[str, int]] = {}  # bodyguard_id -> (target_id, night)
        self.seer_tracker = SeerTracker()

        self.winner: Optional[Team] = None
        self.events: List[Dict[str, Any]] = []
        self._event_counter = 0

    # -- roster queries --------------------------------------------------

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.players.get(player_id)

    def get_alive_players(self) -> List[Player]:
        return [p for p in self.players.values() if p.alive]

    def get_alive_players_with_roles(self, roles) -> List[Player]:
        return [p for p in self.get_alive_players() if p.role in roles]

    def count_alive(self, team: Team) -> int:
        return len([p for p in self.get_alive_players() if p.team == team])

    @property
    def werewolf_team(self) -> List[str]:
        """Ids of living werewolf-aligned players."""
        return [p.player_id for p in self.get_alive_players() if p.is_werewolf]

    def potions_for(self, witch_id: str) -> WitchPotions:
        potions = self.witch_potions.get(witch_id)
        if potions is None:
            potions = self.witch_potions[witch_id] = WitchPotions()
        return potions

    def player_name(self, player_id: Optional[str]) -> str:
        player = self.players.get(player_id) if player_id else None
        return player.name if player else str(player_id)

    # -- event log -------------------------------------------------------

    def add_event(self, event_type: str, message: str, visibility: Union[str, List[str]] = "all",
                  player: str = None, metadata: dict = None) -> dict:
        """Add an event to the unified event log."""
        self._event_counter += 1
        event = {
            "id": self._event_counter,
            "type": event_type,
            "phase": self.phase.value,
            "day": self.day,
            "message": message,
            "player": player,
            "visibility": visibility,
            "metadata": metadata,
        }
        self.events.append(event)
        return event

    def visible_events(self, viewer_id: Optional[str]) -> List[dict]:
        return [
            e for e in self.events
            if e["visibility"] == "all" or (viewer_id is not None and viewer_id in e["visibility"])
        ]

    def to_dict(self, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """Snapshot for the binding. Roles are hidden unless the viewer may know them."""
        ended = self.phase == Phase.ENDED
        viewer = self.players.get(viewer_id) if viewer_id else None
        sees_wolves = viewer is not None and viewer.is_werewolf

        roster = []
        for p in self.players.values():
            reveal = ended or p.player_id == viewer_id or (sees_wolves and p.is_werewolf)
            roster.append(p.to_dict(reveal_role=reveal))

        return {
            "session_id": self.session_id,
            "host_id": self.host_id,
            "phase": self.phase.value,
            "day": self.day,
            "night_phase": self.night_phase.value if self.night_phase else None,
            "players": roster,
            "winner": self.winner.value if self.winner else None,
            "events": self.visible_events(viewer_id),
        }
