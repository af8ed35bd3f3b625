"""
Session state machine.

One ``GameSession`` owns a single game from lobby to end. Player input and
timer firings are the only things that move it forward, and both go through
the same per-session lock. Every public operation returns an ``ActionResult``.
"""

import functools
import random
from typing import Any, Callable, Dict, List, Optional

from gevent.lock import RLock

from .agents import AgentNamer, StandInAgent, random_personality
from .constants import ABSTAIN, ALLOWED_TRANSITIONS, NO_ACTION, DeathCause, NightPhase, Phase, RoleId, Team
from .error_logger import (
    clear_game_context,
    log_debug,
    log_exception,
    log_info,
    log_warning,
    set_game_context,
)
from .errors import (
    ActionResult,
    AlreadyActed,
    AlreadyJoined,
    GameEnded,
    GameError,
    GameInProgress,
    InvalidState,
    InvalidTarget,
    NotEnoughPlayers,
    NotHost,
    NotYourTurn,
)
from .events import GameListener
from .game_state import Death, GameState, Player
from .ledger import ActionLedger, KeyedGuard
from .night_actions import NightAction
from .night_resolver import NightResolver, death_effects
from .prompts import render_hunter_prompt, render_role_card
from .roles import get_role
from .rules import DEFAULT_RULES, GameRules, build_role_distribution
from .timers import GeventScheduler, TimerSet, TimerToken
from .voting import VoteTally, parse_vote
from .win_conditions import check_win_condition


def session_operation(guarded: bool = False):
    """
    Wrap a public operation.

    Guarded operations take the acting player's id as their first argument
    and hold that actor's guard for the whole call. The guard is taken before
    the session lock. Game errors become failure results; anything else is
    logged and reported as an internal error.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            actor_id = args[0] if (guarded and args) else None
            try:
                if guarded:
                    with self.action_guard.hold(actor_id):
                        with self._lock:
                            self._set_context(actor_id)
                            return func(self, *args, **kwargs)
                with self._lock:
                    self._set_context(actor_id)
                    return func(self, *args, **kwargs)
            except GameError as e:
                log_info(f"Rejected {func.__name__}: [{e.code}] {e.message}")
                return ActionResult.failure(e)
            except Exception as e:
                log_exception(e, f"Unexpected error in {func.__name__}", extra_context={"args": args})
                return ActionResult.internal_error()
        return wrapper
    return decorator


class GameSession:
    """
    Aggregate root for one running game.

    Args:
        host_id: Player id of the host, who joins automatically
        host_name: Display name of the host
        rules: Rule set, defaults to ``DEFAULT_RULES``
        listener: Receives outbound events
        scheduler: Anything with ``call_later(delay, func, *args)``
        rng: Random source for role shuffling and stand-in agents
    """

    def __init__(
        self,
        host_id: str,
        host_name: str = None,
        rules: GameRules = None,
        listener: GameListener = None,
        scheduler=None,
        rng: random.Random = None,
        session_id: str = None,
    ):
        self.rules = rules or DEFAULT_RULES
        self.state = GameState(host_id, self.rules, session_id)
        self.listener = listener or GameListener()
        self.timers = TimerSet(scheduler or GeventScheduler())
        self.rng = rng or random.Random()
        self.ledger = ActionLedger()
        self.resolver = NightResolver(self.state, self.ledger)
        self.tally = VoteTally(self.state)
        self.action_guard = KeyedGuard()
        self.agents: Dict[str, StandInAgent] = {}
        self._lock = RLock()
        self._namer = AgentNamer(self.rng)
        self._ai_counter = 0

        # Current timer stage, see TimerToken
        self._stage: Optional[str] = None

        # Hunter retaliation bookkeeping
        self._retaliation_queue: List[str] = []
        self._after_retaliations: Optional[Callable] = None
        self._hunter_pending: Optional[str] = None
        self._hunter_shots: Dict[str, Optional[str]] = {}

        self.state.players[host_id] = Player(host_id, host_name or host_id)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def session_id(self) -> str:
        return self.state.session_id

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def day(self) -> int:
        return self.state.day

    @property
    def stage(self) -> Optional[str]:
        return self._stage

    @property
    def is_over(self) -> bool:
        return self.state.phase == Phase.ENDED

    # =========================================================================
    # LOBBY OPERATIONS
    # =========================================================================

    @session_operation()
    def add_player(self, player_id: str, display_name: str = None) -> ActionResult:
        """Join the lobby."""
        self._require_lobby()
        if player_id in self.state.players:
            raise AlreadyJoined("You have already joined this game.")

        player = Player(player_id, display_name or player_id)
        self.state.players[player_id] = player
        self.state.add_event("join", f"{player.name} joined the game", player=player_id)
        log_info(f"{player.name} joined ({len(self.state.players)} players)")
        return ActionResult.ok(f"{player.name} joined the game.", player_count=len(self.state.players))

    @session_operation()
    def remove_player(self, player_id: str) -> ActionResult:
        """Leave the lobby. The host cannot leave, only cancel."""
        self._require_lobby()
        player = self.state.get_player(player_id)
        if player is None:
            raise InvalidTarget("That player is not in the lobby.")
        if player_id == self.state.host_id:
            raise InvalidState("The host cannot leave the lobby. Cancel the game instead.")

        del self.state.players[player_id]
        self.agents.pop(player_id, None)
        self.state.add_event("leave", f"{player.name} left the game", player=player_id)
        return ActionResult.ok(f"{player.name} left the game.", player_count=len(self.state.players))

    @session_operation()
    def start_game(self, ai_fill_count: int = 0, requester_id: str = None) -> ActionResult:
        """
        Assign roles and begin night 1.

        ``ai_fill_count`` is the roster size to fill up to with stand-in
        agents. Added agents are removed again if the game still can't start.
        """
        self._require_lobby()
        self._require_host(requester_id)
        if isinstance(ai_fill_count, bool) or not isinstance(ai_fill_count, int) or ai_fill_count < 0:
            raise GameError("The AI fill count must be a whole number of at least 0.")

        added = self._fill_with_agents(ai_fill_count)
        if len(self.state.players) < self.rules.min_players:
            for player_id in added:
                del self.state.players[player_id]
                self.agents.pop(player_id, None)
            raise NotEnoughPlayers(
                f"At least {self.rules.min_players} players are needed to start.",
                player_count=len(self.state.players),
            )

        self._assign_roles()
        self.state.day = 1
        log_info(f"Game started with {len(self.state.players)} players ({len(added)} AI)")
        self._begin_night()
        return ActionResult.ok(
            "The game has started.",
            player_count=len(self.state.players),
            ai_added=len(added),
        )

    @session_operation()
    def cancel_game(self, requester_id: str = None) -> ActionResult:
        """End the game with no winner and stop every timer."""
        if self.state.phase == Phase.ENDED:
            raise GameEnded("The game is already over.")
        self._require_host(requester_id)
        log_info("Game cancelled")
        self._end_game(None)
        return ActionResult.ok("The game was cancelled.")

    # =========================================================================
    # IN-GAME OPERATIONS
    # =========================================================================

    @session_operation(guarded=True)
    def submit_night_action(self, player_id: str, raw_choice: Any) -> ActionResult:
        self._require_phase(Phase.NIGHT)
        player = self._require_living_player(player_id)
        phase = self.state.night_phase
        role = get_role(player.role)
        if role.night_phase is None or role.night_phase != phase:
            raise NotYourTurn(f"It is not the {role.name}'s turn.")

        self.ledger.ensure_not_acted(player_id)
        choice = role.parse(raw_choice)
        message = role.record(self.state, player, choice)
        self.ledger.record(NightAction(player_id, choice, phase, self.state.day))
        self.state.add_event(
            "night_action", message, visibility=[player_id], player=player_id,
            metadata={"phase": phase.value, "choice": choice.describe()},
        )
        log_info(f"Night action recorded: {choice.describe()}", player_name=player.name)

        if self.resolver.is_phase_complete(phase):
            self._close_night_phase(phase)
        return ActionResult.ok(message, choice=choice.describe())

    @session_operation(guarded=True)
    def submit_vote(self, voter_id: str, raw_choice: Any) -> ActionResult:
        self._require_phase(Phase.VOTING)
        if self._stage != "voting":
            raise InvalidState("Voting is closed.")

        vote = self.tally.submit(voter_id, raw_choice)
        voter_name = self.state.player_name(voter_id)
        if vote.is_abstain:
            message = f"{voter_name} abstained."
        else:
            message = f"{voter_name} voted for {self.state.player_name(vote.target_id)}."
        self.state.add_event("vote", message, player=voter_id, metadata=vote.to_dict())
        log_info(message)

        if self.tally.is_complete():
            self._close_voting()
        return ActionResult.ok(message, target=vote.target_id or ABSTAIN)

    @session_operation(guarded=True)
    def submit_hunter_shot(self, hunter_id: str, raw_choice: Any) -> ActionResult:
        """The pending hunter names a target, or "none" to hold fire."""
        if self.state.phase == Phase.ENDED:
            raise GameEnded("The game is already over.")
        if hunter_id in self._hunter_shots:
            shot = self._hunter_shots[hunter_id]
            raise AlreadyActed(
                f"You already chose: {self.state.player_name(shot) if shot else NO_ACTION}.",
                existing=shot or NO_ACTION,
            )
        if self._hunter_pending != hunter_id:
            raise InvalidState("You have no shot to take right now.")

        target_id = parse_vote(raw_choice)
        if target_id is not None:
            target = self.state.get_player(target_id)
            if target is None or not target.alive or target_id == hunter_id:
                raise InvalidTarget("You can only shoot another living player.")

        self._resolve_hunter_shot(hunter_id, target_id)
        if target_id is None:
            return ActionResult.ok("You lowered your bow.", target=NO_ACTION)
        return ActionResult.ok(f"You shot {self.state.player_name(target_id)}.", target=target_id)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def check_win_condition(self) -> Optional[Team]:
        """Winner implied by the current roster, or None. Roles must be assigned."""
        if self.state.phase == Phase.LOBBY:
            return None
        return check_win_condition(self.state)

    def snapshot(self, viewer_id: str = None) -> Dict[str, Any]:
        """JSON-safe view of the session for one viewer."""
        with self._lock:
            data = self.state.to_dict(viewer_id)
            data["stage"] = self._stage
            data["hunter_pending"] = self._hunter_pending
            return data

    def prompt_context(self, player: Player) -> Dict[str, Any]:
        """Prompt for a player whose role acts in the current night sub-phase."""
        role = get_role(player.role)
        described = dict(role.describe_prompt(self.state, player))
        return {
            "night": self.state.day,
            "phase": self.state.night_phase.value if self.state.night_phase else None,
            "description": described.pop("description"),
            "choices": described.pop("choices"),
            "extras": described,
        }

    # =========================================================================
    # GUARDS
    # =========================================================================

    def _set_context(self, player_id: str = None):
        clear_game_context()
        player = self.state.get_player(player_id) if player_id else None
        set_game_context(
            session_id=self.state.session_id,
            phase=self.state.phase.value,
            day=self.state.day,
            stage=self._stage,
            player_name=player.name if player else player_id,
        )

    def _require_lobby(self):
        if self.state.phase == Phase.ENDED:
            raise GameEnded("The game is already over.")
        if self.state.phase != Phase.LOBBY:
            raise GameInProgress("The game has already started.")

    def _require_host(self, requester_id: Optional[str]):
        if requester_id is not None and requester_id != self.state.host_id:
            raise NotHost("Only the host can do that.")

    def _require_phase(self, phase: Phase):
        if self.state.phase == Phase.ENDED:
            raise GameEnded("The game is already over.")
        if self.state.phase != phase:
            raise InvalidState(f"That can only be done during {phase.value}, not {self.state.phase.value}.")

    def _require_living_player(self, player_id: str) -> Player:
        player = self.state.get_player(player_id)
        if player is None:
            raise InvalidState("You are not part of this game.")
        if not player.alive:
            raise InvalidState("Dead players cannot act.")
        return player

    # =========================================================================
    # PHASES AND TIMERS
    # =========================================================================

    def _set_phase(self, phase: Phase):
        current = self.state.phase
        if phase not in ALLOWED_TRANSITIONS[current]:
            raise RuntimeError(f"Illegal phase transition {current.value} -> {phase.value}")
        self.state.phase = phase
        self.state.phase_history.append(phase)
        self.state.add_event("phase_change", f"{phase.value} (day {self.state.day})")
        set_game_context(phase=phase.value, day=self.state.day)
        log_info(f"Phase {current.value} -> {phase.value}")
        self._emit("on_phase_changed", phase, self.state.day)

    def _token(self) -> TimerToken:
        return TimerToken(self.state.phase.value, self.state.day, self._stage)

    def _schedule(self, delay: float, callback: Callable, *args):
        """Schedule a callback bound to the current token."""
        return self.timers.schedule(delay, self._fire, self._token(), callback, args)

    def _fire(self, token: TimerToken, callback: Callable, args):
        with self._lock:
            self._set_context()
            if token != self._token():
                log_debug(f"Ignoring stale timer {token} (now {self._token()})")
                return
            try:
                callback(*args)
            except Exception as e:
                log_exception(e, f"Timer callback {callback.__name__} failed")

    def _emit(self, event: str, *args):
        handler = getattr(self.listener, event, None)
        if handler is None:
            return
        try:
            handler(*args)
        except Exception as e:
            log_exception(e, f"Listener failed while handling {event}")

    # =========================================================================
    # SETUP
    # =========================================================================

    def _fill_with_agents(self, target_count: int) -> List[str]:
        added = []
        taken = {p.name for p in self.state.players.values()}
        while len(self.state.players) < target_count:
            self._ai_counter += 1
            player_id = f"ai-{self._ai_counter}"
            if player_id in self.state.players:
                continue
            name = self._namer.next_name(taken)
            taken.add(name)
            self.state.players[player_id] = Player(player_id, name, is_ai=True)
            self.agents[player_id] = StandInAgent(player_id, random_personality(self.rng), self.rules, self.rng)
            added.append(player_id)
        return added

    def _assign_roles(self):
        distribution = build_role_distribution(self.rules, len(self.state.players))
        pool: List[RoleId] = []
        for role_id, count in distribution.items():
            pool.extend([role_id] * count)
        pool = pool[:len(self.state.players)]
        self.rng.shuffle(pool)

        for player, role_id in zip(self.state.players.values(), pool):
            player.role = role_id
            if role_id == RoleId.WITCH:
                self.state.potions_for(player.player_id)

        self.state.add_event("roles_assigned", "Roles have been assigned", metadata={
            "distribution": {role.value: count for role, count in distribution.items()},
        })

        for player in self.state.players.values():
            role = get_role(player.role)
            teammates = []
            if player.is_werewolf:
                teammates = [
                    p.name for p in self.state.players.values()
                    if p.is_werewolf and p.player_id != player.player_id
                ]
            self.state.add_event(
                "role", f"You are the {role.name}", visibility=[player.player_id], player=player.player_id,
            )
            self._emit("on_role_assigned", player, role, teammates, render_role_card(role, teammates))

    # =========================================================================
    # NIGHT
    # =========================================================================

    def _begin_night(self):
        self._set_phase(Phase.NIGHT)
        self.resolver.begin_night()
        self.state.night_phase = None
        self._advance_night_phase(None)

    def _advance_night_phase(self, current: Optional[NightPhase]):
        phase = self.resolver.next_phase(current)
        actors = []
        while phase is not None:
            actors = self.resolver.eligible_actors(phase)
            if actors:
                break
            log_debug(f"Skipping {phase.value}: no eligible actors")
            self._emit("on_night_phase_skipped", phase)
            phase = self.resolver.next_phase(phase)

        if phase is None:
            self._end_night()
            return

        self.state.night_phase = phase
        self._stage = phase.value
        set_game_context(stage=self._stage)
        self._schedule(self.rules.night_action_timeout, self._night_timeout, phase)
        for actor in actors:
            agent = self.agents.get(actor.player_id)
            if agent is not None:
                self._schedule(agent.action_delay(), self._agent_night_action, actor.player_id)

        for actor in actors:
            if self.state.phase != Phase.NIGHT or self.state.night_phase != phase:
                break
            self._emit("on_night_prompt_needed", actor, get_role(actor.role), self.prompt_context(actor))

    def _night_timeout(self, phase: NightPhase):
        missing = self.resolver.fill_missing(phase)
        log_info(f"{phase.value} timed out", extra_context={
            "missing": ", ".join(p.name for p in missing) or "-",
        })
        self._close_night_phase(phase)

    def _close_night_phase(self, phase: NightPhase):
        self.resolver.close_phase(phase)
        log_debug(f"{phase.value} closed")
        self._advance_night_phase(phase)

    def _end_night(self):
        self.state.night_phase = None
        self._stage = "dawn"

        deaths = self.resolver.compute_deaths()
        effects = self._apply_deaths(deaths)
        converted = self.resolver.apply_conversions()
        self.resolver.finish_night()
        self.state.night_deaths = deaths
        if converted:
            self._announce_conversions(converted)

        winner = check_win_condition(self.state)
        if winner is not None:
            self._emit("on_day_report", self._death_report(deaths))
            self._end_game(winner)
            return

        self._set_phase(Phase.DAY)
        self._emit("on_day_report", self._death_report(deaths))
        self._deliver_seer_results()
        self._run_retaliations(effects, then=self._start_discussion)

    def _apply_deaths(self, deaths: List[Death]) -> List[Any]:
        effects = []
        for death in deaths:
            effect = self._kill(death.player_id, death.cause)
            if effect is not None:
                effects.append(effect)
        return effects

    def _kill(self, player_id: str, cause: DeathCause):
        """Mark a player dead and return their role's death effect, if any."""
        player = self.state.get_player(player_id)
        if player is None or not player.mark_dead():
            return None
        self.state.add_event("death", f"{player.name} died", player=player_id, metadata={"cause": cause.value})
        log_info(f"{player.name} died ({cause.value})")
        return death_effects(self.state, player)

    def _death_report(self, deaths: List[Death]) -> List[Dict[str, Any]]:
        report = [
            {"player_id": d.player_id, "name": self.state.player_name(d.player_id), "cause": d.cause.value}
            for d in deaths
        ]
        if report:
            message = "Last night: " + ", ".join(r["name"] for r in report) + " died."
        else:
            message = "No one died last night."
        self.state.add_event("day_report", message, metadata={"deaths": report})
        return report

    def _announce_conversions(self, converted: List[Player]):
        werewolf_role = get_role(RoleId.WEREWOLF)
        converted_ids = {p.player_id for p in converted}
        pack = [p for p in self.state.get_alive_players() if p.is_werewolf]

        def teammates_of(player):
            return [p.name for p in pack if p.player_id != player.player_id]

        self.state.add_event(
            "conversion", ", ".join(p.name for p in converted) + " joined the pack",
            visibility=[p.player_id for p in pack],
        )
        for player in converted:
            log_info(f"{player.name} was converted to a werewolf")
            teammates = teammates_of(player)
            self._emit("on_role_assigned", player, werewolf_role, teammates,
                       render_role_card(werewolf_role, teammates))
        for player in pack:
            if player.player_id not in converted_ids:
                self._emit("on_werewolf_team_changed", player, teammates_of(player))

    def _deliver_seer_results(self):
        for vision in self.state.seer_tracker.pending(self.state.day):
            seer = self.state.get_player(vision.seer_id)
            target = self.state.get_player(vision.target_id)
            self.state.seer_tracker.mark_delivered(vision)
            verdict = "a werewolf" if vision.is_werewolf else "not a werewolf"
            self.state.add_event(
                "seer_result", f"{target.name} is {verdict}",
                visibility=[seer.player_id], player=seer.player_id,
            )
            self._emit("on_seer_result", seer, target, vision.is_werewolf)

    def _agent_night_action(self, player_id: str):
        player = self.state.get_player(player_id)
        if player is None or not player.alive or self.ledger.has_acted(player_id):
            return
        choice = self.agents[player_id].choose_night_action(self.state, player, self.prompt_context(player))
        result = self.submit_night_action(player_id, choice)
        if not result.success:
            log_warning(f"Stand-in night action rejected: {result.message}", player_name=player.name)

    # =========================================================================
    # HUNTER RETALIATION
    # =========================================================================

    def _run_retaliations(self, effects: List[Any], then: Callable):
        self._retaliation_queue.extend(effect.hunter_id for effect in effects)
        self._after_retaliations = then
        self._next_retaliation()

    def _next_retaliation(self):
        if self.state.phase == Phase.ENDED:
            return
        if not self._retaliation_queue:
            then, self._after_retaliations = self._after_retaliations, None
            if then is not None:
                then()
            return

        hunter_id = self._retaliation_queue.pop(0)
        hunter = self.state.get_player(hunter_id)
        self._hunter_pending = hunter_id
        self._stage = f"retaliation:{hunter_id}"
        set_game_context(stage=self._stage)
        candidates = [p for p in self.state.get_alive_players() if p.player_id != hunter_id]

        self._schedule(self.rules.hunter_timeout, self._hunter_timeout, hunter_id)
        agent = self.agents.get(hunter_id)
        if agent is not None:
            self._schedule(agent.action_delay(), self._agent_retaliation, hunter_id)

        self.state.add_event("hunter_prompt", render_hunter_prompt(hunter.name),
                             visibility=[hunter_id], player=hunter_id)
        self._emit("on_hunter_retaliation_needed", hunter, candidates)

    def _hunter_timeout(self, hunter_id: str):
        log_info(f"{self.state.player_name(hunter_id)} did not shoot in time")
        self._resolve_hunter_shot(hunter_id, None)

    def _resolve_hunter_shot(self, hunter_id: str, target_id: Optional[str]):
        self._hunter_pending = None
        self._hunter_shots[hunter_id] = target_id
        self._stage = f"retaliation:{hunter_id}:done"
        hunter = self.state.get_player(hunter_id)
        target = self.state.get_player(target_id) if target_id else None

        if target is None:
            self.state.add_event("hunter_shot", f"{hunter.name} held fire", player=hunter_id)
        else:
            self.state.add_event("hunter_shot", f"{hunter.name} shot {target.name}", player=hunter_id,
                                 metadata={"target": target_id})
        self._emit("on_hunter_shot", hunter, target)

        if target is not None:
            effect = self._kill(target_id, DeathCause.HUNTER)
            winner = check_win_condition(self.state)
            if winner is not None:
                self._end_game(winner)
                return
            if effect is not None:
                # Chained hunter shoots next
                self._retaliation_queue.insert(0, effect.hunter_id)
        self._next_retaliation()

    def _agent_retaliation(self, hunter_id: str):
        candidates = [p for p in self.state.get_alive_players() if p.player_id != hunter_id]
        choice = self.agents[hunter_id].choose_retaliation(candidates)
        result = self.submit_hunter_shot(hunter_id, choice)
        if not result.success:
            log_warning(f"Stand-in hunter shot rejected: {result.message}")

    # =========================================================================
    # DAY AND VOTING
    # =========================================================================

    def _start_discussion(self):
        self._stage = "discussion"
        set_game_context(stage=self._stage)
        self.state.add_event("discussion", "Discussion has started",
                             metadata={"seconds": self.rules.discussion_time})
        self._schedule(self.rules.discussion_time, self._open_voting)

    def _open_voting(self):
        self._set_phase(Phase.VOTING)
        self._stage = "voting"
        set_game_context(stage=self._stage)
        self.tally.open()
        candidates = self.state.get_alive_players()

        self._schedule(self.rules.voting_time, self._close_voting)
        for player in candidates:
            agent = self.agents.get(player.player_id)
            if agent is not None:
                self._schedule(agent.vote_delay(), self._agent_vote, player.player_id)

        self._emit("on_voting_opened", candidates)

    def _agent_vote(self, player_id: str):
        player = self.state.get_player(player_id)
        if player is None or not player.alive or self.tally.vote_of(player_id) is not None:
            return
        choice = self.agents[player_id].choose_vote(self.state, player)
        result = self.submit_vote(player_id, choice)
        if not result.success:
            log_warning(f"Stand-in vote rejected: {result.message}", player_name=player.name)

    def _close_voting(self):
        self._stage = "closed"
        result = self.tally.result()
        executed = self.state.get_player(result.executed_id) if result.executed_id else None

        if executed is not None:
            message = f"{executed.name} was executed with {result.vote_count} votes."
        elif result.tie:
            message = f"The vote was tied at {result.vote_count}. No one was executed."
        else:
            message = "No votes were cast. No one was executed."
        self.state.add_event("vote_result", message, metadata=self.tally.summary())
        log_info(message)
        self._emit("on_voting_result", executed, result.vote_count, result.tie)

        effects = []
        if executed is not None:
            effect = self._kill(executed.player_id, DeathCause.VOTE)
            winner = check_win_condition(self.state)
            if winner is not None:
                self._end_game(winner)
                return
            if effect is not None:
                effects.append(effect)
        self._run_retaliations(effects, then=self._next_day)

    def _next_day(self):
        self.state.day += 1
        self._begin_night()

    # =========================================================================
    # END
    # =========================================================================

    def _end_game(self, winner: Optional[Team]):
        cancelled = self.timers.cancel_all()
        self._retaliation_queue = []
        self._after_retaliations = None
        self._hunter_pending = None
        self._stage = None
        self.state.night_phase = None
        self.state.winner = winner
        self._set_phase(Phase.ENDED)

        roster = [p.to_dict(reveal_role=True) for p in self.state.players.values()]
        if winner is None:
            self.state.add_event("game_over", "The game was cancelled")
        else:
            self.state.add_event("game_over", f"{winner.value} team wins!")
        log_info(f"Game over: {winner.value if winner else 'cancelled'} ({cancelled} timers cancelled)")
        self._emit("on_game_ended", winner, roster)
