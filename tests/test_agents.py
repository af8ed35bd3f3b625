import random

from werewolf.agents import AI_NAMES, AgentNamer, PERSONALITY_TRAITS, Personality, StandInAgent
from werewolf.constants import RoleId
from werewolf.game_state import GameState, Player
from werewolf.rules import GameRules


def build_state(*roles):
    state = GameState("p1")
    for i, role in enumerate(roles, start=1):
        player = Player(f"p{i}", f"P{i}", is_ai=True)
        player.role = role
        state.players[player.player_id] = player
    return state


def make_agent(player_id="p1", personality=PERSONALITY_TRAITS[0], seed=3, **rules):
    return StandInAgent(player_id, personality, GameRules(**rules), random.Random(seed))


def test_names_never_repeat_even_past_the_list():
    namer = AgentNamer(random.Random(1))
    names = [namer.next_name() for _ in range(len(AI_NAMES) + 5)]
    assert len(set(names)) == len(names)
    assert set(names[:len(AI_NAMES)]) == set(AI_NAMES)
    assert all("_" in name for name in names[len(AI_NAMES):])


def test_names_skip_ones_already_taken():
    namer = AgentNamer(random.Random(1))
    taken = set(AI_NAMES[:-1])
    assert namer.next_name(taken) == AI_NAMES[-1]


def test_werewolf_attacks_offered_target():
    state = build_state(RoleId.WEREWOLF, RoleId.VILLAGER, RoleId.VILLAGER)
    context = {"choices": [{"value": "attack:p2", "label": "P2"}, {"value": "attack:p3", "label": "P3"}],
               "extras": {}}
    choice = make_agent().choose_night_action(state, state.get_player("p1"), context)
    assert choice in ("attack:p2", "attack:p3")


def test_cursed_werewolf_curses_when_lucky():
    state = build_state(RoleId.CURSED_WEREWOLF, RoleId.VILLAGER)
    context = {"choices": [{"value": "attack:p2", "label": "P2"}, {"value": "curse:p2", "label": "Curse P2"}],
               "extras": {"curse_available": True}}
    agent = make_agent(ai_curse_chance=1.0)
    assert agent.choose_night_action(state, state.get_player("p1"), context) == "curse:p2"

    context["extras"]["curse_available"] = False
    assert agent.choose_night_action(state, state.get_player("p1"), context) == "attack:p2"


def test_witch_heals_or_passes():
    state = build_state(RoleId.WITCH, RoleId.VILLAGER)
    witch = state.get_player("p1")
    context = {"choices": [{"value": "heal", "label": "Save"}, {"value": "kill:p2", "label": "Poison"},
                           {"value": "none", "label": "Nothing"}], "extras": {}}

    assert make_agent(ai_witch_heal_chance=1.0).choose_night_action(state, witch, context) == "heal"
    poisoner = make_agent(ai_witch_heal_chance=0.0, ai_witch_poison_chance=1.0)
    assert poisoner.choose_night_action(state, witch, context) == "kill:p2"
    idle = make_agent(ai_witch_heal_chance=0.0, ai_witch_poison_chance=0.0)
    assert idle.choose_night_action(state, witch, context) == "none"


def test_seer_without_choices_passes():
    state = build_state(RoleId.SEER)
    assert make_agent().choose_night_action(state, state.get_player("p1"), {"choices": []}) == "none"


def test_hunter_retaliation():
    state = build_state(RoleId.HUNTER, RoleId.WEREWOLF, RoleId.VILLAGER)
    candidates = state.get_alive_players()[1:]
    assert make_agent(ai_hunter_shoot_chance=1.0).choose_retaliation(candidates) in ("p2", "p3")
    assert make_agent(ai_hunter_shoot_chance=0.0).choose_retaliation(candidates) == "none"
    assert make_agent().choose_retaliation([]) == "none"


def test_werewolf_votes_against_villagers():
    state = build_state(RoleId.WEREWOLF, RoleId.WEREWOLF, RoleId.VILLAGER)
    never_skip = Personality("steady", 0.0, "normal")
    for seed in range(20):
        agent = make_agent(personality=never_skip, seed=seed)
        assert agent.choose_vote(state, state.get_player("p1")) == "p3"


def test_delays_follow_rules():
    agent = make_agent(personality=PERSONALITY_TRAITS[1], ai_action_delay=(0.0, 0.0))
    assert agent.action_delay() == 0.0
    low, high = GameRules().ai_vote_delays["quick"]
    assert low <= agent.vote_delay() <= high
