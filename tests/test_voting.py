import pytest

from werewolf.constants import RoleId, Team
from werewolf.errors import AlreadyVoted, InvalidTarget
from werewolf.game_state import GameState, Player
from werewolf.voting import VoteTally
from werewolf.win_conditions import check_win_condition


def build_state(*roles):
    state = GameState("p1")
    for i, role in enumerate(roles, start=1):
        player = Player(f"p{i}", f"P{i}")
        player.role = role
        state.players[player.player_id] = player
    return state


def open_tally(count):
    state = build_state(*([RoleId.VILLAGER] * count))
    tally = VoteTally(state)
    tally.open()
    return state, tally


def test_tie_at_maximum_executes_nobody():
    _, tally = open_tally(6)
    for voter, target in [("p3", "p1"), ("p4", "p1"), ("p5", "p2"), ("p6", "p2")]:
        tally.submit(voter, target)

    result = tally.result()
    assert result.executed_id is None
    assert result.tie
    assert result.vote_count == 2


def test_strict_majority_executes():
    state, tally = open_tally(6)
    for voter, target in [("p3", "p1"), ("p4", "p1"), ("p5", "p1"), ("p6", "p2")]:
        tally.submit(voter, target)

    result = tally.result()
    assert result.executed_id == "p1"
    assert result.vote_count == 3
    assert not result.tie
    assert state.get_player("p1").vote_count == 3


def test_all_abstain_means_no_execution_and_no_tie():
    _, tally = open_tally(4)
    for voter in ("p1", "p2", "p3", "p4"):
        tally.submit(voter, "skip")

    assert tally.is_complete()
    result = tally.result()
    assert result.executed_id is None
    assert not result.tie
    assert tally.summary()["abstentions"] == 4


def test_duplicate_vote_echoes_first_choice():
    _, tally = open_tally(4)
    tally.submit("p1", "p2")
    with pytest.raises(AlreadyVoted) as excinfo:
        tally.submit("p1", "p3")
    assert excinfo.value.data["existing"] == "p2"
    assert tally.vote_of("p1").target_id == "p2"


def test_votes_must_come_from_and_go_to_living_players():
    state, tally = open_tally(4)
    state.get_player("p4").mark_dead()
    with pytest.raises(InvalidTarget):
        tally.submit("p1", "p4")
    with pytest.raises(InvalidTarget):
        tally.submit("p4", "p1")
    with pytest.raises(InvalidTarget):
        tally.submit("ghost", "p1")


def test_open_resets_round_state():
    state, tally = open_tally(3)
    tally.submit("p1", "p2")
    tally.open()
    assert tally.votes == []
    assert all(not p.has_voted and p.vote_count == 0 for p in state.players.values())


class TestWinCondition:

    def test_no_werewolves_means_villagers_win(self):
        state = build_state(RoleId.WEREWOLF, RoleId.VILLAGER, RoleId.SEER)
        state.get_player("p1").mark_dead()
        assert check_win_condition(state) == Team.VILLAGER

    def test_parity_means_werewolves_win(self):
        state = build_state(RoleId.WEREWOLF, RoleId.VILLAGER)
        assert check_win_condition(state) == Team.WEREWOLF

        state = build_state(RoleId.WEREWOLF, RoleId.CURSED_WEREWOLF, RoleId.VILLAGER, RoleId.HUNTER)
        assert check_win_condition(state) == Team.WEREWOLF

    def test_game_continues_otherwise(self):
        state = build_state(RoleId.WEREWOLF, RoleId.VILLAGER, RoleId.VILLAGER)
        assert check_win_condition(state) is None
