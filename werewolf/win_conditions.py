"""Win condition checking logic."""

from typing import Optional

from .constants import Team
from .game_state import GameState


def check_win_condition(game_state: GameState) -> Optional[Team]:
    """
    Check if the game has ended and who won.

    Returns:
        Team.VILLAGER if no werewolf is alive, Team.WEREWOLF if living werewolves
        equal or outnumber living villagers, None if the game continues
    """
    werewolf_count = game_state.count_alive(Team.WEREWOLF)
    villager_count = game_state.count_alive(Team.VILLAGER)

    # Villagers win once every werewolf is gone
    if werewolf_count == 0:
        return Team.VILLAGER

    # Werewolves win on parity, even 1 vs 1
    if werewolf_count >= villager_count:
        return Team.WEREWOLF

    return None
