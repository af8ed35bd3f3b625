"""
Outbound events.

The binding subclasses ``GameListener`` and overrides what it renders.
Every method is a no-op by default. Player arguments are ``Player`` objects;
``role`` arguments are role behavior records from the role table.
"""

from typing import Any, Dict, List, Optional


class GameListener:

    def on_role_assigned(self, player, role, teammates: List[str], card: str):
        """Private: a player's role, with teammate names for werewolves."""

    def on_night_prompt_needed(self, player, role, prompt_context: Dict[str, Any]):
        """Private: ask one eligible actor for their night choice."""

    def on_night_phase_skipped(self, phase):
        pass

    def on_day_report(self, deaths: List[Dict[str, Any]]):
        """Public: who died overnight. An empty list means no one died."""

    def on_seer_result(self, seer, target, is_werewolf: bool):
        """Private to the seer."""

    def on_voting_opened(self, candidates: List):
        pass

    def on_voting_result(self, executed, vote_count: int, tie: bool):
        pass

    def on_hunter_retaliation_needed(self, hunter, candidates: List):
        """Private to the hunter."""

    def on_hunter_shot(self, hunter, target):
        """Public. ``target`` is None when the hunter held fire."""

    def on_werewolf_team_changed(self, player, teammates: List[str]):
        """Private: sent to existing werewolves after a conversion."""

    def on_phase_changed(self, phase, day: int):
        pass

    def on_game_ended(self, winning_alignment: Optional[Any], final_roster: List[Dict[str, Any]]):
        """Public. ``winning_alignment`` is None when the game was cancelled."""
