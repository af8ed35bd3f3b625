"""Day vote tally."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .constants import ABSTAIN
from .errors import AlreadyVoted, InvalidTarget


@dataclass(frozen=True)
class Vote:
    voter_id: str
    target_id: Optional[str]  # None means abstain

    @property
    def is_abstain(self) -> bool:
        return self.target_id is None

    def to_dict(self) -> Dict[str, Any]:
        return {"voter": self.voter_id, "target": self.target_id}


@dataclass(frozen=True)
class VoteResult:
    executed_id: Optional[str]
    vote_count: int
    tie: bool
    counts: Dict[str, int]


def parse_vote(raw: Any) -> Optional[str]:
    """Turn a raw vote into a target id, or None for abstain."""
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise InvalidTarget("That vote is not understood")
    raw = raw.strip()
    if raw.lower() in (ABSTAIN, "abstain", "none", ""):
        return None
    return raw


class VoteTally:
    """
    Collects one vote per living player for the current day.

    Usage:
        tally = VoteTally(game_state)
        tally.open()
        tally.submit(voter_id, "p3")
        if tally.is_complete():
            result = tally.result()
    """

    def __init__(self, game_state):
        self.game_state = game_state
        self.votes: List[Vote] = []
        self.eligible: List[str] = []

    def open(self):
        """Clear all vote state for a fresh round."""
        self.votes = []
        self.eligible = [p.player_id for p in self.game_state.get_alive_players()]
        for player in self.game_state.players.values():
            player.reset_round()

    def vote_of(self, voter_id: str) -> Optional[Vote]:
        for vote in self.votes:
            if vote.voter_id == voter_id:
                return vote
        return None

    def submit(self, voter_id: str, raw_choice: Any) -> Vote:
        """Record a vote. First vote is final."""
        voter = self.game_state.get_player(voter_id)
        if voter is None or not voter.alive or voter_id not in self.eligible:
            raise InvalidTarget("Only living players can vote")

        existing = self.vote_of(voter_id)
        if existing is not None:
            shown = self.game_state.player_name(existing.target_id) if existing.target_id else ABSTAIN
            raise AlreadyVoted(f"You already voted for {shown}.", existing=existing.target_id or ABSTAIN)

        target_id = parse_vote(raw_choice)
        if target_id is not None:
            target = self.game_state.get_player(target_id)
            if target is None or not target.alive:
                raise InvalidTarget("You can only vote for a living player")

        vote = Vote(voter_id, target_id)
        self.votes.append(vote)
        voter.has_voted = True
        if target_id is not None:
            self.game_state.get_player(target_id).vote_count += 1
        return vote

    def is_complete(self) -> bool:
        """All living eligible voters have voted."""
        living = [pid for pid in self.eligible if self.game_state.get_player(pid).alive]
        return all(self.vote_of(pid) is not None for pid in living)

    def counts(self) -> Dict[str, int]:
        vote_counts: Dict[str, int] = {}
        for vote in self.votes:
            if not vote.is_abstain:
                vote_counts[vote.target_id] = vote_counts.get(vote.target_id, 0) + 1
        return vote_counts

    def result(self) -> VoteResult:
        """
        Determine the execution target.

        Strictly the most votes wins; a tie at the top, or no votes for anyone,
        means no execution.
        """
        vote_counts = self.counts()
        if not vote_counts:
            return VoteResult(None, 0, False, vote_counts)

        max_votes = max(vote_counts.values())
        leaders = [pid for pid, count in vote_counts.items() if count == max_votes]
        if len(leaders) > 1:
            return VoteResult(None, max_votes, True, vote_counts)
        return VoteResult(leaders[0], max_votes, False, vote_counts)

    def summary(self) -> Dict[str, Any]:
        return {
            "total_votes": len(self.votes),
            "expected_votes": len(self.eligible),
            "votes_by_target": {
                self.game_state.player_name(pid): count for pid, count in self.counts().items()
            },
            "abstentions": len([v for v in self.votes if v.is_abstain]),
        }
