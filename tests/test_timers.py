import random

import gevent

from conftest import RecordingListener, make_session
from werewolf.constants import Phase, Team
from werewolf.rules import GameRules
from werewolf.session import GameSession
from werewolf.timers import GeventScheduler, TimerSet, TimerToken


FAST_RULES = {
    "night_action_timeout": 0.05,
    "discussion_time": 0.2,
    "voting_time": 0.05,
    "hunter_timeout": 0.05,
}


def wait_until(predicate, timeout=2.0):
    with gevent.Timeout(timeout):
        while not predicate():
            gevent.sleep(0.005)


class YieldingListener(RecordingListener):
    """Yields to the hub while handling the end of the game."""

    def on_game_ended(self, *args):
        self.events.append(("end_started", ()))
        gevent.sleep(0)
        super().on_game_ended(*args)


def test_token_str():
    assert str(TimerToken("NIGHT", 2, "SEER")) == "NIGHT/2/SEER"
    assert str(TimerToken("DAY", 1)) == "DAY/1/-"


class TestTimerSet:

    def test_cancel_all_stops_pending_greenlets(self):
        fired = []
        timers = TimerSet(GeventScheduler())
        handles = [timers.schedule(0.01, fired.append, i) for i in range(3)]

        assert timers.cancel_all() == 3
        gevent.sleep(0.05)

        assert fired == []
        assert not any(h.active for h in handles)
        assert len(timers) == 0

    def test_callback_that_cancels_everything_runs_to_completion(self):
        steps = []
        timers = TimerSet(GeventScheduler())

        def end_everything():
            steps.append("cancelling")
            timers.cancel_all()
            gevent.sleep(0)
            steps.append("finished")

        timers.schedule(0.0, end_everything)
        other = timers.schedule(0.5, steps.append, "late")
        gevent.sleep(0.05)

        assert steps == ["cancelling", "finished"]
        assert not other.active

    def test_finished_handles_are_pruned(self):
        timers = TimerSet(GeventScheduler())
        timers.schedule(0.0, lambda: None)
        gevent.sleep(0.01)
        timers.schedule(1.0, lambda: None)
        assert len(timers) == 1
        timers.cancel_all()


class TestGeventGame:

    def test_stale_night_timeout_does_not_resolve_twice(self):
        listener = RecordingListener()
        session = make_session(
            ["WEREWOLF", "VILLAGER", "VILLAGER", "VILLAGER"],
            listener=listener, scheduler=GeventScheduler(), **FAST_RULES
        )
        assert session.submit_night_action("p1", "attack:p2").success
        assert session.phase == Phase.DAY

        # Past the night timeout, still inside discussion
        gevent.sleep(0.1)
        assert session.phase == Phase.DAY
        assert len(listener.of("on_day_report")) == 1
        session.cancel_game()

    def test_game_ending_in_timer_greenlet_finishes_notification(self):
        listener = YieldingListener()
        session = make_session(
            ["WEREWOLF", "VILLAGER", "VILLAGER", "VILLAGER"],
            listener=listener, scheduler=GeventScheduler(), **FAST_RULES
        )
        assert session.submit_night_action("p1", "attack:p2").success

        wait_until(lambda: session.phase == Phase.VOTING)
        assert session.submit_vote("p3", "p1").success
        assert session.submit_vote("p4", "p1").success

        # p1 never votes, so the voting timeout closes the vote and ends the game
        wait_until(lambda: "on_game_ended" in listener.names())
        names = listener.names()
        assert names.index("end_started") < names.index("on_game_ended")

        winner, roster = listener.of("on_game_ended")[0]
        assert winner == Team.VILLAGER
        assert len(roster) == 4
        assert session.phase == Phase.ENDED
        assert len(session.timers) == 0

    def test_stand_ins_play_to_the_end(self):
        listener = YieldingListener()
        rules = GameRules(
            ai_action_delay=(0.0, 0.01),
            ai_vote_delays={"quick": (0.0, 0.01), "normal": (0.0, 0.01), "slow": (0.0, 0.01)},
            **FAST_RULES,
        )
        session = GameSession(
            "p1", "Host", rules=rules, listener=listener,
            scheduler=GeventScheduler(), rng=random.Random(11),
        )
        assert session.start_game(ai_fill_count=4).success

        wait_until(lambda: session.is_over, timeout=10.0)
        wait_until(lambda: "on_game_ended" in listener.names())

        winner, roster = listener.of("on_game_ended")[0]
        assert winner in (Team.VILLAGER, Team.WEREWOLF)
        assert all(entry["role"] for entry in roster)
        assert len(session.timers) == 0
