import pytest

from werewolf.constants import NightPhase
from werewolf.errors import AlreadyActed, Busy, InvalidTarget
from werewolf.ledger import ActionLedger, KeyedGuard
from werewolf.night_actions import (
    Attack,
    Curse,
    Inspect,
    NightAction,
    Pass,
    WitchBrew,
    parse_target_choice,
    parse_werewolf_choice,
    parse_witch_choice,
)
from werewolf.roles import tally_werewolf_votes


class TestParsing:

    def test_werewolf_accepts_prefixed_and_bare_ids(self):
        assert parse_werewolf_choice("attack:p3", allow_curse=False) == Attack("p3")
        assert parse_werewolf_choice("attack_p3", allow_curse=False) == Attack("p3")
        assert parse_werewolf_choice("p3", allow_curse=False) == Attack("p3")
        assert parse_werewolf_choice("none", allow_curse=False) == Pass()

    def test_only_cursed_werewolf_may_curse(self):
        assert parse_werewolf_choice("curse:p3", allow_curse=True) == Curse("p3")
        with pytest.raises(InvalidTarget):
            parse_werewolf_choice("curse:p3", allow_curse=False)

    def test_werewolf_rejects_witch_keywords(self):
        with pytest.raises(InvalidTarget):
            parse_werewolf_choice("kill:p3", allow_curse=True)

    def test_witch_variants(self):
        assert parse_witch_choice("heal") == WitchBrew(heal=True)
        assert parse_witch_choice("kill:p4") == WitchBrew(poison_target_id="p4")
        assert parse_witch_choice("heal,kill:p4") == WitchBrew(heal=True, poison_target_id="p4")
        assert parse_witch_choice("heal+kill:p4") == WitchBrew(heal=True, poison_target_id="p4")
        assert parse_witch_choice({"heal": True, "poison": "p4"}) == WitchBrew(True, "p4")
        assert parse_witch_choice("none") == Pass()
        assert parse_witch_choice({}) == Pass()

    def test_witch_rejects_garbage(self):
        with pytest.raises(InvalidTarget):
            parse_witch_choice("attack:p3")
        with pytest.raises(InvalidTarget):
            parse_witch_choice(42)

    def test_target_choice(self):
        assert parse_target_choice("p2", Inspect) == Inspect("p2")
        assert parse_target_choice(None, Inspect) == Pass()
        with pytest.raises(InvalidTarget):
            parse_target_choice("curse:p2", Inspect)

    def test_describe(self):
        assert WitchBrew(True, "p4").describe() == "heal + poison p4"
        assert Pass(timed_out=True).describe() == "no action (timed out)"


def test_werewolf_tally_plurality_first_highest_wins_ties():
    def action(actor, target):
        return NightAction(actor, Attack(target), NightPhase.WEREWOLF, 1)

    assert tally_werewolf_votes([action("w1", "p3"), action("w2", "p4")]) == "p3"
    assert tally_werewolf_votes([
        action("w1", "p3"), action("w2", "p4"), action("w3", "p4"),
    ]) == "p4"
    assert tally_werewolf_votes([NightAction("w1", Pass(), NightPhase.WEREWOLF, 1)]) is None
    assert tally_werewolf_votes([NightAction("w1", Curse("p3"), NightPhase.WEREWOLF, 1)]) is None


class TestLedger:

    def test_duplicate_is_rejected_and_first_kept(self):
        ledger = ActionLedger()
        ledger.begin_night(1)
        ledger.record(NightAction("p1", Attack("p3"), NightPhase.WEREWOLF, 1))

        with pytest.raises(AlreadyActed) as excinfo:
            ledger.record(NightAction("p1", Attack("p4"), NightPhase.WEREWOLF, 1))

        assert excinfo.value.data["existing"] == "attack p3"
        assert ledger.get("p1").choice == Attack("p3")

    def test_archive_keeps_history_by_night(self):
        ledger = ActionLedger()
        ledger.begin_night(1)
        ledger.record(NightAction("p1", Attack("p3"), NightPhase.WEREWOLF, 1))
        ledger.record(NightAction("p2", Inspect("p1"), NightPhase.SEER, 1))
        assert [a.actor_id for a in ledger.actions_for(NightPhase.SEER)] == ["p2"]

        ledger.begin_night(2)
        assert not ledger.has_acted("p1")
        assert len(ledger.history_for(1)) == 2
        assert ledger.history_for(2) == []


class TestKeyedGuard:

    def test_second_hold_is_busy(self):
        guard = KeyedGuard()
        with guard.hold("p1"):
            assert guard.is_held("p1")
            with pytest.raises(Busy):
                with guard.hold("p1"):
                    pass
            with guard.hold("p2"):
                pass
        assert not guard.is_held("p1")

    def test_released_after_error(self):
        guard = KeyedGuard()
        with pytest.raises(RuntimeError):
            with guard.hold("p1"):
                raise RuntimeError("boom")
        with guard.hold("p1"):
            pass
