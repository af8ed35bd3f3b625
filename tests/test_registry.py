import json

import pytest
from jinja2 import UndefinedError

import config
from conftest import FakeScheduler, NoShuffle
from werewolf.errors import GameInProgress
from werewolf.prompts import render_hunter_prompt, render_night_prompt, render_role_card
from werewolf.registry import SessionRegistry
from werewolf.roles import get_role
from werewolf.rules import DEFAULT_RULES


@pytest.fixture
def registry():
    return SessionRegistry(scheduler=FakeScheduler(), rng=NoShuffle(1))


def test_one_live_session_per_channel(registry):
    session = registry.create("general", "p1", "Host")
    assert registry.get("general") is session
    assert "general" in registry

    with pytest.raises(GameInProgress):
        registry.create("general", "p9", "Other")

    session.cancel_game()
    replacement = registry.create("general", "p9", "Other")
    assert registry.get("general") is replacement


def test_find_by_player(registry):
    registry.create("a", "p1")
    session_b = registry.create("b", "p2")
    session_b.add_player("p3")

    assert registry.find_by_player("p3") == ("b", session_b)
    assert registry.find_by_player("nobody") is None


def test_prune_drops_ended_sessions(registry):
    registry.create("a", "p1").cancel_game()
    registry.create("b", "p2")

    assert registry.prune() == 1
    assert list(registry) == ["b"]
    assert len(registry) == 1
    assert registry.remove("b") is not None
    assert len(registry) == 0


class TestConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        assert config.load_rules(str(tmp_path / "missing.json")) is DEFAULT_RULES

    def test_overrides_are_applied(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"night_action_timeout": 15, "min_players": 5}))
        rules = config.load_rules(str(path))
        assert rules.night_action_timeout == 15
        assert rules.min_players == 5
        assert rules.voting_time == DEFAULT_RULES.voting_time

    def test_unknown_keys_are_rejected(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"wolves": 3}))
        with pytest.raises(ValueError):
            config.load_rules(str(path))


class TestPrompts:

    def test_role_card_lists_pack(self):
        card = render_role_card(get_role("WEREWOLF"), ["Ann", "Bo"])
        assert "Werewolf" in card
        assert "Ann, Bo" in card

    def test_lone_werewolf_card(self):
        assert "only werewolf" in render_role_card(get_role("WEREWOLF"), [])

    def test_villager_card_has_no_pack(self):
        card = render_role_card(get_role("SEER"), [])
        assert "werewolves:" not in card
        assert "Seer" in card

    def test_hunter_prompt(self):
        assert render_hunter_prompt("Ann").startswith("Ann, you have been killed")

    def test_night_prompt_names_the_night(self):
        text = render_night_prompt("seer", get_role("SEER"), 3)
        assert text.startswith("Night 3: Seer")

    def test_missing_template_variable_fails(self):
        with pytest.raises(UndefinedError):
            render_night_prompt("witch", get_role("WITCH"), 1)
