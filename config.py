"""Configuration module for host settings and game rule overrides."""

import json
import logging
import os

from werewolf.rules import DEFAULT_RULES, GameRules


# Host settings
LOG_DIR = os.environ.get("WEREWOLF_LOG_DIR", "logs")
LOG_LEVEL = getattr(logging, os.environ.get("WEREWOLF_LOG_LEVEL", "INFO").upper(), logging.INFO)
PORT = int(os.environ.get("WEREWOLF_PORT", "5000"))
RULES_PATH = os.environ.get("WEREWOLF_RULES", os.path.join(os.path.dirname(__file__), "rules.json"))


def load_rules(path: str = None) -> GameRules:
    """Load GameRules overrides from a JSON file.

    A missing file means default rules. Unknown keys raise ValueError.
    """
    path = path or RULES_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            overrides = json.load(f)
    except FileNotFoundError:
        return DEFAULT_RULES

    if not isinstance(overrides, dict):
        raise ValueError(f"Rules file {path} must contain a JSON object")
    return GameRules.from_dict(overrides)
