"""
Player-facing text built from Jinja2 templates.

Templates ship as package data under ``werewolf/prompts/templates``:
``role_card.jinja2``, ``hunter.jinja2`` and one ``night/<role>.jinja2``
per night role. Rendering fails loudly on a missing variable.
"""

from typing import List

from jinja2 import Environment, PackageLoader, StrictUndefined

_env = Environment(
    loader=PackageLoader("werewolf.prompts", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
)


def _render(template_name: str, **context) -> str:
    return _env.get_template(template_name).render(**context).strip()


def render_role_card(role, teammates: List[str]) -> str:
    """Role assignment text; lists teammates for werewolf-aligned roles."""
    return _render("role_card.jinja2", role=role, teammates=teammates)


def render_night_prompt(template_name: str, role, night: int, **context) -> str:
    """Description text for a night sub-phase prompt."""
    return _render(f"night/{template_name}.jinja2", role=role, night=night, **context)


def render_hunter_prompt(hunter_name: str) -> str:
    return _render("hunter.jinja2", hunter_name=hunter_name)


__all__ = [
    "render_role_card",
    "render_night_prompt",
    "render_hunter_prompt",
]
