"""
Build-system templates — presets that pre-fill phase commands.

Registry of all known templates.  The set of names is closed: the
schema validator rejects any ``template`` value not registered here.
"""

from __future__ import annotations

from .autotools import autotools
from .base import Template, apply_template_defaults

# ── Template registry ───────────────────────────────────────────────

_TEMPLATES: dict[str, Template] = {
    "autotools": autotools,
}


def get_template(name: str) -> Template | None:
    """Get a template by name."""
    return _TEMPLATES.get(name)


def list_templates() -> list[str]:
    """Names of every registered template, sorted."""
    return sorted(_TEMPLATES)


__all__ = [
    "Template",
    "apply_template_defaults",
    "get_template",
    "list_templates",
]
