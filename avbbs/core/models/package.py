"""
Package model — the validated, defaulted identity and recipe of one package.

A ``PackageDescriptor`` is produced once per run by the loader from a
``build.json`` file and is immutable afterwards.  Templates return an
augmented copy; they never mutate the original.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Descriptor and ledger file names
PACKAGE_CONFIG = "build.json"
PACKAGE_STATE = "state.json"

# Fixed, ordered phase list shared by every package
PHASES: tuple[str, ...] = (
    "fetch",
    "pre-configure",
    "configure",
    "post-configure",
    "pre-build",
    "build",
    "post-build",
    "pre-install",
    "install",
    "post-install",
    "clean",
)


class CommandSpec(BaseModel):
    """One shell invocation within a phase (pre-substitution)."""

    model_config = ConfigDict(frozen=True)

    command: str
    env: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def coerce(cls, entry: str | dict[str, Any]) -> CommandSpec:
        """Normalize a descriptor entry (plain string or object)."""
        if isinstance(entry, str):
            return cls(command=entry)
        return cls(command=entry.get("command", ""), env=dict(entry.get("env") or {}))


def _empty_commands() -> dict[str, tuple[CommandSpec, ...]]:
    return {phase: () for phase in PHASES}


class PackageDescriptor(BaseModel):
    """A loaded package.

    ``commands`` always holds an entry for every phase in ``PHASES``.
    ``declared_phases`` remembers which of them the descriptor file set
    explicitly, so templates never overwrite them.
    """

    model_config = ConfigDict(frozen=True)

    # ── Identity ─────────────────────────────────────────────────
    name: str
    version: str
    source: str | None = None       # archive URL, may reference ${name}/${version}
    template: str | None = None     # key of the template registry
    licenses: tuple[str, ...] = ()

    # ── Build recipe ─────────────────────────────────────────────
    context: str = ""               # subpath of the extracted tree commands run in
    depends: frozenset[str] = frozenset()
    commands: dict[str, tuple[CommandSpec, ...]] = Field(default_factory=_empty_commands)
    declared_phases: frozenset[str] = frozenset()

    # ── Extras ───────────────────────────────────────────────────
    options: dict[str, Any] = Field(default_factory=dict)  # template options (e.g. autoconf)
    path: Path | None = None        # directory the descriptor was read from

    def phase_commands(self, phase: str) -> tuple[CommandSpec, ...]:
        """Commands registered for a phase (empty for unknown phases)."""
        return self.commands.get(phase, ())

    def substitution_fields(self) -> dict[str, str]:
        """Scalar fields a descriptor's own templates can reference."""
        fields = {"name": self.name, "version": self.version}
        for key, value in self.options.items():
            if isinstance(value, str):
                fields.setdefault(key, value)
        return fields
