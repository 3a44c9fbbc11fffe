"""
Template base — the merge policy shared by every build-system preset.

A template is a pure function ``(PackageDescriptor) -> PackageDescriptor``
that injects default phase commands.  The merge is deliberately
field-by-field rather than a generic recursive merge:

    phase declared in build.json  → the user's list, wholesale
    any other phase               → the template's list

Lists are never concatenated or merged element-wise.
"""

from __future__ import annotations

from typing import Any, Callable

from avbbs.core.models.package import PHASES, CommandSpec, PackageDescriptor

Template = Callable[[PackageDescriptor], PackageDescriptor]


def apply_template_defaults(
    descriptor: PackageDescriptor,
    defaults: dict[str, list[str | dict[str, Any]]],
) -> PackageDescriptor:
    """Return a copy of *descriptor* with template commands filled in.

    Args:
        descriptor: The loaded, defaulted descriptor.
        defaults: Phase name → command entries proposed by the template.

    Returns:
        A new descriptor.  The input is left untouched.
    """
    commands: dict[str, tuple[CommandSpec, ...]] = {}
    for phase in PHASES:
        if phase in descriptor.declared_phases or phase not in defaults:
            commands[phase] = descriptor.phase_commands(phase)
        else:
            commands[phase] = tuple(CommandSpec.coerce(entry) for entry in defaults[phase])

    return descriptor.model_copy(update={"commands": commands})
