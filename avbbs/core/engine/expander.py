"""
Command expander — phase commands → ExecutableCommands.

For each command of a phase:

    bindings ∪ command env   →  substitute $NAME / ${NAME}
                             →  split into words (POSIX shell rules)
                             →  ExecutableCommand(program, args, env)

Command ``env`` values are substituted against the bindings too, so
``PATH: "$AVBBS_INSTALL_DIR/usr/bin:$PATH"`` works.

Expansion is pure: it never touches the disk or spawns anything.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from string import Template

from avbbs.core.errors import CommandFailure
from avbbs.core.models.action import ExecutableCommand
from avbbs.core.models.package import PackageDescriptor


def substitute(text: str, variables: Mapping[str, str]) -> str:
    """Replace ``$NAME`` and ``${NAME}`` tokens.

    Unknown names are left as-is and ``$$`` yields a literal ``$``.
    """
    return Template(text).safe_substitute(variables)


def compose_bindings(
    derived: Mapping[str, str],
    globals_: Mapping[str, str],
    ambient: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Layer variable bindings.

    Precedence (low → high): ambient process environment, per-package
    derived paths, global build variables.  An inherited variable never
    shadows a value computed for this run.  Per-command ``env``
    overrides are applied on top of this by :func:`expand`.
    """
    if ambient is None:
        ambient = os.environ
    return {**ambient, **derived, **globals_}


def expand(
    descriptor: PackageDescriptor,
    phase: str,
    bindings: Mapping[str, str],
) -> list[ExecutableCommand]:
    """Expand the commands registered under *phase*.

    Args:
        descriptor: The package.
        phase: Phase name.
        bindings: Variables available to substitution (and the base of
            every command's environment).

    Returns:
        One ExecutableCommand per declared command, in declaration order.

    Raises:
        CommandFailure: If a command cannot be tokenized or expands to
            nothing.
    """
    expanded: list[ExecutableCommand] = []

    for index, spec in enumerate(descriptor.phase_commands(phase)):
        overrides = {key: substitute(value, bindings) for key, value in spec.env.items()}
        env = {**bindings, **overrides}
        line = substitute(spec.command, env)

        try:
            words = shlex.split(line)
        except ValueError as e:
            raise CommandFailure(descriptor.name, phase, spec.command, detail=str(e)) from e

        if not words:
            raise CommandFailure(
                descriptor.name, phase, spec.command,
                detail="Command expands to an empty command line",
            )

        expanded.append(ExecutableCommand(
            id=f"{descriptor.name}:{phase}:{index}",
            package=descriptor.name,
            phase=phase,
            command=spec.command,
            program=words[0],
            args=tuple(words[1:]),
            env=env,
        ))

    return expanded
