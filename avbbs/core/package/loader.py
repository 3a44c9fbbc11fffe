"""
Package loader — reads build.json into a PackageDescriptor.

Steps:
    read JSON → validate → merge over defaults → apply template (if any)

Any validation problem is fatal for the whole run: the loader raises
``SchemaError`` carrying every issue found in the file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from avbbs.core.errors import SchemaError
from avbbs.core.models.package import PACKAGE_CONFIG, PHASES, CommandSpec, PackageDescriptor
from avbbs.core.package.schema import DESCRIPTOR_KEYS, SchemaIssue, validate_descriptor
from avbbs.core.package.templates import get_template

logger = logging.getLogger(__name__)


def read_descriptor(directory: Path) -> Any:
    """Read the raw JSON content of ``<directory>/build.json``.

    Raises:
        SchemaError: If the file is missing, unreadable or not JSON.
    """
    path = directory / PACKAGE_CONFIG
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaError(directory, [
            SchemaIssue(path="", message=f"Cannot read {path}: {e}"),
        ]) from e

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise SchemaError(directory, [
            SchemaIssue(path="", message=f"Invalid JSON in {path}: {e}"),
        ]) from e


def merge_defaults(raw: dict[str, Any], directory: Path | None = None) -> PackageDescriptor:
    """Merge a validated raw descriptor over the defaults.

    Declared values always win.  Every phase not declared under
    ``build.commands`` defaults to an empty command list.
    """
    build = raw.get("build") or {}
    declared = build.get("commands") or {}

    commands = {
        phase: tuple(CommandSpec.coerce(entry) for entry in declared.get(phase, []))
        for phase in PHASES
    }

    return PackageDescriptor(
        name=raw["name"],
        version=raw["version"],
        source=raw.get("source"),
        template=raw.get("template"),
        licenses=tuple(raw.get("licenses") or ()),
        context=build.get("context", ""),
        depends=frozenset(build.get("depends") or ()),
        commands=commands,
        declared_phases=frozenset(declared),
        options={k: v for k, v in raw.items() if k not in DESCRIPTOR_KEYS},
        path=directory,
    )


def load_package(directory: Path) -> PackageDescriptor:
    """Load, validate and default the package in *directory*.

    Args:
        directory: Directory containing a ``build.json``.

    Returns:
        The immutable descriptor, with template defaults applied.

    Raises:
        SchemaError: If the descriptor is unreadable or invalid.
    """
    directory = Path(directory)
    raw = read_descriptor(directory)

    issues = validate_descriptor(raw)
    if issues:
        logger.debug("Descriptor %s has %d issue(s)", directory, len(issues))
        raise SchemaError(directory, issues)

    descriptor = merge_defaults(raw, directory)

    if descriptor.template:
        template = get_template(descriptor.template)
        # The schema only admits registered names
        assert template is not None
        descriptor = template(descriptor)
        logger.debug("Applied template '%s' to %s", descriptor.template, descriptor.name)

    logger.debug("Loaded package %s-%s from %s", descriptor.name, descriptor.version, directory)
    return descriptor
