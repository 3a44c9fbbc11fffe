"""
Descriptor schema — validates a raw ``build.json`` object.

Validation never raises for bad input.  It returns a list of
``SchemaIssue`` records (dotted locator + message); an empty list means
the descriptor is valid.  The loader turns a non-empty list into a
fatal ``SchemaError``.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictStr, ValidationError
from pydantic_core import PydanticCustomError

from avbbs.core.models.package import PHASES
from avbbs.core.package.templates import list_templates

# Top-level keys with a fixed meaning; anything else is a template option
DESCRIPTOR_KEYS = frozenset({"name", "version", "source", "template", "licenses", "build"})


class SchemaIssue(BaseModel):
    """One validation problem in a descriptor."""

    path: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return self.model_dump()

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


# ── Field checks ────────────────────────────────────────────────────


def _known_phase(name: str) -> str:
    if name not in PHASES:
        raise PydanticCustomError(
            "unknown_phase",
            "Unknown phase '{phase}' (expected one of: {phases})",
            {"phase": name, "phases": ", ".join(PHASES)},
        )
    return name


def _known_template(name: str) -> str:
    names = list_templates()
    if name not in names:
        raise PydanticCustomError(
            "unknown_template",
            "Unknown template '{template}' (expected one of: {templates})",
            {"template": name, "templates": ", ".join(names)},
        )
    return name


def _command_entry(entry: Any) -> Any:
    """A command is a non-empty string or ``{"command": str, "env": {str: str}}``."""
    if isinstance(entry, str):
        if not entry.strip():
            raise PydanticCustomError("empty_command", "Command must not be empty")
        return entry

    if not isinstance(entry, dict):
        raise PydanticCustomError(
            "command_entry",
            "Expected a command string or an object with 'command' and 'env'",
        )

    unknown = sorted(set(entry) - {"command", "env"})
    if unknown:
        raise PydanticCustomError(
            "command_entry",
            "Unexpected key(s) in command object: {keys}",
            {"keys": ", ".join(unknown)},
        )

    command = entry.get("command")
    if not isinstance(command, str) or not command.strip():
        raise PydanticCustomError("command_entry", "'command' must be a non-empty string")

    env = entry.get("env", {})
    if not isinstance(env, dict):
        raise PydanticCustomError("command_env", "'env' must be an object")
    for key, value in env.items():
        if not isinstance(value, str):
            raise PydanticCustomError(
                "command_env",
                "'env.{key}' must be a string",
                {"key": key},
            )
    return entry


PhaseName = Annotated[str, AfterValidator(_known_phase)]
TemplateName = Annotated[StrictStr, AfterValidator(_known_template)]
CommandEntry = Annotated[Any, AfterValidator(_command_entry)]


# ── Schema models ───────────────────────────────────────────────────


class BuildSchema(BaseModel):
    """The ``build`` section of a descriptor."""

    model_config = ConfigDict(extra="forbid")

    context: StrictStr = ""
    depends: list[StrictStr] = Field(default_factory=list)
    commands: dict[PhaseName, list[CommandEntry]] = Field(default_factory=dict)


class DescriptorSchema(BaseModel):
    """Shape of a ``build.json`` file."""

    model_config = ConfigDict(extra="allow")

    name: StrictStr
    version: StrictStr
    source: StrictStr | None = None
    template: TemplateName | None = None
    licenses: list[StrictStr] = Field(default_factory=list)
    build: BuildSchema = Field(default_factory=BuildSchema)


# ── Validation ──────────────────────────────────────────────────────


def _locator(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc)


def validate_descriptor(raw: Any) -> list[SchemaIssue]:
    """Validate a raw descriptor object.

    Args:
        raw: The parsed JSON content of a ``build.json`` file.

    Returns:
        List of issues.  Empty when the descriptor is valid.
    """
    try:
        schema = DescriptorSchema.model_validate(raw)
    except ValidationError as e:
        return [
            SchemaIssue(path=_locator(err["loc"]), message=err["msg"])
            for err in e.errors()
        ]

    issues: list[SchemaIssue] = []
    if not schema.name.strip():
        issues.append(SchemaIssue(path="name", message="Name must not be empty"))
    if schema.name in schema.build.depends:
        issues.append(SchemaIssue(
            path="build.depends",
            message=f"Package '{schema.name}' cannot depend on itself",
        ))
    return issues
