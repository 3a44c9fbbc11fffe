"""
Error taxonomy — every condition that aborts a build run.

All errors derive from ``BuildError`` and carry enough structure to
locate the offending package, field or command.  ``to_dict()`` is what
the CLI prints (or serializes with ``--json``) before exiting non-zero.

There is no retry anywhere: the human re-invokes the tool and the
phase ledger makes the re-run resume where the failure happened.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class BuildError(Exception):
    """Base class for every fatal build condition."""

    kind = "build"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": str(self)}


class ConfigError(BuildError):
    """Raised when the settings file is invalid or unreadable."""

    kind = "config"


class SchemaError(BuildError):
    """A package descriptor failed validation (or could not be read)."""

    kind = "schema"

    def __init__(self, package_dir: Path | str, issues: list[Any]):
        self.package_dir = Path(package_dir)
        self.issues = list(issues)
        super().__init__(f"Package '{self.package_dir.name}' validation failed")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["package_dir"] = str(self.package_dir)
        data["issues"] = [
            issue.to_dict() if hasattr(issue, "to_dict") else {"path": "", "message": str(issue)}
            for issue in self.issues
        ]
        return data


class ResolutionError(BuildError):
    """The descriptor set cannot be turned into a build order."""

    kind = "resolution"


class CycleError(ResolutionError):
    """The dependency graph contains at least one cycle."""

    kind = "cycle"

    def __init__(self, names: list[str]):
        self.names = sorted(names)
        super().__init__(f"Dependency cycle between: {', '.join(self.names)}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["packages"] = self.names
        return data


class DuplicatePackageError(ResolutionError):
    """Two descriptors under the same root declare the same name."""

    kind = "duplicate"

    def __init__(self, name: str, paths: list[Path]):
        self.name = name
        self.paths = [Path(p) for p in paths]
        super().__init__(
            f"Package '{name}' is declared more than once: "
            + ", ".join(str(p) for p in self.paths)
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["package"] = self.name
        data["paths"] = [str(p) for p in self.paths]
        return data


class CommandFailure(BuildError):
    """A phase command exited non-zero or could not be launched."""

    kind = "command"

    def __init__(
        self,
        package: str,
        phase: str,
        command: str,
        detail: str = "",
        return_code: int | None = None,
    ):
        self.package = package
        self.phase = phase
        self.command = command
        self.detail = detail
        self.return_code = return_code
        message = f"[{phase}] {package}: command failed: {command}"
        if return_code is not None:
            message += f" (exit {return_code})"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "package": self.package,
            "phase": self.phase,
            "command": self.command,
            "return_code": self.return_code,
            "detail": self.detail,
        })
        return data


class StagingError(BuildError):
    """Fetching or extracting a package's source archive failed."""

    kind = "staging"

    def __init__(self, package: str, source: str, detail: str):
        self.package = package
        self.source = source
        self.detail = detail
        super().__init__(f"Cannot stage source for '{package}' from {source}: {detail}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({"package": self.package, "source": self.source, "detail": self.detail})
        return data


class BuildCancelled(BuildError):
    """The run was interrupted while a command was in flight."""

    kind = "cancelled"

    def __init__(self, package: str, phase: str):
        self.package = package
        self.phase = phase
        super().__init__(f"Build cancelled during [{phase}] {package}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({"package": self.package, "phase": self.phase})
        return data
