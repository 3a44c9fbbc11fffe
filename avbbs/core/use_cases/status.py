"""
Status use case — ledger contents for every package under a root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from avbbs.core.models.package import PHASES
from avbbs.core.package.resolver import resolve
from avbbs.core.persistence.state_file import read_ledger
from avbbs.core.services.workspace import package_paths


@dataclass
class PackageStatus:
    """Completed and remaining phases of one package."""

    name: str
    version: str
    completed: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)

    @property
    def state(self) -> str:
        if not self.pending:
            return "complete"
        return "partial" if self.completed else "new"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "state": self.state,
            "completed": self.completed,
            "pending": self.pending,
        }


def get_status(root: Path, dest: Path) -> list[PackageStatus]:
    """Ledger state of every package, in build order.

    Pending phases are the ones with commands that the ledger does not
    list yet.

    Raises:
        BuildError: If the packages cannot be resolved.
    """
    result: list[PackageStatus] = []
    for descriptor in resolve(root):
        completed = read_ledger(package_paths(descriptor, dest).context_dir)
        pending = [
            phase for phase in PHASES
            if phase not in completed and descriptor.phase_commands(phase)
        ]
        result.append(PackageStatus(
            name=descriptor.name,
            version=descriptor.version,
            completed=completed,
            pending=pending,
        ))
    return result
