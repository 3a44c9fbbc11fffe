"""
Dependency resolver — discovers packages and orders them for building.

Discovery walks the root recursively for ``build.json`` files and loads
each one (the first invalid descriptor aborts resolution).  Ordering is
Kahn's algorithm with a lexicographic tie-break, so identical inputs
always give the identical order:

    repeat: among packages whose dependencies are all placed,
            place the one with the smallest name

Dependencies naming no discovered package are treated as external
(provided by the system) and add no ordering constraint.
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field
from pathlib import Path

from avbbs.core.errors import CycleError, DuplicatePackageError, ResolutionError
from avbbs.core.models.package import PACKAGE_CONFIG, PackageDescriptor
from avbbs.core.package.loader import load_package

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """A build order together with the descriptors it was computed from."""

    order: list[str] = field(default_factory=list)
    packages: dict[str, PackageDescriptor] = field(default_factory=dict)
    external: dict[str, list[str]] = field(default_factory=dict)  # package → unresolved deps

    def __iter__(self):
        for name in self.order:
            yield self.packages[name]

    def __len__(self) -> int:
        return len(self.order)


def discover_packages(root: Path) -> list[Path]:
    """Every directory under *root* (inclusive) holding a ``build.json``, sorted."""
    root = Path(root).resolve()
    if not root.is_dir():
        raise ResolutionError(f"Packages root is not a directory: {root}")
    return sorted(path.parent for path in root.rglob(PACKAGE_CONFIG) if path.is_file())


def load_packages(root: Path) -> dict[str, PackageDescriptor]:
    """Load every descriptor under *root*, keyed by package name.

    Raises:
        SchemaError: On the first invalid descriptor.
        DuplicatePackageError: If two descriptors share a name.
    """
    packages: dict[str, PackageDescriptor] = {}
    for directory in discover_packages(root):
        descriptor = load_package(directory)
        existing = packages.get(descriptor.name)
        if existing is not None:
            raise DuplicatePackageError(descriptor.name, [existing.path, directory])
        packages[descriptor.name] = descriptor

    logger.info("Discovered %d package(s) under %s", len(packages), root)
    return packages


def dependency_graph(packages: dict[str, PackageDescriptor]) -> dict[str, set[str]]:
    """Name → dependencies that resolve to a known package."""
    return {
        name: {dep for dep in descriptor.depends if dep in packages}
        for name, descriptor in packages.items()
    }


def required_closure(graph: dict[str, set[str]], targets: list[str]) -> set[str]:
    """Targets plus everything they transitively depend on."""
    unknown = sorted(set(targets) - set(graph))
    if unknown:
        raise ResolutionError(f"Unknown package(s): {', '.join(unknown)}")

    seen: set[str] = set()
    stack = list(targets)
    while stack:
        name = stack.pop()
        if name in seen:
            continue
        seen.add(name)
        stack.extend(graph[name] - seen)
    return seen


def topological_order(graph: dict[str, set[str]]) -> list[str]:
    """Deterministic dependency-first order of *graph*.

    Raises:
        CycleError: If some packages can never become ready.
    """
    pending = {name: len(deps) for name, deps in graph.items()}
    dependents: dict[str, list[str]] = {name: [] for name in graph}
    for name, deps in graph.items():
        for dep in deps:
            dependents[dep].append(name)

    ready = [name for name, count in pending.items() if count == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        name = heapq.heappop(ready)
        order.append(name)
        for dependent in dependents[name]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                heapq.heappush(ready, dependent)

    if len(order) < len(graph):
        placed = set(order)
        raise CycleError(_cycle_members(graph, set(graph) - placed))

    return order


def _cycle_members(graph: dict[str, set[str]], remaining: set[str]) -> list[str]:
    """Strip packages that merely depend on a cycle, keep the cycle itself."""
    members = set(remaining)
    while True:
        needed = {dep for name in members for dep in graph[name] if dep in members}
        if needed == members:
            return sorted(members)
        members = needed


def resolve(root: Path, targets: list[str] | None = None) -> Resolution:
    """Discover, load and order every package under *root*.

    Args:
        root: Directory scanned recursively for ``build.json`` files.
        targets: Optional package names; restricts the result to them
            and their transitive dependencies.

    Returns:
        Resolution with the build order and the loaded descriptors.
    """
    packages = load_packages(root)
    graph = dependency_graph(packages)

    external: dict[str, list[str]] = {}
    for name, descriptor in packages.items():
        missing = sorted(descriptor.depends - graph[name])
        if missing:
            external[name] = missing
            logger.warning(
                "Package '%s' depends on %s which is not built here; treating as external",
                name, ", ".join(missing),
            )

    if targets:
        wanted = required_closure(graph, targets)
        graph = {name: deps for name, deps in graph.items() if name in wanted}

    order = topological_order(graph)
    logger.info("Build order: %s", " → ".join(order) if order else "(empty)")

    return Resolution(
        order=order,
        packages={name: packages[name] for name in order},
        external={k: v for k, v in external.items() if k in graph},
    )
