"""
Engine executor — the central build loop.

Takes a packages root, resolves the build order, and for each package
runs every phase of ``PHASES`` in order through an adapter, consulting
and updating the package's phase ledger.

Flow:
    resolve → for each package: ensure dirs → stage source
            → for each phase: ledgered? skip : expand → run → ledger

Per (package, phase):
    PENDING → SKIPPED                        phase already in the ledger
    PENDING → RUNNING → COMPLETED            ledger append, next phase
                      → FAILED               abort the package and the run

Everything is strictly sequential.  A failure leaves earlier ledger
entries on disk, so a corrected re-run resumes at the failed phase.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from avbbs.adapters.base import Adapter, ExecutionContext
from avbbs.adapters.shell.command import ShellCommandAdapter
from avbbs.core.engine.expander import compose_bindings, expand
from avbbs.core.errors import BuildCancelled, CommandFailure, ConfigError
from avbbs.core.models.action import Receipt
from avbbs.core.models.package import PHASES, PackageDescriptor
from avbbs.core.package.resolver import Resolution, resolve
from avbbs.core.persistence.state_file import append_ledger, clear_ledger, read_ledger
from avbbs.core.services.staging import SourceStager
from avbbs.core.services.workspace import PackagePaths, empty_dir, install_dir, package_paths

logger = logging.getLogger(__name__)

DEFAULT_DEST = Path("/tmp/avbbs")
DEFAULT_PLATFORM = "pc"

# Pseudo-phase reported when a run is cancelled while sources are staged
STAGING = "staging"


@dataclass
class BuildOptions:
    """Caller-supplied settings for one run."""

    dest: Path = DEFAULT_DEST
    arch: str = ""
    platform: str = DEFAULT_PLATFORM
    clean: bool = False             # clear ledgers and build dirs per package
    clean_all: bool = False         # wipe the whole destination first
    variables: dict[str, str] = field(default_factory=dict)
    targets: list[str] = field(default_factory=list)

    def global_bindings(self) -> dict[str, str]:
        """Variables every command of every package can reference."""
        return {
            **self.variables,
            "AVBBS_ARCH": self.arch,
            "AVBBS_PLATFORM": self.platform,
        }


@dataclass
class PhaseResult:
    """Outcome of one phase of one package."""

    phase: str
    status: str = "ok"              # ok, skipped, empty
    duration_ms: int = 0
    receipts: list[Receipt] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "status": self.status,
            "duration_ms": self.duration_ms,
            "commands": len(self.receipts),
        }


@dataclass
class PackageReport:
    """Everything that happened to one package."""

    name: str
    version: str = ""
    phases: list[PhaseResult] = field(default_factory=list)

    @property
    def executed(self) -> list[str]:
        return [p.phase for p in self.phases if p.status == "ok"]

    @property
    def skipped(self) -> list[str]:
        return [p.phase for p in self.phases if p.status == "skipped"]

    @property
    def duration_ms(self) -> int:
        return sum(p.duration_ms for p in self.phases)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "executed": self.executed,
            "skipped": self.skipped,
            "duration_ms": self.duration_ms,
            "phases": [p.to_dict() for p in self.phases],
        }


@dataclass
class BuildReport:
    """Result of a complete run."""

    order: list[str] = field(default_factory=list)
    packages: list[PackageReport] = field(default_factory=list)
    external: dict[str, list[str]] = field(default_factory=dict)

    @property
    def commands_run(self) -> int:
        return sum(len(p.receipts) for pkg in self.packages for p in pkg.phases)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "order": self.order,
            "external": self.external,
            "commands_run": self.commands_run,
            "packages": [p.to_dict() for p in self.packages],
        }


# ── Variables ───────────────────────────────────────────────────────


def derived_bindings(paths: PackagePaths, archive: Path | None = None) -> dict[str, str]:
    """Per-package path variables."""
    return {
        "AVBBS_CONTEXT_DIR": str(paths.context_dir),
        "AVBBS_BUILD_DIR": str(paths.work_dir),
        "AVBBS_INSTALL_DIR": str(paths.install_dir),
        "AVBBS_SOURCE": str(archive) if archive else "",
    }


# ── Phase / package execution ───────────────────────────────────────


def run_phase(
    descriptor: PackageDescriptor,
    phase: str,
    bindings: Mapping[str, str],
    paths: PackagePaths,
    adapter: Adapter,
) -> PhaseResult:
    """Run every command of one phase, in declaration order.

    Raises:
        CommandFailure: On the first command that fails.
        BuildCancelled: If interrupted while a command runs.
    """
    commands = expand(descriptor, phase, bindings)
    result = PhaseResult(phase=phase)
    if not commands:
        result.status = "empty"
        return result

    label = f">>> [{phase}] {descriptor.name}"
    started = time.monotonic()
    try:
        for command in commands:
            logger.debug("%s: %s", label, command.command)
            context = ExecutionContext(command=command, working_dir=str(paths.work_dir))
            try:
                receipt = adapter.run(context)
            except KeyboardInterrupt as e:
                raise BuildCancelled(descriptor.name, phase) from e

            result.receipts.append(receipt)
            if not receipt.ok:
                detail = receipt.error or ""
                if receipt.output:
                    detail = f"{detail}\n{receipt.output}" if detail else receipt.output
                raise CommandFailure(
                    descriptor.name,
                    phase,
                    command.command,
                    detail=detail,
                    return_code=receipt.metadata.get("return_code"),
                )
    finally:
        result.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info("%s: finished after %dms", label, result.duration_ms)

    return result


def build_package(
    descriptor: PackageDescriptor,
    options: BuildOptions,
    adapter: Adapter,
    stager: SourceStager,
    ambient: Mapping[str, str] | None = None,
) -> PackageReport:
    """Run the phase state machine for one package.

    Returns:
        The package report.  Failures propagate as exceptions; phases
        completed before the failure remain in the ledger.
    """
    paths = package_paths(descriptor, options.dest)
    paths.build_dir.mkdir(parents=True, exist_ok=True)

    if options.clean:
        logger.info("--- %s: clean build requested", descriptor.name)
        clear_ledger(paths.context_dir)
        empty_dir(paths.build_dir)

    completed = read_ledger(paths.context_dir)

    logger.info("--- Package %s-%s", descriptor.name, descriptor.version)
    logger.debug(">>> Context directory %s", paths.context_dir)
    logger.debug(">>> Build directory %s", paths.work_dir)
    logger.debug(">>> Install directory %s", paths.install_dir)

    try:
        archive = stager.prepare(descriptor, paths.context_dir, paths.build_dir)
    except KeyboardInterrupt as e:
        raise BuildCancelled(descriptor.name, STAGING) from e

    bindings = compose_bindings(
        derived_bindings(paths, archive),
        options.global_bindings(),
        ambient,
    )

    report = PackageReport(name=descriptor.name, version=descriptor.version)
    for phase in PHASES:
        if phase in completed:
            logger.info(">>> [%s] %s: skipping, previously finished", phase, descriptor.name)
            report.phases.append(PhaseResult(phase=phase, status="skipped"))
            continue

        result = run_phase(descriptor, phase, bindings, paths, adapter)
        if result.status == "ok":
            append_ledger(paths.context_dir, phase)
        report.phases.append(result)

    return report


# ── Whole run ───────────────────────────────────────────────────────


def _check_destination(dest: Path, root: Path) -> None:
    """Refuse to wipe a destination that would take the packages with it."""
    if dest == Path(dest.anchor) or dest == root or dest in root.parents:
        raise ConfigError(f"Refusing to clean destination {dest}: it contains {root}")


def run_build(
    root: Path,
    options: BuildOptions,
    adapter: Adapter | None = None,
    stager: SourceStager | None = None,
    ambient: Mapping[str, str] | None = None,
    resolution: Resolution | None = None,
) -> BuildReport:
    """Build every package under *root* in dependency order.

    Args:
        root: Packages root, scanned recursively for ``build.json``.
        options: Destination, globals and clean flags.
        adapter: Command runner (default: ShellCommandAdapter).
        stager: Source stager (default: SourceStager).
        ambient: Ambient environment (default: ``os.environ``).
        resolution: Pre-computed resolution (skips discovery).

    Returns:
        BuildReport for the whole run.

    Raises:
        BuildError: Resolution errors before anything is built; command,
            staging or cancellation errors from the failing package.
    """
    root = Path(root).resolve()
    dest = Path(options.dest).resolve()

    if resolution is None:
        resolution = resolve(root, options.targets or None)

    if options.clean_all:
        _check_destination(dest, root)
        logger.warning("Wiping destination %s", dest)
        empty_dir(dest)

    install_dir(dest).mkdir(parents=True, exist_ok=True)

    adapter = adapter or ShellCommandAdapter()
    stager = stager or SourceStager()

    report = BuildReport(order=list(resolution.order), external=dict(resolution.external))
    for descriptor in resolution:
        report.packages.append(build_package(descriptor, options, adapter, stager, ambient))

    logger.info("Built %d package(s), %d command(s) run", len(report.packages), report.commands_run)
    return report
