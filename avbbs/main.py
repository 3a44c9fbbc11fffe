"""
avbbs — CLI entrypoint.

Usage:
    avbbs --help
    avbbs build ./packages --dest /tmp/avbbs
    avbbs order ./packages
    avbbs status ./packages
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from avbbs import __version__
from avbbs.core.errors import BuildCancelled, BuildError
from avbbs.core.observability.logging_config import (
    FILE_ENV,
    FILE_LEVEL_ENV,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="avbbs")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to avbbs.yml (default: <root>/avbbs.yml if present).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """avbbs — build a tree of source packages in dependency order."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(FILE_ENV),
        log_file_level=os.environ.get(FILE_LEVEL_ENV),
    )


# ── Helpers ─────────────────────────────────────────────────────────


def _fail(error: BuildError, as_json: bool) -> None:
    """Report a build error with its structured detail and exit."""
    if as_json:
        click.echo(json.dumps(error.to_dict(), indent=2))
    else:
        click.secho(f"❌ {error}", fg="red", err=True)
        detail = error.to_dict()
        for issue in detail.get("issues", []):
            where = issue.get("path") or "(descriptor)"
            click.secho(f"   {where}: {issue.get('message')}", fg="red", err=True)
        if detail.get("detail"):
            for line in str(detail["detail"]).splitlines():
                click.echo(f"   {line}", err=True)
    sys.exit(130 if isinstance(error, BuildCancelled) else 1)


def _load_settings(ctx: click.Context, root: Path, **overrides):
    from avbbs.core.config.loader import find_settings_file, load_settings

    path = ctx.obj.get("config_path") or find_settings_file(root)
    return load_settings(path, **overrides)


# ── Commands ────────────────────────────────────────────────────────


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("targets", nargs=-1)
@click.option("--arch", default=None, help="Target architecture (default: host).")
@click.option("--platform", "platform_", default=None, help="Target platform (default: pc).")
@click.option(
    "--dest",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Destination workspace (default: /tmp/avbbs).",
)
@click.option("--clean", is_flag=True, help="Always build freshly (forget completed phases).")
@click.option("--clean-all", is_flag=True, help="Delete every file in the destination first.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output report as JSON.")
@click.pass_context
def build(
    ctx: click.Context,
    root: Path,
    targets: tuple[str, ...],
    arch: str | None,
    platform_: str | None,
    dest: Path | None,
    clean: bool,
    clean_all: bool,
    as_json: bool,
) -> None:
    """Build every package under ROOT (or only TARGETS and their dependencies)."""
    from avbbs.adapters.shell.command import ShellCommandAdapter
    from avbbs.core.engine.executor import BuildOptions, run_build

    def sink(line: str) -> None:
        # Keep stdout clean for the JSON report
        click.echo(line, err=as_json)

    try:
        settings = _load_settings(ctx, root, arch=arch, platform=platform_, dest=dest)
        options = BuildOptions(
            dest=settings.dest,
            arch=settings.arch,
            platform=settings.platform,
            clean=clean,
            clean_all=clean_all,
            variables=settings.variables,
            targets=list(targets),
        )
        report = run_build(root, options, adapter=ShellCommandAdapter(sink=sink))
    except BuildError as e:
        _fail(e, as_json)
        return

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    if ctx.obj.get("quiet"):
        return

    click.echo()
    for pkg in report.packages:
        ran = len(pkg.executed)
        skipped = len(pkg.skipped)
        marker = "✓" if ran else "⊘"
        click.secho(f"{marker} {pkg.name}-{pkg.version}", fg="green" if ran else "white", nl=False)
        click.echo(f"  ran {ran} phase(s), skipped {skipped} ({pkg.duration_ms}ms)")
    click.secho(f"\nBuilt {len(report.packages)} package(s)", fg="green", bold=True)


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def order(root: Path, as_json: bool) -> None:
    """Show the order packages under ROOT would be built in."""
    from avbbs.core.package.resolver import resolve

    try:
        resolution = resolve(root)
    except BuildError as e:
        _fail(e, as_json)
        return

    if as_json:
        click.echo(json.dumps({
            "order": resolution.order,
            "external": resolution.external,
        }, indent=2))
        return

    for index, descriptor in enumerate(resolution, start=1):
        deps = ", ".join(sorted(descriptor.depends))
        suffix = f"  ← {deps}" if deps else ""
        click.echo(f"{index:3d}. {descriptor.name}-{descriptor.version}{suffix}")


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--dest",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Destination workspace (default: /tmp/avbbs).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, root: Path, dest: Path | None, as_json: bool) -> None:
    """Show which phases each package under ROOT has completed."""
    from avbbs.core.use_cases.status import get_status

    try:
        settings = _load_settings(ctx, root, dest=dest)
        packages = get_status(root, settings.dest)
    except BuildError as e:
        _fail(e, as_json)
        return

    if as_json:
        click.echo(json.dumps([p.to_dict() for p in packages], indent=2))
        return

    colors = {"complete": "green", "partial": "yellow", "new": "white"}
    for pkg in packages:
        click.secho(f"{pkg.name}-{pkg.version}: {pkg.state}", fg=colors[pkg.state])
        if pkg.completed:
            click.echo(f"   done:    {', '.join(pkg.completed)}")
        if pkg.pending:
            click.echo(f"   pending: {', '.join(pkg.pending)}")


def main() -> None:
    """Console-script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
