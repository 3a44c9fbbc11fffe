"""
Workspace layout — where each package builds and installs.

    <dest>/
        install/                shared install root (every package)
        <name>/                 context dir (ledger + cached archive)
            state.json
            build/              extracted sources
                <context>/      work dir: cwd of every command
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from avbbs.core.engine.expander import substitute
from avbbs.core.models.package import PackageDescriptor

logger = logging.getLogger(__name__)

INSTALL_DIR = "install"
BUILD_DIR = "build"


@dataclass(frozen=True)
class PackagePaths:
    """Resolved directories for one package."""

    context_dir: Path
    build_dir: Path
    work_dir: Path
    install_dir: Path


def install_dir(dest: Path) -> Path:
    return Path(dest).resolve() / INSTALL_DIR


def package_paths(descriptor: PackageDescriptor, dest: Path) -> PackagePaths:
    """Compute (without creating) the directories of *descriptor*."""
    dest = Path(dest).resolve()
    context_dir = dest / descriptor.name
    build_dir = context_dir / BUILD_DIR
    context = substitute(descriptor.context, descriptor.substitution_fields())
    work_dir = (build_dir / context).resolve() if context else build_dir
    return PackagePaths(
        context_dir=context_dir,
        build_dir=build_dir,
        work_dir=work_dir,
        install_dir=dest / INSTALL_DIR,
    )


def empty_dir(path: Path) -> None:
    """Delete everything inside *path*, keeping the directory itself."""
    path = Path(path)
    if not path.is_dir():
        path.mkdir(parents=True, exist_ok=True)
        return
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()
    logger.debug("Emptied %s", path)
