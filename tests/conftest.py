"""
Shared test fixtures and configuration.
"""

import json
import os
from pathlib import Path
from typing import Any

import pytest


@pytest.fixture
def packages_root(tmp_path: Path) -> Path:
    """Return an empty packages root directory."""
    root = tmp_path / "packages"
    root.mkdir()
    return root


@pytest.fixture
def dest(tmp_path: Path) -> Path:
    """Return the build destination directory (not yet created)."""
    return tmp_path / "dest"


@pytest.fixture
def ambient() -> dict[str, str]:
    """A minimal, predictable ambient environment for spawned commands."""
    return {"PATH": os.environ.get("PATH", "/usr/bin:/bin")}


@pytest.fixture
def make_package(packages_root: Path):
    """Factory writing a build.json under the packages root.

    Usage::

        make_package("app", depends=["base"], commands={"build": ["make"]})
    """

    def _make(
        name: str,
        version: str = "1.0",
        depends: list[str] | None = None,
        commands: dict[str, list[Any]] | None = None,
        subdir: str | None = None,
        **extra: Any,
    ) -> Path:
        data: dict[str, Any] = {"name": name, "version": version, **extra}
        build: dict[str, Any] = {}
        if depends is not None:
            build["depends"] = depends
        if commands is not None:
            build["commands"] = commands
        if build:
            data["build"] = build

        directory = packages_root / (subdir or name)
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "build.json").write_text(json.dumps(data, indent=2))
        return directory

    return _make
