"""
Settings loader — reads avbbs.yml into BuildSettings.

The settings file is optional.  It is looked up at an explicit path
(``--config``) or in the packages root, parsed as YAML and validated
against a Pydantic schema.  Command-line values override file values;
anything left unset falls back to the defaults below.

    arch: x86_64            # AVBBS_ARCH (default: host architecture)
    platform: pc            # AVBBS_PLATFORM
    dest: /tmp/avbbs        # build/install workspace
    variables:              # extra variables for every command
      MAKEFLAGS: -j4
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from avbbs.core.errors import ConfigError

logger = logging.getLogger(__name__)

# Default settings filename (inside the packages root)
SETTINGS_FILE = "avbbs.yml"

# platform.machine() spellings → toolchain arch names
_ARCH_MAP = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "x86": "i386",
    "i686": "i386",
    "arm64": "aarch64",
}


def host_arch() -> str:
    """The host architecture, normalized (x86_64, i386, aarch64, ...)."""
    machine = platform.machine().lower()
    return _ARCH_MAP.get(machine, machine) or "unknown"


class BuildSettings(BaseModel):
    """Validated run settings."""

    arch: str = Field(default_factory=host_arch, pattern=r"^\w+$")
    platform: str = Field(default="pc", pattern=r"^[\w-]+$")
    dest: Path = Path("/tmp/avbbs")
    variables: dict[str, str] = Field(default_factory=dict)

    @field_validator("variables", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        """YAML scalars (numbers, booleans) become strings."""
        if isinstance(value, dict):
            return {str(k): _scalar(v) for k, v in value.items()}
        return value


def _scalar(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def find_settings_file(root: Path) -> Path | None:
    """Return ``<root>/avbbs.yml`` if it exists."""
    candidate = Path(root) / SETTINGS_FILE
    return candidate if candidate.is_file() else None


def read_settings_file(path: Path) -> dict[str, Any]:
    """Parse a settings file into a mapping.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_settings(path: Path | None = None, **overrides: Any) -> BuildSettings:
    """Load settings from *path* (optional) with overrides applied.

    Args:
        path: Settings file, or None for defaults only.
        **overrides: Values that win over the file (None values are
            ignored, so unset CLI options fall through).

    Returns:
        Validated BuildSettings.

    Raises:
        ConfigError: If the file or the merged values are invalid.
    """
    data = read_settings_file(path) if path is not None else {}
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        settings = BuildSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    logger.debug(
        "Settings: arch=%s platform=%s dest=%s (%d variables)",
        settings.arch, settings.platform, settings.dest, len(settings.variables),
    )
    return settings
