"""
Phase ledger persistence — atomic read/append/clear of state.json.

Each package owns one ledger in its context directory
(``<dest>/<name>/state.json``): a JSON array of the phases completed
since the last clean, in completion order.  Writes are atomic (write to
temp file, then rename) so a crash mid-write never leaves a partial
ledger behind.

All ledger I/O goes through this module.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from avbbs.core.models.package import PACKAGE_STATE

logger = logging.getLogger(__name__)


def ledger_path(context_dir: Path) -> Path:
    """Get the ledger file path for a package context directory."""
    return Path(context_dir) / PACKAGE_STATE


def read_ledger(context_dir: Path) -> list[str]:
    """Load the completed phases for a package.

    Args:
        context_dir: The package's context (working) directory.

    Returns:
        Phase names in completion order.  Empty if there is no ledger,
        or if the ledger is corrupt (everything is rebuilt).
    """
    path = ledger_path(context_dir)
    if not path.is_file():
        return []

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Corrupt ledger %s: %s — starting fresh", path, e)
        return []

    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        logger.warning("Ledger %s is not a list of phase names — starting fresh", path)
        return []

    return data


def _write_ledger(path: Path, phases: list[str]) -> None:
    """Write the ledger atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(phases) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".state_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save ledger to %s", path)
        raise


def append_ledger(context_dir: Path, phase: str) -> list[str]:
    """Record *phase* as completed and persist the ledger.

    Returns:
        The updated phase list.
    """
    path = ledger_path(context_dir)
    phases = [*read_ledger(context_dir), phase]
    _write_ledger(path, phases)
    logger.debug("Ledger %s: %s", path, phases)
    return phases


def clear_ledger(context_dir: Path) -> list[str]:
    """Forget every completed phase (forced clean rebuild).

    Returns:
        An empty phase list.
    """
    path = ledger_path(context_dir)
    path.unlink(missing_ok=True)
    logger.debug("Cleared ledger %s", path)
    return []
