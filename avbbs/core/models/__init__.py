"""
Domain models — Pydantic types for the build engine.

All models are re-exported here for convenient access:

    from avbbs.core.models import PackageDescriptor, CommandSpec, ExecutableCommand, Receipt
"""

from avbbs.core.models.action import ExecutableCommand, Receipt
from avbbs.core.models.package import (
    PACKAGE_CONFIG,
    PACKAGE_STATE,
    PHASES,
    CommandSpec,
    PackageDescriptor,
)

__all__ = [
    # package.py
    "PACKAGE_CONFIG",
    "PACKAGE_STATE",
    "PHASES",
    "CommandSpec",
    "PackageDescriptor",
    # action.py
    "ExecutableCommand",
    "Receipt",
]
