"""Adapters — runners that execute expanded commands.

Public re-exports for convenient access.
"""

from avbbs.adapters.base import Adapter, ExecutionContext
from avbbs.adapters.mock import MockAdapter
from avbbs.adapters.shell.command import ShellCommandAdapter

__all__ = [
    "Adapter",
    "ExecutionContext",
    "MockAdapter",
    "ShellCommandAdapter",
]
