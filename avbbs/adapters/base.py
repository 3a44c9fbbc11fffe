"""
Adapter base — the contract between the executor and command runners.

The executor never spawns processes itself; it hands each
ExecutableCommand to an adapter and gets a Receipt back.  Adapters do
not raise for failing commands: failures are captured in the Receipt.
The one exception is ``KeyboardInterrupt``, which an adapter must let
propagate after stopping the in-flight process.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from avbbs.core.models.action import ExecutableCommand, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to run one command."""

    command: ExecutableCommand
    working_dir: str = "."

    @property
    def action_id(self) -> str:
        return self.command.id


class Adapter(ABC):
    """Abstract base class for command runners.

    To create a new adapter:
        1. Subclass Adapter
        2. Implement name, is_available, validate, execute
        3. Pass it to ``run_build(..., adapter=...)``
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the adapter can run commands on this host."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the command can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Run the command and return a receipt."""

    def run(self, context: ExecutionContext) -> Receipt:
        """Validate, then execute."""
        is_valid, error = self.validate(context)
        if not is_valid:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action_id,
                error=f"Validation failed: {error}",
            )
        return self.execute(context)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
