"""
Mock adapter — test double that records commands instead of running them.

By default every command succeeds.  Individual commands (by id,
``<package>:<phase>:<index>``) can be configured to fail, and a hook
can observe the world at the moment each command would run.
"""

from __future__ import annotations

from typing import Callable

from avbbs.adapters.base import Adapter, ExecutionContext
from avbbs.core.models.action import Receipt


class MockAdapter(Adapter):
    """Records every execution context it receives."""

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
        on_execute: Callable[[ExecutionContext], None] | None = None,
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._on_execute = on_execute
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    @property
    def executed_ids(self) -> list[str]:
        """Command ids in execution order."""
        return [ctx.action_id for ctx in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, action_id: str, error: str = "Mock failure", return_code: int = 1) -> None:
        """Configure a specific command to fail."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            metadata={"return_code": return_code},
        )

    def clear_failures(self) -> None:
        self._responses.clear()

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)
        if self._on_execute:
            self._on_execute(context)

        if context.action_id in self._responses:
            return self._responses[context.action_id]

        return Receipt.success(
            adapter=self._name,
            action_id=context.action_id,
            output=self._default_output,
            metadata={"mock": True},
        )
