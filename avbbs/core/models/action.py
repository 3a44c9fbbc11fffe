"""
ExecutableCommand and Receipt models — the execution contract.

The expander produces ExecutableCommands; adapters run them and return
Receipts.  Adapters never raise for a failing command: the failure is
captured in the Receipt and the executor decides what it means.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ExecutableCommand(BaseModel):
    """A fully substituted, tokenized command ready to spawn."""

    model_config = ConfigDict(frozen=True)

    id: str                         # "<package>:<phase>:<index>"
    package: str
    phase: str
    command: str                    # raw command line, before substitution
    program: str
    args: tuple[str, ...] = ()
    env: dict[str, str] = Field(default_factory=dict)
    adapter: str = "shell"

    @property
    def argv(self) -> list[str]:
        """Program followed by its arguments."""
        return [self.program, *self.args]


class Receipt(BaseModel):
    """Result of running one command through an adapter."""

    adapter: str
    action_id: str
    status: Literal["ok", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the command succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the command failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            **kwargs,
        )
