"""
Shell command adapter — spawn a command and stream its output.

The command is started directly (no intermediate shell: the expander
already did word splitting), stderr is merged into stdout, and each
line is handed to a sink as it arrives.  The call blocks until the
process exits; only then is the outcome known.

There is no timeout.  A ``KeyboardInterrupt`` while the process runs
terminates it (SIGTERM, then SIGKILL after a grace period) and is
re-raised.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import time
from collections import deque
from pathlib import Path
from typing import Callable

from avbbs.adapters.base import Adapter, ExecutionContext
from avbbs.core.models.action import Receipt

logger = logging.getLogger(__name__)

OutputSink = Callable[[str], None]

# Lines of output kept in the receipt for error reports
_TAIL_LINES = 40

# Seconds between SIGTERM and SIGKILL on interrupt
_TERMINATE_GRACE = 5.0


def _log_sink(line: str) -> None:
    logger.info("%s", line)


def terminate(proc: subprocess.Popen, grace: float = _TERMINATE_GRACE) -> None:
    """Stop a child process, escalating to SIGKILL if it lingers."""
    if proc.poll() is not None:
        return
    proc.terminate()
    try:
        proc.wait(timeout=grace)
    except subprocess.TimeoutExpired:
        logger.warning("Process %d ignored SIGTERM, killing", proc.pid)
        proc.kill()
        proc.wait()


class ShellCommandAdapter(Adapter):
    """Run ExecutableCommands as child processes.

    Args:
        sink: Receives every output line (without trailing newline).
            Defaults to logging at INFO.
    """

    def __init__(self, sink: OutputSink | None = None):
        self._sink = sink or _log_sink

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not context.command.program:
            return False, "Missing program"

        if not Path(context.working_dir).is_dir():
            return False, f"Working directory does not exist: {context.working_dir}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        command = context.command
        argv = command.argv
        logger.debug("Executing: %s (cwd=%s)", shlex.join(argv), context.working_dir)
        start = time.monotonic()

        try:
            proc = subprocess.Popen(
                argv,
                cwd=context.working_dir,
                env=command.env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=command.id,
                error=f"Cannot launch '{command.program}': {e}",
                metadata={"command": command.command},
            )

        tail: deque[str] = deque(maxlen=_TAIL_LINES)
        try:
            if proc.stdout:
                for line in proc.stdout:
                    line = line.rstrip("\n")
                    tail.append(line)
                    self._sink(line)
            proc.wait()
        except KeyboardInterrupt:
            logger.warning("Interrupted, stopping %s", command.program)
            terminate(proc)
            raise
        finally:
            if proc.stdout:
                proc.stdout.close()

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = "\n".join(tail)

        if proc.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=command.id,
                output=output,
                duration_ms=elapsed_ms,
                metadata={"command": command.command, "return_code": 0},
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=command.id,
            error=f"Command exited with code {proc.returncode}",
            output=output,
            duration_ms=elapsed_ms,
            metadata={"command": command.command, "return_code": proc.returncode},
        )
