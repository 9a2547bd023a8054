"""
Subprocess execution with timeouts and captured output.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
MAX_BUFFER = 10 * 1024 * 1024


@dataclass(frozen=True)
class CommandOutput:
    """Output of a command that exited cleanly."""

    output: str
    stderr: str = ""

    ok = True


@dataclass(frozen=True)
class CommandFailure:
    """A command that failed, timed out, overflowed, or could not start."""

    reason: str
    stdout: str = ""
    stderr: str = ""
    returncode: Optional[int] = None

    ok = False

    @property
    def partial_output(self) -> str:
        """Whatever the command managed to print before failing."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


CommandResult = Union[CommandOutput, CommandFailure]


def _decode(value: Union[str, bytes, None]) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class ProcessRunner:
    """Run external commands and turn every failure into a ``CommandFailure``."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, max_buffer: int = MAX_BUFFER) -> None:
        self.timeout = timeout
        self.max_buffer = max_buffer

    def run(
        self,
        command: Union[str, Sequence[str]],
        timeout: Optional[float] = None,
        cwd: Optional[Path] = None,
    ) -> CommandResult:
        args = shlex.split(command) if isinstance(command, str) else list(command)
        timeout = self.timeout if timeout is None else timeout
        logger.debug("Running: %s", " ".join(args))

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
                cwd=str(cwd) if cwd else None,
            )
        except subprocess.TimeoutExpired as e:
            logger.debug("Command timed out after %ss: %s", timeout, args[0])
            return CommandFailure(
                reason=f"timed out after {timeout}s",
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr),
            )
        except OSError as e:
            logger.debug("Command could not start: %s", e)
            return CommandFailure(reason=f"could not run {args[0]}: {e}")

        stdout = result.stdout or ""
        stderr = result.stderr or ""
        # The cap applies after the command exits; output is still read in full.
        if len(stdout) + len(stderr) > self.max_buffer:
            return CommandFailure(
                reason="output exceeded buffer limit",
                stdout=stdout[: self.max_buffer],
                stderr=stderr[: max(0, self.max_buffer - len(stdout))],
                returncode=result.returncode,
            )
        if result.returncode != 0:
            logger.debug("Command exited with %s: %s", result.returncode, args[0])
            return CommandFailure(
                reason=f"exited with status {result.returncode}",
                stdout=stdout,
                stderr=stderr,
                returncode=result.returncode,
            )
        return CommandOutput(output=stdout.strip(), stderr=stderr)
