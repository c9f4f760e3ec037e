"""Shell command execution used by verification, review and git helpers."""

from __future__ import annotations

import subprocess
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class CommandOutput:
    stdout: str
    stderr: str


class CommandError(RuntimeError):
    """Raised when a shell command exits non-zero.

    Carries the captured stdout/stderr so callers can surface them.
    """

    def __init__(self, message: str, stdout: str = "", stderr: str = "", returncode: int | None = None):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode


ExecFn = Callable[[str], CommandOutput]


def run_shell(
    command: str,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout: int | None = None,
) -> CommandOutput:
    """Run a command through bash and return its output.

    Raises CommandError on non-zero exit or timeout.
    """
    try:
        result = subprocess.run(
            ["bash", "-c", command],
            cwd=cwd,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandError(
            f"Command timed out after {timeout}s: {command}",
            stdout=_as_text(e.stdout),
            stderr=_as_text(e.stderr),
        ) from e

    if result.returncode != 0:
        raise CommandError(
            f"Command failed with exit code {result.returncode}: {command}",
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )
    return CommandOutput(stdout=result.stdout or "", stderr=result.stderr or "")


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
