"""Base class for external coding-agent executors."""

from __future__ import annotations

import logging
import shlex
import subprocess
from abc import ABC, abstractmethod

from agent_taskloop.config import ExecutorConfig
from agent_taskloop.errors import ExecutorError

logger = logging.getLogger(__name__)


class Executor(ABC):
    """Runs one autonomous coding-agent CLI as a foreground subprocess.

    Subclasses only translate an ExecutorConfig into their program's flags;
    launching, dry-run handling and exit-code checks live here.
    """

    def __init__(self, config: ExecutorConfig | None = None):
        self.config = config or ExecutorConfig()

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def binary(self) -> str:
        """Program looked up on PATH."""
        ...

    @abstractmethod
    def build_args(self, message: str, config: ExecutorConfig) -> list[str]:
        """Return CLI arguments; the message must be the last one."""
        ...

    def supports_session_resumption(self) -> bool:
        return True

    def command_line(self, message: str, config: ExecutorConfig | None = None) -> str:
        final = self.config.merged(config)
        return shlex.join([self.binary, *self.build_args(message, final)])

    def execute(self, message: str, dry: bool = False, config: ExecutorConfig | None = None) -> None:
        """Run the agent to completion.

        Raises ExecutorError if the binary cannot be launched or exits non-zero.
        """
        final = self.config.merged(config)
        args = self.build_args(message, final)

        if final.model:
            logger.info("Using model: %s", final.model)
        if final.continue_last_session:
            logger.info("Continuing last session")
        elif final.session_id:
            logger.info("Resuming session: %s", final.session_id)

        if dry:
            logger.info("DRY RUN - executor %s would run: %s", self.name, shlex.join([self.binary, *args]))
            return

        # stdio is inherited so the user sees the agent's live output
        try:
            result = subprocess.run([self.binary, *args])
        except FileNotFoundError as e:
            raise ExecutorError(f"Failed to launch {self.name}: '{self.binary}' not found on PATH") from e
        except OSError as e:
            raise ExecutorError(f"Failed to launch {self.name}: {e}") from e

        if result.returncode != 0:
            raise ExecutorError(
                f"{self.name} exited with code {result.returncode}",
                exit_code=result.returncode,
            )
        logger.info("%s execution completed successfully", self.name)
