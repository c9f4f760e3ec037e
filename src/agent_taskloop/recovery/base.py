"""Base recovery strategy classes."""

from __future__ import annotations

from abc import ABC, abstractmethod

from agent_taskloop.config import ExecutorConfig

RETRY_CHECKLIST = """Please analyze the error carefully and fix it. The error might be due to:
- Syntax errors
- Logic errors
- Missing dependencies or imports
- Incorrect configuration
- Build or test failures

Please fix the error above and complete the task successfully.
"""


class RecoveryStrategy(ABC):
    """Decides how a failed attempt is carried into the next one."""

    @property
    @abstractmethod
    def strategy_name(self) -> str:
        ...

    @abstractmethod
    def executor_config(self, base: ExecutorConfig, attempt: int, supports_resume: bool) -> ExecutorConfig:
        """Executor settings for ``attempt`` (1-indexed)."""
        ...

    def retry_context(
        self,
        attempt: int,
        max_attempts: int,
        executor: str,
        model: str | None,
        last_error: str,
    ) -> str:
        """Text prepended to the next attempt's message."""
        parts = [f"# RETRY ATTEMPT {attempt}/{max_attempts}\n\n"]
        if model:
            parts.append(
                f"**Note**: You are {executor} using the {model} model. "
                "This is a more capable model than the previous attempt.\n\n"
            )
        parts.append(f"## Previous Attempt Failed With Error:\n\n{last_error}\n\n")
        parts.append(RETRY_CHECKLIST)
        return "".join(parts)
