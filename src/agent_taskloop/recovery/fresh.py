"""Fresh-session retry: a clean agent session each attempt."""

from __future__ import annotations

from agent_taskloop.config import ExecutorConfig

from .base import RecoveryStrategy


class FreshSession(RecoveryStrategy):
    """Start every retry in a new session, preserving only filesystem state.

    - New agent session, no conversation history
    - Working tree and git history left as the previous attempt left them
    - Only the failure message is carried forward
    """

    @property
    def strategy_name(self) -> str:
        return "fresh_session"

    def executor_config(self, base: ExecutorConfig, attempt: int, supports_resume: bool) -> ExecutorConfig:
        if attempt == 1:
            return base
        return base.model_copy(update={"continue_last_session": False, "session_id": None})

    def retry_context(
        self,
        attempt: int,
        max_attempts: int,
        executor: str,
        model: str | None,
        last_error: str,
    ) -> str:
        context = super().retry_context(attempt, max_attempts, executor, model, last_error)
        return (
            context
            + "\nThe workspace contains changes from the previous attempt. "
            "You may inspect the current state of files and git history.\n\n"
        )
