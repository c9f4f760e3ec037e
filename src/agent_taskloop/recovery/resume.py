"""Resume the agent's previous session so it sees its own failed attempt."""

from __future__ import annotations

from agent_taskloop.config import ExecutorConfig

from .base import RecoveryStrategy


class ResumeSession(RecoveryStrategy):
    """Default strategy: retries continue the last executor session.

    Executors without session support silently get a fresh session.
    """

    @property
    def strategy_name(self) -> str:
        return "resume_session"

    def executor_config(self, base: ExecutorConfig, attempt: int, supports_resume: bool) -> ExecutorConfig:
        resume = attempt > 1 and supports_resume
        return base.model_copy(update={"continue_last_session": resume or base.continue_last_session})
