"""Claude Code executor."""

from __future__ import annotations

from agent_taskloop.config import ExecutorConfig

from .base import Executor


class ClaudeCodeExecutor(Executor):

    @property
    def name(self) -> str:
        return "claude"

    @property
    def binary(self) -> str:
        return "claude"

    def build_args(self, message: str, config: ExecutorConfig) -> list[str]:
        args: list[str] = []
        if config.model:
            args += ["--model", config.model]
        if config.continue_last_session:
            args.append("-c")
        elif config.session_id:
            args += ["-r", config.session_id]
        # Auto-approve file edits so the agent never waits on a prompt
        args += ["--permission-mode", "acceptEdits"]
        args.append(message)
        return args
