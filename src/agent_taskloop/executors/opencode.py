"""opencode executor."""

from __future__ import annotations

from agent_taskloop.config import ExecutorConfig

from .base import Executor


class OpencodeExecutor(Executor):

    @property
    def name(self) -> str:
        return "opencode"

    @property
    def binary(self) -> str:
        return "opencode"

    def build_args(self, message: str, config: ExecutorConfig) -> list[str]:
        args: list[str] = []
        if config.model:
            args += ["-m", config.model]
        if config.continue_last_session:
            args.append("-c")
        elif config.session_id:
            args += ["-s", config.session_id]
        # `run` is the non-interactive mode
        args += ["run", message]
        return args
