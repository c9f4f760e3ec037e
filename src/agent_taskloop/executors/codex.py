"""OpenAI Codex CLI executor."""

from __future__ import annotations

from agent_taskloop.config import ExecutorConfig

from .base import Executor


class CodexExecutor(Executor):
    """Codex selects resumption through the ``exec resume`` subcommand."""

    @property
    def name(self) -> str:
        return "codex"

    @property
    def binary(self) -> str:
        return "codex"

    def build_args(self, message: str, config: ExecutorConfig) -> list[str]:
        args: list[str] = []
        if config.model:
            args += ["-c", f'model="{config.model}"']
        if config.continue_last_session:
            args += ["exec", "resume", "--last"]
        elif config.session_id:
            args += ["exec", "resume", config.session_id]
        else:
            args.append("exec")
        args += ["--sandbox", "workspace-write"]
        args.append(message)
        return args
