"""Kilo Code executor."""

from __future__ import annotations

from agent_taskloop.config import ExecutorConfig

from .base import Executor


class KiloExecutor(Executor):

    @property
    def name(self) -> str:
        return "kilo"

    @property
    def binary(self) -> str:
        return "kilocode"

    def build_args(self, message: str, config: ExecutorConfig) -> list[str]:
        args: list[str] = []
        if config.model:
            args += ["-mo", config.model]
        if config.continue_last_session:
            args.append("-c")
        elif config.session_id:
            args += ["-s", config.session_id]
        args += ["--auto", "--yolo"]
        args.append(message)
        return args
