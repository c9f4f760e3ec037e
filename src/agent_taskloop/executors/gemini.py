"""Gemini CLI executor."""

from __future__ import annotations

from agent_taskloop.config import ExecutorConfig

from .base import Executor


class GeminiExecutor(Executor):

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def binary(self) -> str:
        return "gemini"

    def build_args(self, message: str, config: ExecutorConfig) -> list[str]:
        args: list[str] = []
        if config.model:
            args += ["-m", config.model]
        if config.continue_last_session:
            args += ["-r", "latest"]
        elif config.session_id:
            args += ["-r", config.session_id]
        args.append("--yolo")
        args.append(message)
        return args
