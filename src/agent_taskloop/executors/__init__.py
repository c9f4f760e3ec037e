"""External coding-agent executors."""

from agent_taskloop.config import VALID_EXECUTORS, ExecutorConfig, ExecutorTool
from agent_taskloop.errors import ConfigurationError

from .base import Executor
from .claude import ClaudeCodeExecutor
from .codex import CodexExecutor
from .gemini import GeminiExecutor
from .kilo import KiloExecutor
from .opencode import OpencodeExecutor


def create_executor(tool: str, config: ExecutorConfig | None = None) -> Executor:
    """Factory function to create an executor by tool name."""
    mapping: dict[str, type[Executor]] = {
        ExecutorTool.OPENCODE.value: OpencodeExecutor,
        ExecutorTool.CLAUDE.value: ClaudeCodeExecutor,
        ExecutorTool.GEMINI.value: GeminiExecutor,
        ExecutorTool.CODEX.value: CodexExecutor,
        ExecutorTool.KILO.value: KiloExecutor,
    }
    key = tool.value if isinstance(tool, ExecutorTool) else tool
    if key not in mapping:
        raise ConfigurationError(
            f"Unknown executor tool: {tool}. Must be one of: {', '.join(VALID_EXECUTORS)}"
        )
    return mapping[key](config)
