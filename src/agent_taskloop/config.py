"""Configuration data models for task execution, loops and benchmarks."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from agent_taskloop.errors import ConfigurationError


class ExecutorTool(str, Enum):
    OPENCODE = "opencode"
    CLAUDE = "claude"
    GEMINI = "gemini"
    CODEX = "codex"
    KILO = "kilo"


VALID_EXECUTORS: list[str] = [t.value for t in ExecutorTool]


class AIProvider(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"
    OPENROUTER = "openrouter"
    VLLM = "vllm"
    LOCAL = "local"


class RecoveryStrategyType(str, Enum):
    RESUME_SESSION = "resume_session"
    FRESH_SESSION = "fresh_session"


class LLMConfig(BaseModel):
    """Provider settings for direct model calls (review verdicts, commit messages)."""
    provider: str = AIProvider.ANTHROPIC.value
    model: str = "claude-sonnet-4-6"
    max_tokens: int = 8192
    temperature: float = 0.0
    base_url: str | None = None
    api_key: str | None = None


class AIConfigOverride(BaseModel):
    provider: str | None = None
    model: str | None = None


class ExecutorConfig(BaseModel):
    """Per-invocation settings handed to an external executor."""
    model_config = ConfigDict(frozen=True)

    model: str | None = None
    continue_last_session: bool = False
    session_id: str | None = None

    def merged(self, override: ExecutorConfig | None) -> ExecutorConfig:
        """Return a copy where every field explicitly set on ``override`` wins."""
        if override is None:
            return self
        return self.model_copy(update=override.model_dump(exclude_unset=True))


class ModelAttemptConfig(BaseModel):
    """One rung of the escalation ladder."""
    executor: str | None = None
    model: str | None = None


class TaskExecutionConfig(BaseModel):
    """Everything the harness needs to drive one task."""
    tool: str = ExecutorTool.OPENCODE.value
    executor_config: ExecutorConfig = Field(default_factory=ExecutorConfig)
    custom_message: str | None = None
    verification_commands: list[str] = Field(default_factory=list)
    enable_retry: bool = False
    max_retries: int = 3
    try_models: list[ModelAttemptConfig] = Field(default_factory=list)
    recovery_strategy: RecoveryStrategyType = RecoveryStrategyType.RESUME_SESSION
    enable_plan_phase: bool = False
    plan_tool: str | None = None
    plan_model: str | None = None
    review_plan: bool = False
    enable_review_phase: bool = False
    review_tool: str | None = None
    review_model: str | None = None
    auto_commit: bool = False
    execute_subtasks: bool = True
    include_completed: bool = False
    include_prd: bool = False
    dry: bool = False

    @field_validator("max_retries")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_retries must be >= 0")
        return value

    @property
    def max_attempts(self) -> int:
        """Total attempts: the first one plus ``max_retries`` retries when enabled."""
        if self.enable_retry:
            return self.max_retries + 1
        return 1


class LoopOptions(BaseModel):
    """Task selection and shared execution settings for a task loop."""
    task_ids: list[str] = Field(default_factory=list)
    status: str | None = None
    tag: str | None = None
    include_completed: bool = False
    notify_targets: list[str] = Field(default_factory=list)
    execution: TaskExecutionConfig = Field(default_factory=TaskExecutionConfig)


class BenchmarkModelConfig(BaseModel):
    provider: str
    model: str
    executor: str | None = None

    @property
    def model_id(self) -> str:
        return f"{self.provider}:{self.model}"


class BenchmarkSettings(BaseModel):
    models: list[BenchmarkModelConfig] = Field(default_factory=list)
    keep_branches: bool = True


class ProjectConfig(BaseModel):
    """Top-level configuration file contents."""
    ai: LLMConfig = Field(default_factory=LLMConfig)
    execution: TaskExecutionConfig = Field(default_factory=TaskExecutionConfig)
    notify_targets: list[str] = Field(default_factory=list)
    benchmark: BenchmarkSettings = Field(default_factory=BenchmarkSettings)
    state_dir: str = ".task-o-matic"
    log_dir: str | None = None

    @property
    def benchmark_dir(self) -> Path:
        return Path(self.state_dir) / "benchmarks"


def load_config(path: str | Path) -> ProjectConfig:
    """Load project config from YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return ProjectConfig(**data)


def validate_executor(name: str | None) -> bool:
    return name in VALID_EXECUTORS


def parse_executor_model_string(value: str) -> tuple[str | None, str]:
    """Split ``"executor:model"`` into its parts.

    Only a known executor prefix is split off, so model names that contain
    colons themselves (``"openrouter:meta/llama:free"``) stay intact.
    """
    head, sep, rest = value.partition(":")
    if sep and validate_executor(head):
        return head, rest
    return None, value


def parse_try_models(value: str) -> list[ModelAttemptConfig]:
    """Parse a comma separated ladder such as ``"gpt-4o-mini,claude:sonnet"``."""
    ladder = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        if ":" in item:
            executor, _, model = item.partition(":")
            if not validate_executor(executor):
                raise ConfigurationError(
                    f'Invalid executor "{executor}" in try-models. '
                    f"Must be one of: {', '.join(VALID_EXECUTORS)}"
                )
            ladder.append(ModelAttemptConfig(executor=executor, model=model.strip()))
        else:
            ladder.append(ModelAttemptConfig(model=item))
    return ladder
