"""Tests for configuration loading and data models."""

import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from agent_taskloop.config import (
    ExecutorConfig,
    ModelAttemptConfig,
    ProjectConfig,
    RecoveryStrategyType,
    TaskExecutionConfig,
    load_config,
    parse_executor_model_string,
    parse_try_models,
    validate_executor,
)
from agent_taskloop.errors import ConfigurationError


def test_task_execution_config_defaults():
    config = TaskExecutionConfig()
    assert config.tool == "opencode"
    assert config.enable_retry is False
    assert config.max_retries == 3
    assert config.recovery_strategy == RecoveryStrategyType.RESUME_SESSION
    assert config.execute_subtasks is True
    assert config.max_attempts == 1


def test_max_attempts_counts_retries_plus_first_attempt():
    assert TaskExecutionConfig(enable_retry=True, max_retries=2).max_attempts == 3
    assert TaskExecutionConfig(enable_retry=True, max_retries=0).max_attempts == 1
    assert TaskExecutionConfig(enable_retry=False, max_retries=5).max_attempts == 1


def test_negative_max_retries_rejected():
    with pytest.raises(ValidationError):
        TaskExecutionConfig(max_retries=-1)


def test_executor_config_merge_override_wins_per_field():
    base = ExecutorConfig(model="base-model", session_id="abc")
    merged = base.merged(ExecutorConfig(continue_last_session=True))
    assert merged.model == "base-model"
    assert merged.session_id == "abc"
    assert merged.continue_last_session is True

    merged = base.merged(ExecutorConfig(model="other"))
    assert merged.model == "other"
    assert merged.session_id == "abc"


def test_executor_config_is_frozen():
    config = ExecutorConfig(model="m")
    with pytest.raises(ValidationError):
        config.model = "x"


def test_validate_executor():
    for name in ["opencode", "claude", "gemini", "codex", "kilo"]:
        assert validate_executor(name)
    assert not validate_executor("cursor")
    assert not validate_executor(None)


def test_parse_executor_model_string():
    assert parse_executor_model_string("claude:sonnet") == ("claude", "sonnet")
    assert parse_executor_model_string("gpt-4o") == (None, "gpt-4o")
    # Unknown prefix is part of the model name
    assert parse_executor_model_string("openrouter:meta/llama") == (None, "openrouter:meta/llama")
    assert parse_executor_model_string("opencode:openrouter:free") == ("opencode", "openrouter:free")


def test_parse_try_models():
    ladder = parse_try_models("gpt-4o-mini, claude:sonnet ,")
    assert ladder == [
        ModelAttemptConfig(model="gpt-4o-mini"),
        ModelAttemptConfig(executor="claude", model="sonnet"),
    ]


def test_parse_try_models_rejects_unknown_executor():
    with pytest.raises(ConfigurationError, match="Invalid executor"):
        parse_try_models("cursor:gpt-5")


def test_load_config_from_yaml():
    data = {
        "ai": {"provider": "openai", "model": "gpt-4o"},
        "execution": {
            "tool": "claude",
            "verification_commands": ["npm run lint", "npm test"],
            "enable_retry": True,
            "max_retries": 2,
            "try_models": [{"model": "small"}, {"executor": "codex", "model": "big"}],
            "recovery_strategy": "fresh_session",
        },
        "notify_targets": ["https://example.com/hook"],
        "benchmark": {"models": [{"provider": "anthropic", "model": "claude-sonnet-4-6"}]},
    }
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(data, f)
        tmp_path = f.name

    config = load_config(tmp_path)
    assert config.ai.provider == "openai"
    assert config.execution.tool == "claude"
    assert config.execution.max_attempts == 3
    assert config.execution.try_models[1].executor == "codex"
    assert config.execution.recovery_strategy == RecoveryStrategyType.FRESH_SESSION
    assert config.benchmark.models[0].model_id == "anthropic:claude-sonnet-4-6"
    assert config.benchmark_dir == Path(".task-o-matic") / "benchmarks"

    Path(tmp_path).unlink()


def test_load_empty_config_uses_defaults():
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        tmp_path = f.name

    config = load_config(tmp_path)
    assert config == ProjectConfig()

    Path(tmp_path).unlink()
