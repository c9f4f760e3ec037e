"""Branch-isolated benchmark runner.

Each competing model runs on its own branch cut from the current branch,
with the shared AI config swapped to that model for the duration of the run.
The working tree is a single shared resource, so models run one at a time.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from agent_taskloop.config import (
    AIConfigOverride,
    BenchmarkModelConfig,
    LoopOptions,
    TaskExecutionConfig,
)
from agent_taskloop.errors import BenchmarkAbortedError, DirtyWorkingTreeError, GitStateError
from agent_taskloop.git import CommitInfo, GitClient
from agent_taskloop.harness import TaskHarness
from agent_taskloop.llm.operations import AIOperations
from agent_taskloop.loop import TaskLoop

from .base import FAIL, PASS, BenchmarkResult, BenchmarkRun
from .storage import BenchmarkStorage

logger = logging.getLogger(__name__)

DRY_RUN_BRANCH = "(dry-run)"


@dataclass
class TargetOutcome:
    """What a benchmark target reports back for one model."""
    success: bool
    output: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


BenchmarkTarget = Callable[[BenchmarkModelConfig], TargetOutcome]


def safe_model_name(model: str) -> str:
    return re.sub(r"[^a-zA-Z0-9-]", "-", model)


def benchmark_branch_name(label: str, model: str, now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"bench/{label}/{safe_model_name(model)}-{now_ms}"


def new_run_id(label: str) -> str:
    return f"bench-{label}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


class BenchmarkRunner:
    def __init__(self, git: GitClient, storage: BenchmarkStorage, ai_ops: AIOperations):
        self.git = git
        self.storage = storage
        self.ai_ops = ai_ops

    def run_execution_benchmark(
        self,
        harness: TaskHarness,
        task_id: str,
        models: list[BenchmarkModelConfig],
        config: TaskExecutionConfig | None = None,
        keep_branches: bool = True,
    ) -> BenchmarkRun:
        """Execute one task once per model."""
        base_config = config or harness.config

        def target(model: BenchmarkModelConfig) -> TargetOutcome:
            model_config = base_config.model_copy(update={
                "tool": model.executor or base_config.tool,
                "executor_config": base_config.executor_config.model_copy(update={"model": model.model}),
                "enable_retry": True,
                "try_models": [],
                # Commit so the model's work stays on its branch
                "auto_commit": True,
            })
            result = harness.execute_task(task_id, model_config)
            return TargetOutcome(
                success=result.success,
                output={
                    "task_id": result.task_id,
                    "success": result.success,
                    "attempts": len(result.attempts),
                    "commit_message": result.commit_info.message if result.commit_info else None,
                },
                error=result.error,
            )

        return self._run_isolated(
            label=task_id,
            command="execution-benchmark",
            input_data={"task_id": task_id, "config": base_config.model_dump(mode="json")},
            models=models,
            target=target,
            keep_branches=keep_branches,
            dry=base_config.dry,
        )

    def run_loop_benchmark(
        self,
        loop: TaskLoop,
        options: LoopOptions,
        models: list[BenchmarkModelConfig],
        keep_branches: bool = True,
    ) -> BenchmarkRun:
        """Run a whole task loop once per model."""

        def target(model: BenchmarkModelConfig) -> TargetOutcome:
            execution = options.execution
            model_options = options.model_copy(update={
                "execution": execution.model_copy(update={
                    "tool": model.executor or execution.tool,
                    "executor_config": execution.executor_config.model_copy(update={"model": model.model}),
                }),
            })
            result = loop.run(model_options)
            return TargetOutcome(
                success=result.success,
                output={
                    "total_tasks": result.total_tasks,
                    "completed_tasks": result.completed_tasks,
                    "failed_tasks": result.failed_tasks,
                },
                error=None if result.success else f"{result.failed_tasks} tasks failed",
            )

        return self._run_isolated(
            label="loop",
            command="execute-loop-benchmark",
            input_data=options.model_dump(mode="json"),
            models=models,
            target=target,
            keep_branches=keep_branches,
            dry=options.execution.dry,
        )

    def run_workflow_benchmark(
        self,
        workflow: BenchmarkTarget,
        models: list[BenchmarkModelConfig],
        input_data: dict[str, Any] | None = None,
        keep_branches: bool = True,
        dry: bool = False,
    ) -> BenchmarkRun:
        """Run an arbitrary multi-step workflow once per model."""
        return self._run_isolated(
            label="workflow",
            command="workflow-benchmark",
            input_data=input_data or {},
            models=models,
            target=workflow,
            keep_branches=keep_branches,
            dry=dry,
        )

    def _run_isolated(
        self,
        label: str,
        command: str,
        input_data: dict[str, Any],
        models: list[BenchmarkModelConfig],
        target: BenchmarkTarget,
        keep_branches: bool,
        dry: bool,
    ) -> BenchmarkRun:
        if dry:
            base_branch = DRY_RUN_BRANCH
        else:
            if not self.git.is_clean():
                raise DirtyWorkingTreeError(
                    "Working directory is not clean. Commit or stash changes before running benchmarks."
                )
            base_branch = self.git.current_branch()

        run = BenchmarkRun(
            run_id=new_run_id(label),
            timestamp=time.time(),
            command=command,
            base_branch=base_branch,
            input=input_data,
            config={"models": [m.model_dump() for m in models], "keep_branches": keep_branches},
        )
        logger.info("Starting %s %s on base branch %s", command, run.run_id, base_branch)

        for model in models:
            run.results.append(self._run_model(label, model, target, base_branch, keep_branches, dry))

        self.storage.save_run(run)
        logger.info("Benchmark %s finished: %d/%d passed", run.run_id, run.passed_count, len(run.results))
        return run

    def _run_model(
        self,
        label: str,
        model: BenchmarkModelConfig,
        target: BenchmarkTarget,
        base_branch: str,
        keep_branches: bool,
        dry: bool,
    ) -> BenchmarkResult:
        model_id = model.model_id
        branch = None if dry else benchmark_branch_name(label, model.model)
        logger.info("Benchmarking %s%s", model_id, f" on {branch}" if branch else "")

        if branch:
            try:
                self.git.create_branch(branch, base_branch)
            except GitStateError as e:
                self._recover(base_branch, model_id, e)
                return BenchmarkResult(
                    model_id=model_id,
                    status=FAIL,
                    branch=branch,
                    error=f"Git error: {e}",
                    timestamp=time.time(),
                )

        previous = self.ai_ops.config
        self.ai_ops.config = self.ai_ops.resolve_config(
            AIConfigOverride(provider=model.provider, model=model.model)
        )
        start = time.time()
        try:
            outcome = target(model)
        except Exception as e:
            logger.error("Benchmark target failed for %s: %s", model_id, e)
            outcome = TargetOutcome(success=False, error=str(e))
        finally:
            self.ai_ops.config = previous
        duration = time.time() - start

        result = BenchmarkResult(
            model_id=model_id,
            status=PASS if outcome.success else FAIL,
            duration_seconds=duration,
            branch=branch,
            output=outcome.output,
            error=outcome.error,
            timestamp=time.time(),
        )

        if branch:
            try:
                self._save_leftovers(model_id)
                self.git.checkout(base_branch)
                if not keep_branches:
                    self.git.delete_branch(branch)
                if not self.git.is_clean():
                    raise GitStateError(f"Base branch {base_branch} is dirty after benchmarking {model_id}")
            except GitStateError as e:
                self._recover(base_branch, model_id, e)
        return result

    def _save_leftovers(self, model_id: str) -> None:
        """Commit whatever the model left uncommitted so it stays on its branch."""
        if self.git.is_clean():
            return
        logger.info("Committing leftover changes from %s to its branch", model_id)
        self.git.commit(CommitInfo(message=f"bench: uncommitted work from {model_id}"))

    def _recover(self, base_branch: str, model_id: str, error: Exception) -> None:
        """Force a clean tree on the base branch or abort the whole run."""
        logger.error("Critical benchmark failure for %s: %s", model_id, error)
        try:
            self.git.checkout(base_branch, force=True)
            self.git.discard_changes()
            if not self.git.is_clean():
                raise GitStateError(f"Working tree still dirty on {base_branch}")
        except GitStateError as reset_error:
            logger.critical("Could not reset to %s: %s", base_branch, reset_error)
            raise BenchmarkAbortedError(
                f"Benchmark aborted: could not restore branch {base_branch}: {reset_error}"
            ) from reset_error
