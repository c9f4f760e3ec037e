"""Task harness: plan, execute, verify, review and retry one task."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from agent_taskloop.config import (
    VALID_EXECUTORS,
    ExecutorConfig,
    TaskExecutionConfig,
    validate_executor,
)
from agent_taskloop.errors import ConfigurationError, TaskNotFoundError
from agent_taskloop.executors import Executor, create_executor
from agent_taskloop.git import CommitInfo, GitClient, GitState, extract_commit_info
from agent_taskloop.hooks import EXECUTION_END, EXECUTION_ERROR, EXECUTION_START, HookRegistry
from agent_taskloop.llm.operations import AIOperations
from agent_taskloop.logging.logger import RunLogger
from agent_taskloop.planning import PlanReviewCallback, execute_planning_phase, resolve_plan_target
from agent_taskloop.recovery import RecoveryStrategy, create_recovery_strategy, ladder_executors, resolve_attempt
from agent_taskloop.shell import ExecFn, run_shell
from agent_taskloop.tasks import Task, TaskStatus, TaskStore
from agent_taskloop.verification import (
    ReviewConfig,
    ReviewResult,
    ValidationResult,
    execute_review_phase,
    first_failure,
    format_verification_error,
    run_validations,
)

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[str, ExecutorConfig], Executor]

EXECUTION_PROMPT = """{retry_context}# Task: {title}

{description}
{sections}
Implement this task in the current repository. Make all required code changes,
keep the existing style of the codebase and make sure the project still builds.
"""


class AttemptStatus:
    SUCCEEDED = "succeeded"
    EXECUTION_FAILED = "execution_failed"
    VERIFICATION_FAILED = "verification_failed"
    REVIEW_REJECTED = "review_rejected"


@dataclass
class Attempt:
    """One plan/execute/verify/review pass."""
    attempt_number: int
    executor: str
    model: str | None
    status: str = AttemptStatus.SUCCEEDED
    success: bool = False
    plan_content: str | None = None
    error: str | None = None
    verification_results: list[ValidationResult] = field(default_factory=list)
    review: ReviewResult | None = None
    commit_info: CommitInfo | None = None
    duration_seconds: float = 0.0


@dataclass
class TaskExecutionResult:
    task_id: str
    success: bool
    attempts: list[Attempt] = field(default_factory=list)
    subtask_results: list[TaskExecutionResult] = field(default_factory=list)
    commit_info: CommitInfo | None = None
    plan_content: str | None = None
    review_feedback: str | None = None
    error: str | None = None


class TaskHarness:
    """Drives a task through its attempt lifecycle against a task store."""

    def __init__(
        self,
        store: TaskStore,
        ai_ops: AIOperations | None = None,
        config: TaskExecutionConfig | None = None,
        exec_fn: ExecFn = run_shell,
        executor_factory: ExecutorFactory = create_executor,
        logger: RunLogger | None = None,
        hooks: HookRegistry | None = None,
        workdir: str | Path = ".",
        on_plan_review: PlanReviewCallback | None = None,
    ):
        self.store = store
        self.ai_ops = ai_ops or AIOperations()
        self.config = config or TaskExecutionConfig()
        self.exec_fn = exec_fn
        self.executor_factory = executor_factory
        self.logger = logger
        self.hooks = hooks or HookRegistry()
        self.workdir = Path(workdir)
        self.on_plan_review = on_plan_review
        self.git = GitClient(exec_fn)

    def execute_task(self, task_id: str, config: TaskExecutionConfig | None = None) -> TaskExecutionResult:
        """Run a task (and its open subtasks) to success or retry exhaustion.

        Raises ConfigurationError for unknown executors and TaskNotFoundError
        for unknown ids. Everything else is reported in the result.
        """
        config = config or self.config
        validate_execution_config(config)

        task = self.store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        if config.execute_subtasks and not config.custom_message:
            subtasks = self.store.get_subtasks(task_id)
            if subtasks:
                return self._execute_with_subtasks(task, subtasks, config)

        if self.logger:
            self.logger.log_task_start(task.task_id, config.model_dump(mode="json"))

        result = self._execute_with_retry(task, config)

        if self.logger:
            self.logger.log_task_end(task.task_id, {
                "success": result.success,
                "attempts": len(result.attempts),
                "error": result.error,
            })
        return result

    def _execute_with_subtasks(
        self,
        task: Task,
        subtasks: list[Task],
        config: TaskExecutionConfig,
    ) -> TaskExecutionResult:
        logger.info("Task %s has %d subtasks, executing recursively", task.task_id, len(subtasks))

        results: list[TaskExecutionResult] = []
        all_success = True
        error = None
        for i, subtask in enumerate(subtasks, start=1):
            if not config.include_completed and subtask.status == TaskStatus.COMPLETED:
                logger.info("Skipping completed subtask: %s (%s)", subtask.title, subtask.task_id)
                continue

            logger.info("[%d/%d] Executing subtask: %s (%s)", i, len(subtasks), subtask.title, subtask.task_id)
            try:
                sub_result = self.execute_task(subtask.task_id, config)
            except ConfigurationError:
                raise
            except Exception as e:
                logger.error("Failed to execute subtask %s: %s", subtask.task_id, e)
                all_success = False
                error = f"Subtask {subtask.task_id} failed: {e}"
                break

            results.append(sub_result)
            if not sub_result.success:
                logger.error("Failed to execute subtask %s: %s", subtask.task_id, subtask.title)
                all_success = False
                error = f"Subtask {subtask.task_id} failed: {sub_result.error}"
                break

        if not config.dry:
            if all_success:
                self.store.set_task_status(task.task_id, TaskStatus.COMPLETED)
                logger.info("Main task %s completed after all subtasks", task.title)
            else:
                self.store.set_task_status(task.task_id, TaskStatus.TODO)
                logger.error("Main task %s failed due to subtask failure, status reset to todo", task.title)

        return TaskExecutionResult(
            task_id=task.task_id,
            success=all_success,
            subtask_results=results,
            error=error,
        )

    def _plan(self, task: Task, config: TaskExecutionConfig) -> str | None:
        if not config.enable_plan_phase:
            return None
        planning = execute_planning_phase(
            task,
            default_tool=config.tool,
            plan_tool=config.plan_tool,
            plan_model=config.plan_model,
            review_plan=config.review_plan,
            auto_commit=config.auto_commit,
            dry=config.dry,
            workdir=self.workdir,
            on_plan_review=self.on_plan_review,
            executor_factory=self.executor_factory,
            git=self.git,
        )
        if not planning.success:
            logger.warning("Continuing without a plan: %s", planning.error)
        return planning.plan_content

    def _execute_with_retry(self, task: Task, config: TaskExecutionConfig) -> TaskExecutionResult:
        plan_content = self._plan(task, config)
        strategy = create_recovery_strategy(config.recovery_strategy)
        max_attempts = config.max_attempts

        # Review diffs cover everything done since the first attempt started
        before = GitState() if config.dry else self.git.capture_state()

        attempts: list[Attempt] = []
        last_error: str | None = None

        for attempt_number in range(1, max_attempts + 1):
            target = resolve_attempt(
                attempt_number,
                config.tool,
                config.executor_config.model,
                config.try_models,
            )
            logger.info(
                "Attempt %d/%d for task: %s (%s) using %s%s",
                attempt_number, max_attempts, task.title, task.task_id,
                target.executor, f" with model {target.model}" if target.model else "",
            )
            if self.logger:
                self.logger.log_attempt_start(task.task_id, attempt_number, target.executor, target.model)

            retry_context = ""
            if attempt_number > 1 and last_error:
                retry_context = strategy.retry_context(
                    attempt_number, max_attempts, target.executor, target.model, last_error
                )
                if self.logger:
                    self.logger.log_retry(task.task_id, strategy.strategy_name, attempt_number, last_error)

            attempt = self._run_attempt(
                task, config, attempt_number, target.executor, target.model,
                strategy, plan_content, retry_context, before,
            )
            attempts.append(attempt)

            if attempt.success:
                commit_info = self._finish_success(task, config, before)
                attempt.commit_info = commit_info
                self.hooks.emit(EXECUTION_END, {"task_id": task.task_id, "success": True})
                return TaskExecutionResult(
                    task_id=task.task_id,
                    success=True,
                    attempts=attempts,
                    commit_info=commit_info,
                    plan_content=plan_content,
                    review_feedback=attempt.review.feedback if attempt.review else None,
                )

            last_error = attempt.error
            logger.error("Task %s failed on attempt %d: %s", task.task_id, attempt_number, last_error)
            if not config.dry and attempt_number < max_attempts:
                self.store.set_task_status(task.task_id, TaskStatus.TODO)
                logger.warning("Task status reset to todo for retry")

        if not config.dry:
            self.store.set_task_status(task.task_id, TaskStatus.TODO)
        logger.error("All %d attempts exhausted for task %s", max_attempts, task.task_id)
        self.hooks.emit(EXECUTION_END, {"task_id": task.task_id, "success": False})
        return TaskExecutionResult(
            task_id=task.task_id,
            success=False,
            attempts=attempts,
            plan_content=plan_content,
            error=last_error,
        )

    def _run_attempt(
        self,
        task: Task,
        config: TaskExecutionConfig,
        attempt_number: int,
        executor_name: str,
        model: str | None,
        strategy: RecoveryStrategy,
        plan_content: str | None,
        retry_context: str,
        before: GitState,
    ) -> Attempt:
        start = time.time()
        attempt = Attempt(
            attempt_number=attempt_number,
            executor=executor_name,
            model=model,
            plan_content=plan_content,
        )

        message = self.build_message(task, config, plan_content, retry_context)

        if not config.dry:
            self.store.set_task_status(task.task_id, TaskStatus.IN_PROGRESS)
        self.hooks.emit(EXECUTION_START, {"task_id": task.task_id, "tool": executor_name})

        try:
            base = config.executor_config.model_copy(update={"model": model})
            executor = self.executor_factory(executor_name, base)
            exec_config = strategy.executor_config(base, attempt_number, executor.supports_session_resumption())
            if exec_config.continue_last_session and attempt_number > 1:
                logger.info("Resuming previous session to provide error feedback to the agent")
            executor.execute(message, config.dry, exec_config)
        except ConfigurationError:
            raise
        except Exception as e:
            attempt.status = AttemptStatus.EXECUTION_FAILED
            attempt.error = str(e)
            attempt.duration_seconds = time.time() - start
            self.hooks.emit(EXECUTION_ERROR, {"task_id": task.task_id, "error": e})
            return attempt

        attempt.verification_results = run_validations(config.verification_commands, config.dry, self.exec_fn)
        if self.logger and attempt.verification_results:
            self.logger.log_verification(task.task_id, attempt_number, attempt.verification_results)

        failure = first_failure(attempt.verification_results)
        if failure is not None:
            attempt.status = AttemptStatus.VERIFICATION_FAILED
            attempt.error = format_verification_error(failure)
            attempt.duration_seconds = time.time() - start
            logger.error("Task %s failed verification on attempt %d", task.task_id, attempt_number)
            return attempt

        if config.enable_review_phase and not config.dry:
            review = execute_review_phase(
                task,
                ReviewConfig(
                    review_model=config.review_model,
                    review_tool=config.review_tool,
                    plan_content=plan_content,
                    task_description=task.description,
                    task_content=task.content,
                    prd_content=self._prd_content(task, config, for_review=True),
                    documentation=task.documentation,
                    before_head=before.head or None,
                    dry=config.dry,
                ),
                self.ai_ops,
                self.exec_fn,
            )
            attempt.review = review
            if self.logger:
                self.logger.log_review(task.task_id, attempt_number, review.approved, review.success, review.feedback)
            if not review.approved:
                attempt.status = AttemptStatus.REVIEW_REJECTED
                attempt.error = f"AI Review Failed:\n{review.feedback}"
                attempt.duration_seconds = time.time() - start
                return attempt

        attempt.status = AttemptStatus.SUCCEEDED
        attempt.success = True
        attempt.duration_seconds = time.time() - start
        return attempt

    def _finish_success(self, task: Task, config: TaskExecutionConfig, before: GitState) -> CommitInfo | None:
        commit_info = None
        if config.auto_commit and not config.dry:
            commit_info = self._auto_commit(task, before)
        if not config.dry:
            self.store.set_task_status(task.task_id, TaskStatus.COMPLETED)
            logger.info("Task %s completed successfully", task.task_id)
        return commit_info

    def _auto_commit(self, task: Task, before: GitState) -> CommitInfo | None:
        logger.info("Checking git state for auto-commit")
        if self.git.has_new_commits_since(before.head):
            logger.info("Agent already committed changes during execution, skipping auto-commit")
            return None

        after = self.git.capture_state()
        if not after.has_uncommitted_changes:
            logger.info("No uncommitted changes to commit")
            return None

        commit_info = extract_commit_info(self.git, task.title, before, self.ai_ops)
        logger.info("Commit message: %s", commit_info.message)
        try:
            self.git.commit(commit_info)
        except Exception as e:
            logger.warning("Auto-commit failed: %s", e)
            return None
        return commit_info

    def _prd_content(self, task: Task, config: TaskExecutionConfig, for_review: bool = False) -> str | None:
        if not config.include_prd:
            return None
        try:
            return self.store.get_prd_content(task.task_id)
        except Exception as e:
            logger.warning("Failed to load PRD content%s: %s", " for review" if for_review else "", e)
            return None

    def build_message(
        self,
        task: Task,
        config: TaskExecutionConfig,
        plan_content: str | None,
        retry_context: str = "",
    ) -> str:
        """Instruction text for the executor.

        A custom message replaces the generated prompt; retry context is
        prepended either way.
        """
        if config.custom_message:
            logger.info("Using custom execution message")
            return f"{retry_context}{config.custom_message}"

        sections = ""
        if plan_content:
            plan = f"{plan_content}\n\nPlease follow this plan to implement the task."
        else:
            plan = self.store.get_task_plan(task.task_id)
        if task.content:
            sections += f"\n## Requirements\n{task.content}\n"
        if plan:
            sections += f"\n## Implementation Plan\n{plan}\n"
        if task.documentation:
            docs = task.documentation
            files = "".join(f"\n- {f}" for f in docs.files)
            sections += f"\n## Documentation\n{docs.recap}{files}\n"
        prd = self._prd_content(task, config)
        if prd:
            sections += f"\n## Product Requirements Document\n{prd}\n"

        return EXECUTION_PROMPT.format(
            retry_context=retry_context,
            title=task.title,
            description=task.description or "No description provided.",
            sections=sections,
        )


def validate_execution_config(config: TaskExecutionConfig) -> None:
    """Reject unknown executor names before any process is spawned."""
    names = [config.tool, *ladder_executors(config.try_models)]
    if config.enable_plan_phase:
        names.append(resolve_plan_target(config.tool, config.plan_tool, config.plan_model)[0])
    if config.enable_review_phase and config.review_tool:
        names.append(config.review_tool)

    for name in names:
        if not validate_executor(name):
            raise ConfigurationError(
                f"Invalid executor: {name}. Must be one of: {', '.join(VALID_EXECUTORS)}"
            )
