"""Fail-fast task loop: run a batch of tasks sequentially through the harness."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from agent_taskloop.config import LoopOptions, TaskExecutionConfig
from agent_taskloop.harness import Attempt, TaskHarness, validate_execution_config
from agent_taskloop.notifications import send_notifications
from agent_taskloop.tasks import Task, TaskStatus, TaskStore

logger = logging.getLogger(__name__)

Notifier = Callable[[list[str], "ExecuteLoopResult"], None]


@dataclass
class TaskRunSummary:
    task_id: str
    title: str
    attempts: list[Attempt] = field(default_factory=list)
    final_status: str = "failed"
    error: str | None = None


@dataclass
class ExecuteLoopResult:
    total_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    task_results: list[TaskRunSummary] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.failed_tasks == 0


class TaskLoop:
    """Runs tasks one after another and stops at the first failure.

    Later tasks may depend on earlier ones, so nothing runs after a failure.
    """

    def __init__(self, store: TaskStore, harness: TaskHarness, notifier: Notifier = send_notifications):
        self.store = store
        self.harness = harness
        self.notifier = notifier

    def select_tasks(self, options: LoopOptions) -> list[Task]:
        if options.task_ids:
            tasks = []
            for task_id in options.task_ids:
                task = self.store.get_task(task_id)
                if task is None:
                    logger.warning("Task %s not found, skipping", task_id)
                    continue
                tasks.append(task)
        else:
            tasks = self.store.list_tasks(status=options.status, tag=options.tag)

        if not options.include_completed:
            before = len(tasks)
            tasks = [t for t in tasks if t.status != TaskStatus.COMPLETED]
            if before > len(tasks):
                logger.info("Skipped %d already-completed task(s)", before - len(tasks))
        return tasks

    def task_config(self, options: LoopOptions) -> TaskExecutionConfig:
        # Every task in the batch gets the same config; retry is always on
        return options.execution.model_copy(update={
            "enable_retry": True,
            "execute_subtasks": True,
            "include_completed": options.include_completed,
        })

    def run(self, options: LoopOptions) -> ExecuteLoopResult:
        start = time.time()
        config = self.task_config(options)
        validate_execution_config(config)

        execution = options.execution
        logger.info("Starting task loop execution")
        logger.info("Executor tool: %s", execution.tool)
        if execution.executor_config.model:
            logger.info("Executor model: %s", execution.executor_config.model)
        logger.info("Max retries per task: %d", execution.max_retries)
        logger.info("Verification commands: %s", ", ".join(execution.verification_commands) or "None")
        logger.info("Auto commit: %s, dry run: %s", execution.auto_commit, execution.dry)

        tasks = self.select_tasks(options)
        result = ExecuteLoopResult(total_tasks=len(tasks))

        if not tasks:
            logger.warning("No tasks to execute (all may be completed)")
        else:
            logger.info("Found %d task(s) to execute", len(tasks))

        for i, task in enumerate(tasks, start=1):
            logger.info("Task %d/%d: %s (%s)", i, len(tasks), task.title, task.task_id)
            try:
                task_result = self.harness.execute_task(task.task_id, config)
            except Exception as e:
                result.failed_tasks += 1
                logger.error("Task %s failed with error: %s", task.title, e)
                result.task_results.append(TaskRunSummary(
                    task_id=task.task_id,
                    title=task.title,
                    final_status="failed",
                    error=str(e),
                ))
                break

            if task_result.success:
                result.completed_tasks += 1
                logger.info(
                    "Task %s completed successfully after %d attempt(s)",
                    task.title, len(task_result.attempts),
                )
            else:
                result.failed_tasks += 1
                logger.error("Task %s failed after %d attempt(s)", task.title, len(task_result.attempts))

            result.task_results.append(TaskRunSummary(
                task_id=task.task_id,
                title=task.title,
                attempts=task_result.attempts,
                final_status="completed" if task_result.success else "failed",
                error=task_result.error,
            ))
            if not task_result.success:
                break

        result.duration_seconds = time.time() - start
        logger.info(
            "Loop finished: %d/%d completed, %d failed in %.1fs",
            result.completed_tasks, result.total_tasks, result.failed_tasks, result.duration_seconds,
        )

        if options.notify_targets:
            self.notifier(options.notify_targets, result)
        return result
