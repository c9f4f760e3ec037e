"""Exception types raised by the task execution engine."""

from __future__ import annotations


class TaskLoopError(RuntimeError):
    """Base class for engine errors."""


class ConfigurationError(TaskLoopError):
    """Invalid configuration (e.g. unknown executor). Never retried."""


class TaskNotFoundError(TaskLoopError):
    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class ExecutorError(TaskLoopError):
    """An external coding agent failed to start or exited non-zero."""

    def __init__(self, message: str, *, exit_code: int | None = None):
        super().__init__(message)
        self.exit_code = exit_code


class GitStateError(TaskLoopError):
    """A git command that mutates or inspects shared repository state failed."""


class DirtyWorkingTreeError(GitStateError):
    pass


class BenchmarkAbortedError(TaskLoopError):
    """Git state could not be restored; remaining benchmark models were not run."""
