"""Task data model and the task store interface the engine reads from."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


@dataclass
class Documentation:
    recap: str
    files: list[str] = field(default_factory=list)


@dataclass
class Task:
    """A unit of work handed to an external coding agent."""
    task_id: str
    title: str
    description: str = ""
    content: str | None = None
    status: TaskStatus = TaskStatus.TODO
    dependencies: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    documentation: Documentation | None = None
    parent_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class TaskStore(Protocol):
    """Read side of the task store plus the status write-back the engine needs."""

    def get_task(self, task_id: str) -> Task | None:
        ...

    def list_tasks(self, status: str | None = None, tag: str | None = None) -> list[Task]:
        ...

    def get_subtasks(self, task_id: str) -> list[Task]:
        ...

    def set_task_status(self, task_id: str, status: TaskStatus) -> None:
        ...

    def get_task_plan(self, task_id: str) -> str | None:
        ...

    def get_prd_content(self, task_id: str) -> str | None:
        ...
