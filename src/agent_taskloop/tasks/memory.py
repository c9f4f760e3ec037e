"""In-memory task store and YAML task file loader."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .base import Documentation, Task, TaskStatus


class InMemoryTaskStore:
    """Dict-backed TaskStore. Subtasks are tasks whose ``parent_id`` is set."""

    def __init__(self, tasks: list[Task] | None = None, prd_content: str | None = None):
        self._tasks: dict[str, Task] = {}
        self._plans: dict[str, str] = {}
        self.prd_content = prd_content
        self.status_history: list[tuple[str, TaskStatus]] = []
        for task in tasks or []:
            self.add(task)

    def add(self, task: Task, plan: str | None = None) -> None:
        self._tasks[task.task_id] = task
        if plan:
            self._plans[task.task_id] = plan

    def get_task(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def list_tasks(self, status: str | None = None, tag: str | None = None) -> list[Task]:
        tasks = [t for t in self._tasks.values() if t.parent_id is None]
        if status:
            tasks = [t for t in tasks if t.status.value == status]
        if tag:
            tasks = [t for t in tasks if tag in t.tags]
        return tasks

    def get_subtasks(self, task_id: str) -> list[Task]:
        return [t for t in self._tasks.values() if t.parent_id == task_id]

    def set_task_status(self, task_id: str, status: TaskStatus) -> None:
        task = self._tasks.get(task_id)
        if task is None:
            return
        task.status = status
        self.status_history.append((task_id, status))

    def get_task_plan(self, task_id: str) -> str | None:
        return self._plans.get(task_id)

    def get_prd_content(self, task_id: str) -> str | None:
        return self.prd_content


def load_tasks_file(path: str | Path) -> InMemoryTaskStore:
    """Load tasks (and optional PRD text) from a YAML file.

    Expected layout::

        prd: "..."
        tasks:
          - id: "1"
            title: Add login
            subtasks:
              - id: "1.1"
                title: Form
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    store = InMemoryTaskStore(prd_content=data.get("prd"))
    for row in data.get("tasks", []):
        _add_row(store, row, parent_id=None)
    return store


def _add_row(store: InMemoryTaskStore, row: dict[str, Any], parent_id: str | None) -> None:
    docs = row.get("documentation")
    task = Task(
        task_id=str(row["id"]),
        title=row.get("title", ""),
        description=row.get("description", ""),
        content=row.get("content"),
        status=TaskStatus(row.get("status", TaskStatus.TODO.value)),
        dependencies=[str(d) for d in row.get("dependencies", [])],
        tags=list(row.get("tags", [])),
        documentation=Documentation(recap=docs.get("recap", ""), files=docs.get("files", [])) if docs else None,
        parent_id=parent_id,
    )
    store.add(task, plan=row.get("plan"))
    for child in row.get("subtasks", []):
        _add_row(store, child, parent_id=task.task_id)
