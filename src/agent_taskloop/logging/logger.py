"""Structured JSON run logger and console logging setup."""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any

from agent_taskloop.verification.base import ValidationResult

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: int | str = logging.INFO) -> None:
    """Configure root logging for the entry script."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


class RunLogger:
    """Logs task execution events as structured JSON lines."""

    def __init__(self, run_id: str, output_dir: str = "results"):
        self.run_id = run_id
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.log_path = self.output_dir / f"{run_id}.jsonl"
        self._events: list[dict[str, Any]] = []

    @property
    def events(self) -> list[dict[str, Any]]:
        return list(self._events)

    def _write_event(self, event: dict[str, Any]) -> None:
        event["run_id"] = self.run_id
        event["timestamp"] = time.time()
        self._events.append(event)
        with open(self.log_path, "a") as f:
            f.write(json.dumps(event, default=str) + "\n")

    def log_task_start(self, task_id: str, config: dict[str, Any]) -> None:
        self._write_event({
            "event": "task_start",
            "task_id": task_id,
            "config": config,
        })

    def log_attempt_start(self, task_id: str, attempt: int, executor: str, model: str | None) -> None:
        self._write_event({
            "event": "attempt_start",
            "task_id": task_id,
            "attempt": attempt,
            "executor": executor,
            "model": model,
        })

    def log_verification(self, task_id: str, attempt: int, results: list[ValidationResult]) -> None:
        self._write_event({
            "event": "verification",
            "task_id": task_id,
            "attempt": attempt,
            "passed": all(r.success for r in results),
            "commands": [
                {"command": r.command, "success": r.success, "error": (r.error or "")[:1000]}
                for r in results
            ],
        })

    def log_review(self, task_id: str, attempt: int, approved: bool, success: bool, feedback: str) -> None:
        self._write_event({
            "event": "review",
            "task_id": task_id,
            "attempt": attempt,
            "approved": approved,
            "success": success,
            "feedback": feedback[:1000],
        })

    def log_retry(self, task_id: str, strategy: str, attempt: int, error: str) -> None:
        self._write_event({
            "event": "retry",
            "task_id": task_id,
            "strategy": strategy,
            "attempt": attempt,
            "error": error[:1000],
        })

    def log_task_end(self, task_id: str, result: dict[str, Any]) -> None:
        self._write_event({
            "event": "task_end",
            "task_id": task_id,
            "result": result,
        })
