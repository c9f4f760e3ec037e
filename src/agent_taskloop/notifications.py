"""Completion notifications for task loops.

A target starting with ``http://`` or ``https://`` receives the full result
as a JSON POST. Any other target is run as a shell command with the summary
exposed through ``TASK_LOOP_*`` environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict
from typing import TYPE_CHECKING
from urllib import error as urllib_error
from urllib import request as urllib_request

from agent_taskloop.shell import run_shell

if TYPE_CHECKING:
    from agent_taskloop.loop import ExecuteLoopResult

logger = logging.getLogger(__name__)

POST_TIMEOUT_SECONDS = 10


def build_summary(result: ExecuteLoopResult) -> dict:
    return {
        "total_tasks": result.total_tasks,
        "completed_tasks": result.completed_tasks,
        "failed_tasks": result.failed_tasks,
        "duration_seconds": result.duration_seconds,
        "success": result.failed_tasks == 0,
    }


def summary_env(summary: dict) -> dict[str, str]:
    return {
        "TASK_LOOP_RESULT": json.dumps(summary),
        "TASK_LOOP_TOTAL": str(summary["total_tasks"]),
        "TASK_LOOP_COMPLETED": str(summary["completed_tasks"]),
        "TASK_LOOP_FAILED": str(summary["failed_tasks"]),
        "TASK_LOOP_SUCCESS": str(summary["success"]).lower(),
    }


def post_to_url(url: str, payload: dict) -> None:
    logger.info("Sending notification to %s", url)
    body = json.dumps(payload, default=str).encode("utf-8")
    req = urllib_request.Request(
        url,
        data=body,
        method="POST",
        headers={"Content-Type": "application/json", "User-Agent": "agent-taskloop"},
    )
    try:
        with urllib_request.urlopen(req, timeout=POST_TIMEOUT_SECONDS) as resp:
            status = resp.status
    except urllib_error.HTTPError as e:
        logger.warning("Notification to %s returned %s", url, e.code)
        return
    except (urllib_error.URLError, TimeoutError, OSError) as e:
        raise RuntimeError(f"Failed to POST to {url}: {e}") from e
    logger.info("Notification sent to %s (%s)", url, status)


def run_command(command: str, summary: dict) -> None:
    logger.info("Running notification command: %s", command)
    run_shell(command, env={**os.environ, **summary_env(summary)})
    logger.info("Notification command completed")


def send_notifications(targets: list[str], result: ExecuteLoopResult) -> None:
    """Notify every target. A failing target is logged and skipped."""
    if not targets:
        return

    summary = build_summary(result)
    for target in targets:
        try:
            if target.startswith(("http://", "https://")):
                post_to_url(target, asdict(result))
            else:
                run_command(target, summary)
        except Exception as e:
            logger.warning("Notification failed for %s: %s", target, e)
