"""Escalation ladder: which executor and model each attempt uses."""

from __future__ import annotations

from dataclasses import dataclass

from agent_taskloop.config import ModelAttemptConfig


@dataclass(frozen=True)
class AttemptTarget:
    attempt: int
    executor: str
    model: str | None


def resolve_attempt(
    attempt: int,
    base_tool: str,
    base_model: str | None,
    ladder: list[ModelAttemptConfig],
) -> AttemptTarget:
    """Resolve the executor/model for ``attempt`` (1-indexed).

    The first attempt always runs on the base configuration. Retry ``k``
    (attempt ``k + 1``) uses ladder entry ``k - 1``; once the ladder is
    exhausted its last entry is reused. Unset entry fields fall back to base.
    """
    if attempt <= 1 or not ladder:
        return AttemptTarget(attempt=attempt, executor=base_tool, model=base_model)

    entry = ladder[min(attempt - 2, len(ladder) - 1)]
    return AttemptTarget(
        attempt=attempt,
        executor=entry.executor or base_tool,
        model=entry.model or base_model,
    )


def ladder_executors(ladder: list[ModelAttemptConfig]) -> list[str]:
    return [entry.executor for entry in ladder if entry.executor]
