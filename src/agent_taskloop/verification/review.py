"""AI review phase: ask a judge model to approve or reject the attempt's diff.

The review is advisory. A judge outage or an unparseable answer counts as
approval, so a flaky judge never blocks the task.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from agent_taskloop.config import AIConfigOverride, AIProvider, parse_executor_model_string
from agent_taskloop.errors import GitStateError
from agent_taskloop.git import GitClient
from agent_taskloop.llm.operations import extract_json_object
from agent_taskloop.shell import ExecFn, run_shell
from agent_taskloop.tasks import Documentation, Task

if TYPE_CHECKING:
    from agent_taskloop.llm.operations import AIOperations

logger = logging.getLogger(__name__)

MAX_PRD_CHARS = 5000
MAX_DIFF_CHARS = 10000

# opencode and kilo route through the default provider
REVIEW_PROVIDERS: dict[str, str] = {
    "claude": AIProvider.ANTHROPIC.value,
    "gemini": AIProvider.GEMINI.value,
    "codex": AIProvider.OPENAI.value,
}

REVIEW_SYSTEM_PROMPT = "You are a strict code reviewer. Respond with a single JSON object."

REVIEW_PROMPT = """You are a strict code reviewer. Review the following changes against the task requirements.

# Task: {title}
{sections}
# Git Diff (changes to review):
```diff
{diff}
```

Analyze the changes for:
1. Correctness - Do the changes solve the task requirements?
2. Completeness - Are all requirements addressed?
3. Code Quality - Clean code, best practices
4. Potential Bugs - Any obvious issues?

Return a JSON object:
{{
  "approved": boolean,
  "feedback": "Detailed feedback explaining why it was rejected or approved, referencing specific requirements"
}}
"""


@dataclass
class ReviewConfig:
    review_model: str | None = None
    review_tool: str | None = None
    plan_content: str | None = None
    task_description: str | None = None
    task_content: str | None = None
    prd_content: str | None = None
    documentation: Documentation | None = None
    before_head: str | None = None
    dry: bool = False


@dataclass
class ReviewResult:
    approved: bool
    feedback: str
    success: bool
    error: str | None = None


def collect_review_diff(before_head: str | None, git: GitClient) -> str:
    """Committed work since ``before_head`` plus uncommitted work, each tagged.

    Uncommitted work includes untracked files, diffed against an empty file.
    """
    diff = ""
    if before_head:
        try:
            committed = git.diff_range(before_head, "HEAD")
            if committed.strip():
                diff += f"# Committed changes during execution:\n{committed}\n"
                logger.info("Found committed changes since %s", before_head[:7])
        except GitStateError as e:
            logger.warning("Could not get commit diff: %s", e)

    try:
        uncommitted = git.diff_working_tree("HEAD")
        for path in git.untracked_files():
            uncommitted += git.diff_new_file(path)
        if uncommitted.strip():
            diff += f"# Uncommitted changes:\n{uncommitted}\n"
            logger.info("Found uncommitted changes")
    except GitStateError as e:
        logger.warning("Could not get uncommitted diff: %s", e)
    return diff


def resolve_review_override(review_tool: str | None, review_model: str | None) -> AIConfigOverride:
    """Map the review tool/model selection onto an AI config override.

    Only an explicit ``review_tool`` selects a provider. A ``tool:model``
    review model contributes its model part alone.
    """
    model = None
    if review_model:
        _, model = parse_executor_model_string(review_model)

    provider = REVIEW_PROVIDERS.get(review_tool) if review_tool else None
    if review_tool:
        logger.info("Using executor for review: %s %s", review_tool, f"({model})" if model else "")
    else:
        logger.info("Using default AI provider for review")
    return AIConfigOverride(provider=provider, model=model or None)


def is_approval(value: object) -> bool:
    """Only a JSON true (or the string "true") approves."""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def build_review_prompt(task: Task, config: ReviewConfig, diff: str) -> str:
    sections = ""
    if config.task_description:
        sections += f"\nTask Description:\n{config.task_description}\n"
    if config.task_content:
        sections += f"\nTask Requirements/Content:\n{config.task_content}\n"
    if config.prd_content:
        sections += f"\nProduct Requirements Document (PRD):\n{config.prd_content[:MAX_PRD_CHARS]}\n"
    if config.documentation:
        docs = config.documentation
        referenced = f"\nReferenced files: {', '.join(docs.files)}" if docs.files else ""
        sections += f"\nDocumentation Context:\n{docs.recap}{referenced}\n"
    if config.plan_content:
        sections += f"\nImplementation Plan:\n{config.plan_content}\n"
    return REVIEW_PROMPT.format(title=task.title, sections=sections, diff=diff[:MAX_DIFF_CHARS])


def execute_review_phase(
    task: Task,
    config: ReviewConfig,
    ai_ops: AIOperations,
    exec_fn: ExecFn = run_shell,
) -> ReviewResult:
    """Run the review. Never raises."""
    logger.info("Starting AI review phase for task %s", task.task_id)

    if config.dry:
        logger.warning("DRY RUN - review phase skipped")
        return ReviewResult(approved=True, feedback="Dry run - review skipped", success=True)

    try:
        diff = collect_review_diff(config.before_head, GitClient(exec_fn))
        if not diff.strip():
            logger.warning("No changes detected to review")
            return ReviewResult(approved=True, feedback="No changes to review", success=True)

        override = resolve_review_override(config.review_tool, config.review_model)
        prompt = build_review_prompt(task, config, diff)
        response = ai_ops.stream_text(prompt, config_override=override, system=REVIEW_SYSTEM_PROMPT)

        verdict = extract_json_object(response)
        if verdict is None:
            logger.warning("Could not parse AI review response, assuming approval")
            return ReviewResult(
                approved=True,
                feedback="Could not parse review response, assuming approval",
                success=True,
            )

        approved = is_approval(verdict.get("approved"))
        feedback = str(verdict.get("feedback", ""))
        if approved:
            logger.info("AI review approved: %s", feedback)
        else:
            logger.error("AI review rejected changes: %s", feedback)
        return ReviewResult(approved=approved, feedback=feedback, success=True)

    except Exception as e:
        logger.error("AI review failed: %s", e)
        return ReviewResult(
            approved=True,
            feedback=f"Review failed: {e}",
            success=False,
            error=str(e),
        )
