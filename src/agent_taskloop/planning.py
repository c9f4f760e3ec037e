"""Planning phase: have an executor write an implementation plan before coding."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from agent_taskloop.config import ExecutorConfig, parse_executor_model_string
from agent_taskloop.errors import ConfigurationError
from agent_taskloop.executors import Executor, create_executor
from agent_taskloop.git import GitClient
from agent_taskloop.tasks import Task

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[str, ExecutorConfig], Executor]

# Receives the plan file path; returns refinement feedback or None to accept.
PlanReviewCallback = Callable[[str], str | None]

PLANNING_PROMPT = """You are a senior software architect. Analyze the following task and create a detailed implementation plan.

Task Title: {title}

Task Description/Summary:
{description}

Detailed Task Requirements:
{content}
{docs}
Requirements:
1. FOCUS SOLELY ON THIS TASK. Do not plan for future tasks or subtasks unless explicitly required.
2. Analyze the task requirements and any provided documentation.
3. Create a detailed step-by-step implementation plan.
4. Identify necessary file changes.
5. Write this plan to a file named "{plan_file}" in the current directory.
6. Do NOT implement the code yet, just create the plan file.

Please create the "{plan_file}" file now."""

REFINEMENT_PROMPT = """The user provided the following feedback on the plan you just created:

"{feedback}"

Please update the plan file "{plan_file}" to incorporate this feedback."""


@dataclass
class PlanningResult:
    success: bool
    plan_content: str | None = None
    plan_file: str | None = None
    error: str | None = None


def plan_file_name(task_id: str) -> str:
    return f"task-{task_id}-plan.md"


def resolve_plan_target(
    default_tool: str,
    plan_tool: str | None,
    plan_model: str | None,
) -> tuple[str, str | None]:
    """Pick the planning executor and model.

    An explicit ``plan_tool`` wins; otherwise a ``tool:model`` plan model
    selects the executor; otherwise the task's main tool is used.
    """
    executor = plan_tool or default_tool
    model = plan_model
    if plan_model:
        prefix, model = parse_executor_model_string(plan_model)
        if prefix and not plan_tool:
            executor = prefix
    return executor, model


def build_planning_prompt(task: Task, plan_file: str) -> str:
    docs = ""
    if task.documentation:
        files = "\n".join(f"- {f}" for f in task.documentation.files) or "None"
        docs = f"\nDocumentation Context:\n{task.documentation.recap}\n\nreferenced_files:\n{files}\n"
    return PLANNING_PROMPT.format(
        title=task.title,
        description=task.description or "No summary provided.",
        content=task.content or task.description or "No description provided.",
        docs=docs,
        plan_file=plan_file,
    )


def execute_planning_phase(
    task: Task,
    default_tool: str,
    plan_tool: str | None = None,
    plan_model: str | None = None,
    review_plan: bool = False,
    auto_commit: bool = False,
    dry: bool = False,
    workdir: str | Path = ".",
    on_plan_review: PlanReviewCallback | None = None,
    executor_factory: ExecutorFactory = create_executor,
    git: GitClient | None = None,
) -> PlanningResult:
    """Create ``task-<id>-plan.md`` via an executor.

    At most one human refinement round is run. Failures are reported in the
    result rather than raised so execution can proceed without a plan.
    """
    logger.info("Starting planning phase for task: %s", task.title)

    plan_file = plan_file_name(task.task_id)
    plan_path = Path(workdir) / plan_file
    executor_name, model = resolve_plan_target(default_tool, plan_tool, plan_model)
    logger.info("Using executor for planning: %s%s", executor_name, f" ({model})" if model else "")

    config = ExecutorConfig(model=model, continue_last_session=False)
    try:
        executor = executor_factory(executor_name, config)
        executor.execute(build_planning_prompt(task, plan_file), dry, config)
        if dry:
            return PlanningResult(success=True, plan_file=plan_file)

        if not plan_path.exists():
            logger.warning("Plan file %s was not created by the executor", plan_file)
            return PlanningResult(success=True, plan_file=plan_file)

        plan_content = plan_path.read_text()
        logger.info("Plan created: %s", plan_file)

        if review_plan:
            if on_plan_review is None:
                logger.warning("Plan review requested but no review callback provided")
            else:
                logger.info("Pausing for human review of the plan: %s", plan_file)
                feedback = on_plan_review(str(plan_path))
                if feedback and feedback.strip():
                    logger.info("Refining plan based on feedback")
                    resume = executor.supports_session_resumption()
                    refine_config = config.model_copy(update={"continue_last_session": resume})
                    prompt = REFINEMENT_PROMPT.format(feedback=feedback, plan_file=plan_file)
                    executor.execute(prompt, dry, refine_config)
                    if plan_path.exists():
                        plan_content = plan_path.read_text()

        if auto_commit:
            (git or GitClient()).commit_file(plan_file, f"docs: create implementation plan for task {task.task_id}")

        return PlanningResult(success=True, plan_content=plan_content, plan_file=plan_file)

    except ConfigurationError:
        raise
    except Exception as e:
        logger.error("Planning phase failed: %s", e)
        return PlanningResult(success=False, plan_file=plan_file, error=str(e))
