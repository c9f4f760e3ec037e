#!/usr/bin/env python3
"""CLI entry point: execute a task, run a task loop, or benchmark models."""

from __future__ import annotations

import argparse
import json
import sys

from dotenv import load_dotenv
load_dotenv()

from agent_taskloop.benchmark.runner import BenchmarkRunner
from agent_taskloop.benchmark.storage import BenchmarkStorage
from agent_taskloop.config import (
    BenchmarkModelConfig,
    LoopOptions,
    ProjectConfig,
    load_config,
    parse_try_models,
)
from agent_taskloop.errors import TaskLoopError
from agent_taskloop.git import GitClient
from agent_taskloop.harness import TaskExecutionResult, TaskHarness
from agent_taskloop.llm.operations import AIOperations
from agent_taskloop.logging.logger import RunLogger, setup_logging
from agent_taskloop.loop import TaskLoop
from agent_taskloop.tasks import load_tasks_file


def _prompt_plan_feedback(plan_path: str) -> str | None:
    print(f"\nReview the plan at {plan_path}.")
    feedback = input("Feedback to refine the plan (empty to accept): ").strip()
    return feedback or None


def _apply_overrides(config: ProjectConfig, args: argparse.Namespace) -> ProjectConfig:
    update = {}
    if args.tool:
        update["tool"] = args.tool
    if args.model:
        update["executor_config"] = config.execution.executor_config.model_copy(update={"model": args.model})
    if args.verify:
        update["verification_commands"] = args.verify
    if args.max_retries is not None:
        update["enable_retry"] = True
        update["max_retries"] = args.max_retries
    if args.try_models:
        update["enable_retry"] = True
        update["try_models"] = parse_try_models(args.try_models)
    if args.plan:
        update["enable_plan_phase"] = True
    if args.review:
        update["enable_review_phase"] = True
    if args.auto_commit:
        update["auto_commit"] = True
    if args.message:
        update["custom_message"] = args.message
    if args.dry:
        update["dry"] = True
    return config.model_copy(update={"execution": config.execution.model_copy(update=update)})


def _build(config: ProjectConfig, args: argparse.Namespace) -> tuple[TaskHarness, AIOperations]:
    store = load_tasks_file(args.tasks)
    ai_ops = AIOperations(config.ai)
    run_logger = RunLogger(args.run_id, config.log_dir) if config.log_dir else None
    harness = TaskHarness(
        store,
        ai_ops=ai_ops,
        config=config.execution,
        logger=run_logger,
        on_plan_review=_prompt_plan_feedback,
    )
    return harness, ai_ops


def _print_task_result(result: TaskExecutionResult) -> None:
    status = "SUCCESS" if result.success else "FAILED"
    print(f"\nTask {result.task_id}: {status} after {len(result.attempts)} attempt(s)")
    for attempt in result.attempts:
        model = f" ({attempt.model})" if attempt.model else ""
        print(f"  #{attempt.attempt_number} {attempt.executor}{model}: {attempt.status} "
              f"in {attempt.duration_seconds:.1f}s")
    for sub in result.subtask_results:
        print(f"  subtask {sub.task_id}: {'SUCCESS' if sub.success else 'FAILED'}")
    if result.commit_info:
        print(f"Committed: {result.commit_info.message}")
    if result.error and not result.success:
        print(f"Last error:\n{result.error}")


def cmd_execute(config: ProjectConfig, args: argparse.Namespace) -> int:
    harness, _ = _build(config, args)
    result = harness.execute_task(args.task_id)
    _print_task_result(result)
    return 0 if result.success else 1


def _loop_options(config: ProjectConfig, args: argparse.Namespace) -> LoopOptions:
    return LoopOptions(
        task_ids=args.ids or [],
        status=args.status,
        tag=args.tag,
        include_completed=args.include_completed,
        notify_targets=args.notify or config.notify_targets,
        execution=config.execution,
    )


def cmd_loop(config: ProjectConfig, args: argparse.Namespace) -> int:
    harness, _ = _build(config, args)
    loop = TaskLoop(harness.store, harness)
    result = loop.run(_loop_options(config, args))

    print(f"\nLoop finished in {result.duration_seconds:.1f}s")
    print(f"Completed: {result.completed_tasks}/{result.total_tasks} | Failed: {result.failed_tasks}")
    for summary in result.task_results:
        print(f"  {summary.task_id} {summary.title}: {summary.final_status} "
              f"({len(summary.attempts)} attempt(s))")
    return 0 if result.success else 1


def _benchmark_models(config: ProjectConfig, args: argparse.Namespace) -> list[BenchmarkModelConfig]:
    if not args.models:
        return config.benchmark.models
    models = []
    for item in args.models.split(","):
        provider, sep, model = item.strip().partition(":")
        if not sep:
            raise SystemExit(f"Benchmark models must be provider:model, got {item!r}")
        models.append(BenchmarkModelConfig(provider=provider, model=model))
    return models


def cmd_benchmark(config: ProjectConfig, args: argparse.Namespace) -> int:
    harness, ai_ops = _build(config, args)
    models = _benchmark_models(config, args)
    if not models:
        print("No benchmark models configured.")
        return 1

    runner = BenchmarkRunner(GitClient(), BenchmarkStorage(config.benchmark_dir), ai_ops)
    keep = not args.delete_branches and config.benchmark.keep_branches
    if args.task_id:
        run = runner.run_execution_benchmark(harness, args.task_id, models, keep_branches=keep)
    else:
        loop = TaskLoop(harness.store, harness)
        run = runner.run_loop_benchmark(loop, _loop_options(config, args), models, keep_branches=keep)

    print(f"\nBenchmark run {run.run_id} (base branch {run.base_branch})")
    for result in run.results:
        print(f"  {result.model_id}: {result.status} in {result.duration_seconds:.1f}s"
              f"{f' [{result.branch}]' if result.branch else ''}"
              f"{f' - {result.error}' if result.error else ''}")
    return 0


def cmd_runs(config: ProjectConfig, args: argparse.Namespace) -> int:
    storage = BenchmarkStorage(config.benchmark_dir)
    if args.run_id_to_show:
        run = storage.get_run(args.run_id_to_show)
        if run is None:
            print(f"Benchmark run not found: {args.run_id_to_show}")
            return 1
        print(json.dumps({
            **run.metadata(),
            "input": run.input,
            "results": [run.result_to_dict(r) for r in run.results],
        }, indent=2, default=str))
        return 0

    for summary in storage.list_runs():
        print(f"{summary['id']}  {summary['command']}  {summary['timestamp']}")
    return 0


def _add_execution_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tasks", default="tasks.yaml", help="Path to tasks YAML file")
    parser.add_argument("--tool", help="Executor: opencode, claude, gemini, codex, kilo")
    parser.add_argument("--model", help="Executor model")
    parser.add_argument("--verify", action="append", help="Verification command (repeatable)")
    parser.add_argument("--max-retries", type=int, help="Enable retries with this many retries")
    parser.add_argument("--try-models", help='Escalation ladder, e.g. "gpt-4o-mini,claude:sonnet"')
    parser.add_argument("--plan", action="store_true", help="Run the planning phase")
    parser.add_argument("--review", action="store_true", help="Run the AI review phase")
    parser.add_argument("--auto-commit", action="store_true", help="Commit the work after success")
    parser.add_argument("--message", help="Custom message sent to the executor")
    parser.add_argument("--dry", action="store_true", help="Log commands without running them")
    parser.add_argument("--run-id", default="taskloop", help="Run id for the JSONL event log")


def _add_loop_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--ids", nargs="*", help="Explicit task ids")
    parser.add_argument("--status", help="Filter by status")
    parser.add_argument("--tag", help="Filter by tag")
    parser.add_argument("--include-completed", action="store_true")
    parser.add_argument("--notify", action="append", help="Notification URL or command (repeatable)")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run AI coding tasks with verification and retries")
    parser.add_argument("--config", help="Path to project YAML config")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    p_execute = sub.add_parser("execute", help="Execute one task")
    p_execute.add_argument("task_id")
    _add_execution_args(p_execute)

    p_loop = sub.add_parser("loop", help="Execute tasks sequentially, stopping at the first failure")
    _add_execution_args(p_loop)
    _add_loop_args(p_loop)

    p_bench = sub.add_parser("benchmark", help="Compare models on isolated git branches")
    p_bench.add_argument("--task-id", help="Benchmark a single task instead of a loop")
    p_bench.add_argument("--models", help='Comma separated provider:model list')
    p_bench.add_argument("--delete-branches", action="store_true")
    _add_execution_args(p_bench)
    _add_loop_args(p_bench)

    p_runs = sub.add_parser("runs", help="List or show stored benchmark runs")
    p_runs.add_argument("run_id_to_show", nargs="?", metavar="RUN_ID")

    args = parser.parse_args()
    setup_logging(args.log_level.upper())

    config = load_config(args.config) if args.config else ProjectConfig()
    if args.command != "runs":
        config = _apply_overrides(config, args)

    handlers = {
        "execute": cmd_execute,
        "loop": cmd_loop,
        "benchmark": cmd_benchmark,
        "runs": cmd_runs,
    }
    try:
        code = handlers[args.command](config, args)
    except TaskLoopError as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
