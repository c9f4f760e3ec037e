"""Tests for the branch-isolated benchmark runner and its storage."""

import tempfile
from pathlib import Path

import pytest

from agent_taskloop.benchmark.base import FAIL, PASS, BenchmarkResult, BenchmarkRun
from agent_taskloop.benchmark.runner import BenchmarkRunner, TargetOutcome, benchmark_branch_name
from agent_taskloop.benchmark.storage import BenchmarkStorage
from agent_taskloop.config import BenchmarkModelConfig, LLMConfig, LoopOptions, TaskExecutionConfig
from agent_taskloop.errors import BenchmarkAbortedError, DirtyWorkingTreeError
from agent_taskloop.git import GitClient
from agent_taskloop.harness import TaskHarness
from agent_taskloop.loop import TaskLoop
from agent_taskloop.tasks import InMemoryTaskStore, Task

from fakes import FakeAIOps, FakeExecutorFactory, FakeShell, command_failure, init_git_repo, requires_git

MODELS = [
    BenchmarkModelConfig(provider="openai", model="gpt-4o"),
    BenchmarkModelConfig(provider="anthropic", model="claude-sonnet-4-6"),
]


def _clean_repo(**extra) -> FakeShell:
    rules = {
        "git status --porcelain": "",
        "git rev-parse --abbrev-ref HEAD": "main\n",
    }
    rules.update(extra)
    return FakeShell(rules)


def _make_runner(shell, tmpdir, ai=None) -> BenchmarkRunner:
    return BenchmarkRunner(GitClient(shell), BenchmarkStorage(tmpdir), ai or FakeAIOps())


def test_branch_name_is_sanitized():
    assert benchmark_branch_name("42", "openai/gpt-4o.mini", 1700) == "bench/42/openai-gpt-4o-mini-1700"


def test_dirty_tree_refuses_before_any_branch():
    shell = FakeShell({"git status --porcelain": " M src/app.py\n"})
    with tempfile.TemporaryDirectory() as tmpdir:
        runner = _make_runner(shell, tmpdir)
        with pytest.raises(DirtyWorkingTreeError):
            runner.run_workflow_benchmark(lambda m: TargetOutcome(success=True), MODELS)
        assert list(Path(tmpdir).iterdir()) == []
    assert shell.git_commands() == ["git status --porcelain"]


def test_each_model_runs_on_its_own_branch_with_swapped_config():
    shell = _clean_repo()
    ai = FakeAIOps()
    ai.config = LLMConfig(provider="anthropic", model="default-model")
    seen = []

    def workflow(model):
        seen.append((ai.config.provider, ai.config.model))
        return TargetOutcome(success=True, output={"files": 3})

    with tempfile.TemporaryDirectory() as tmpdir:
        runner = _make_runner(shell, tmpdir, ai)
        run = runner.run_workflow_benchmark(workflow, MODELS, keep_branches=False)
        stored = BenchmarkStorage(tmpdir).get_run(run.run_id)

    assert seen == [("openai", "gpt-4o"), ("anthropic", "claude-sonnet-4-6")]
    assert ai.config.model == "default-model"
    assert [r.status for r in run.results] == [PASS, PASS]
    assert run.base_branch == "main"

    creates = [c for c in shell.commands if c.startswith("git checkout -b")]
    assert len(creates) == 2
    assert creates[0].startswith("git checkout -b bench/workflow/gpt-4o-")
    assert creates[0].endswith(" main")
    assert shell.commands.count("git checkout main") == 2
    assert len([c for c in shell.commands if c.startswith("git branch -D bench/workflow/")]) == 2

    assert stored is not None
    assert {r.model_id for r in stored.results} == {"openai:gpt-4o", "anthropic:claude-sonnet-4-6"}


def test_task_failure_is_recorded_and_next_model_runs():
    shell = _clean_repo()
    calls = []

    def workflow(model):
        calls.append(model.model)
        if model.model == "gpt-4o":
            raise RuntimeError("agent crashed")
        return TargetOutcome(success=True)

    with tempfile.TemporaryDirectory() as tmpdir:
        run = _make_runner(shell, tmpdir).run_workflow_benchmark(workflow, MODELS)

    assert calls == ["gpt-4o", "claude-sonnet-4-6"]
    assert run.results[0].status == FAIL
    assert run.results[0].error == "agent crashed"
    assert run.results[1].status == PASS
    assert shell.commands.count("git checkout main") == 2
    assert not any(c.startswith("git branch -D") for c in shell.commands)


def test_git_failure_with_successful_recovery_continues():
    shell = _clean_repo(**{"git checkout -b": command_failure(stderr="branch exists")})
    calls = []

    with tempfile.TemporaryDirectory() as tmpdir:
        run = _make_runner(shell, tmpdir).run_workflow_benchmark(
            lambda m: calls.append(m) or TargetOutcome(success=True), MODELS
        )
        assert (Path(tmpdir) / run.run_id / "metadata.json").exists()

    assert calls == []
    assert [r.status for r in run.results] == [FAIL, FAIL]
    assert "branch exists" in run.results[0].error
    assert shell.commands.count("git checkout -f main") == 2


def test_git_failure_without_recovery_aborts_run():
    shell = _clean_repo(**{
        "git checkout -b": command_failure(stderr="index.lock exists"),
        "git checkout -f": command_failure(stderr="cannot checkout"),
    })
    calls = []

    with tempfile.TemporaryDirectory() as tmpdir:
        runner = _make_runner(shell, tmpdir)
        with pytest.raises(BenchmarkAbortedError):
            runner.run_workflow_benchmark(lambda m: calls.append(m) or TargetOutcome(success=True), MODELS)
        assert list(Path(tmpdir).iterdir()) == []

    assert calls == []
    assert len([c for c in shell.commands if c.startswith("git checkout -b")]) == 1


def test_dry_run_makes_no_git_calls():
    shell = _clean_repo()
    with tempfile.TemporaryDirectory() as tmpdir:
        run = _make_runner(shell, tmpdir).run_workflow_benchmark(
            lambda m: TargetOutcome(success=True), MODELS, dry=True
        )
    assert shell.commands == []
    assert all(r.branch is None for r in run.results)


def test_execution_benchmark_runs_task_per_model():
    shell = _clean_repo()
    ai = FakeAIOps()
    store = InMemoryTaskStore([Task(task_id="1", title="Add login")])
    factory = FakeExecutorFactory()
    harness = TaskHarness(store, ai_ops=ai, exec_fn=shell, executor_factory=factory)
    models = [
        BenchmarkModelConfig(provider="openai", model="gpt-4o", executor="codex"),
        BenchmarkModelConfig(provider="anthropic", model="claude-sonnet-4-6"),
    ]

    with tempfile.TemporaryDirectory() as tmpdir:
        run = _make_runner(shell, tmpdir, ai).run_execution_benchmark(
            harness, "1", models, config=TaskExecutionConfig(tool="claude")
        )

    assert run.command == "execution-benchmark"
    assert [r.status for r in run.results] == [PASS, PASS]
    assert [c["tool"] for c in factory.calls] == ["codex", "claude"]
    assert [c["config"].model for c in factory.calls] == ["gpt-4o", "claude-sonnet-4-6"]
    assert run.results[0].output["attempts"] == 1


def test_loop_benchmark_reports_failed_tasks():
    shell = _clean_repo()
    ai = FakeAIOps()
    store = InMemoryTaskStore([Task(task_id="A", title="A")])
    factory = FakeExecutorFactory([RuntimeError("boom")] * 2)
    harness = TaskHarness(store, ai_ops=ai, exec_fn=shell, executor_factory=factory)
    loop = TaskLoop(store, harness, notifier=lambda targets, result: None)
    options = LoopOptions(execution=TaskExecutionConfig(max_retries=1))

    with tempfile.TemporaryDirectory() as tmpdir:
        run = _make_runner(shell, tmpdir, ai).run_loop_benchmark(loop, options, MODELS[:1])

    assert run.results[0].status == FAIL
    assert run.results[0].error == "1 tasks failed"
    assert run.results[0].output["failed_tasks"] == 1


def test_storage_round_trip_and_listing():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = BenchmarkStorage(tmpdir)
        older = BenchmarkRun(run_id="bench-a-1", timestamp=1.0, command="workflow-benchmark", base_branch="main")
        newer = BenchmarkRun(
            run_id="bench-b-2",
            timestamp=2.0,
            command="execution-benchmark",
            base_branch="main",
            input={"task_id": "1"},
            results=[BenchmarkResult(model_id="openai:gpt-4o", status=PASS, branch="bench/1/gpt-4o-2", timestamp=2.5)],
        )
        storage.save_run(older)
        run_dir = storage.save_run(newer)

        assert (run_dir / "results" / "openai-gpt-4o.json").exists()
        assert [r["id"] for r in storage.list_runs()] == ["bench-b-2", "bench-a-1"]

        loaded = storage.get_run("bench-b-2")
        assert loaded.input == {"task_id": "1"}
        assert loaded.results[0].branch == "bench/1/gpt-4o-2"
        assert storage.get_run("missing") is None


def test_storage_refuses_to_overwrite():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = BenchmarkStorage(tmpdir)
        run = BenchmarkRun(run_id="bench-x-1", timestamp=1.0, command="c", base_branch="main")
        storage.save_run(run)
        with pytest.raises(FileExistsError):
            storage.save_run(run)


@requires_git
def test_leftover_work_is_kept_on_model_branch():
    with tempfile.TemporaryDirectory() as tmpdir:
        repo = Path(tmpdir) / "repo"
        repo.mkdir()
        exec_fn = init_git_repo(repo)
        git = GitClient(exec_fn)
        base = git.current_branch()
        saw_leftover = []

        def workflow(model):
            leftover = repo / "leftover.txt"
            saw_leftover.append(leftover.exists())
            leftover.write_text(model.model)
            (repo / "README.md").write_text(f"edited by {model.model}\n")
            return TargetOutcome(success=False, error="tests failed")

        models = [
            BenchmarkModelConfig(provider="openai", model="m1"),
            BenchmarkModelConfig(provider="openai", model="m2"),
        ]
        runner = BenchmarkRunner(git, BenchmarkStorage(Path(tmpdir) / "runs"), FakeAIOps())
        run = runner.run_workflow_benchmark(workflow, models)

        assert saw_leftover == [False, False]
        assert [r.status for r in run.results] == [FAIL, FAIL]
        assert git.current_branch() == base
        assert git.is_clean()
        assert (repo / "README.md").read_text() == "base\n"
        assert exec_fn(f"git show {run.results[0].branch}:leftover.txt").stdout == "m1"
        assert exec_fn(f"git show {run.results[1].branch}:README.md").stdout == "edited by m2\n"
