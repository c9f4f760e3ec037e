"""Tests for loop notifications and lifecycle hooks."""

import json

import pytest

from agent_taskloop import notifications
from agent_taskloop.hooks import EXECUTION_END, EXECUTION_START, HookRegistry
from agent_taskloop.loop import ExecuteLoopResult, TaskRunSummary
from agent_taskloop.shell import CommandError


def _make_result(failed: int = 0) -> ExecuteLoopResult:
    return ExecuteLoopResult(
        total_tasks=2,
        completed_tasks=2 - failed,
        failed_tasks=failed,
        task_results=[TaskRunSummary(task_id="1", title="Add login", final_status="completed")],
        duration_seconds=4.5,
    )


class _FakeResponse:
    status = 200

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def test_summary_env_exposes_counts():
    env = notifications.summary_env(notifications.build_summary(_make_result(failed=1)))
    assert env["TASK_LOOP_TOTAL"] == "2"
    assert env["TASK_LOOP_COMPLETED"] == "1"
    assert env["TASK_LOOP_FAILED"] == "1"
    assert env["TASK_LOOP_SUCCESS"] == "false"
    assert json.loads(env["TASK_LOOP_RESULT"])["duration_seconds"] == 4.5


def test_command_target_receives_summary_env(monkeypatch):
    calls = []
    monkeypatch.setattr(notifications, "run_shell", lambda command, env=None: calls.append((command, env)))

    notifications.send_notifications(["./notify.sh"], _make_result())

    assert len(calls) == 1
    command, env = calls[0]
    assert command == "./notify.sh"
    assert env["TASK_LOOP_SUCCESS"] == "true"


def test_url_target_receives_full_result(monkeypatch):
    requests = []

    def fake_urlopen(req, timeout=None):
        requests.append((req, timeout))
        return _FakeResponse()

    monkeypatch.setattr(notifications.urllib_request, "urlopen", fake_urlopen)

    notifications.send_notifications(["https://hooks.example.com/done"], _make_result())

    req, timeout = requests[0]
    assert req.get_method() == "POST"
    assert req.full_url == "https://hooks.example.com/done"
    assert timeout == notifications.POST_TIMEOUT_SECONDS
    body = json.loads(req.data.decode("utf-8"))
    assert body["total_tasks"] == 2
    assert body["task_results"][0]["task_id"] == "1"


def test_failing_target_does_not_stop_others(monkeypatch):
    commands = []

    def fake_run_shell(command, env=None):
        commands.append(command)
        if command == "false":
            raise CommandError("Command failed with exit code 1: false", returncode=1)

    def unreachable(req, timeout=None):
        raise OSError("connection refused")

    monkeypatch.setattr(notifications, "run_shell", fake_run_shell)
    monkeypatch.setattr(notifications.urllib_request, "urlopen", unreachable)

    notifications.send_notifications(["false", "http://localhost:9/x", "echo done"], _make_result())

    assert commands == ["false", "echo done"]


def test_no_targets_is_a_noop(monkeypatch):
    monkeypatch.setattr(notifications, "run_shell", lambda *a, **k: pytest.fail("should not run"))
    notifications.send_notifications([], _make_result())


def test_hook_handler_errors_are_isolated():
    hooks = HookRegistry()
    seen = []

    def broken(payload):
        raise RuntimeError("handler bug")

    hooks.on(EXECUTION_START, broken)
    hooks.on(EXECUTION_START, lambda payload: seen.append(payload["task_id"]))
    hooks.emit(EXECUTION_START, {"task_id": "7"})

    assert seen == ["7"]


def test_hook_registration_rules():
    hooks = HookRegistry()
    seen = []
    handler = seen.append

    with pytest.raises(ValueError):
        hooks.on("execution:unknown", handler)

    hooks.on(EXECUTION_END, handler)
    hooks.on(EXECUTION_END, handler)
    hooks.emit(EXECUTION_END, {"n": 1})
    hooks.off(EXECUTION_END, handler)
    hooks.emit(EXECUTION_END, {"n": 2})

    assert seen == [{"n": 1}]
