"""Tests for the verification command runner."""

from agent_taskloop.verification import (
    ValidationResult,
    all_passed,
    first_failure,
    format_verification_error,
    run_validations,
)
from agent_taskloop.verification.commands import DRY_RUN_OUTPUT

from fakes import FakeShell, command_failure


def test_empty_command_list():
    shell = FakeShell()
    assert run_validations([], dry=False, exec_fn=shell) == []
    assert shell.commands == []


def test_dry_run_records_success_without_running():
    shell = FakeShell()
    results = run_validations(["lint", "test"], dry=True, exec_fn=shell)
    assert [r.command for r in results] == ["lint", "test"]
    assert all(r.success and r.output == DRY_RUN_OUTPUT for r in results)
    assert shell.commands == []


def test_all_commands_pass_in_order():
    shell = FakeShell({"lint": "clean\n", "test": "3 passed\n"})
    results = run_validations(["lint", "test"], dry=False, exec_fn=shell)
    assert shell.commands == ["lint", "test"]
    assert all_passed(results)
    assert results[1].output == "3 passed"


def test_lint_failure_stops_before_test():
    shell = FakeShell({"lint": command_failure(stderr="syntax error")})
    results = run_validations(["lint", "test"], dry=False, exec_fn=shell)

    assert results == [ValidationResult(command="lint", success=False, error="syntax error")]
    assert shell.commands == ["lint"]


def test_failure_at_index_stops_later_commands():
    commands = ["a", "b", "c", "d"]
    shell = FakeShell({"c": command_failure(stdout="boom")})
    results = run_validations(commands, dry=False, exec_fn=shell)

    assert len(results) == 3
    assert shell.commands == ["a", "b", "c"]
    assert first_failure(results).command == "c"
    assert results[-1].error == "boom"


def test_failure_without_output_uses_message():
    shell = FakeShell({"build": RuntimeError("spawn failed")})
    results = run_validations(["build"], dry=False, exec_fn=shell)
    assert results[0].error == "spawn failed"


def test_format_verification_error():
    text = format_verification_error(ValidationResult(command="npm test", success=False, error="1 failing"))
    assert "npm test" in text
    assert "1 failing" in text
    assert "Missing imports" in text
