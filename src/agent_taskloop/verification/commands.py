"""Run shell verification commands (lint, tests, build) after an attempt."""

from __future__ import annotations

import logging

from agent_taskloop.shell import CommandError, ExecFn, run_shell

from .base import ValidationResult

logger = logging.getLogger(__name__)

DRY_RUN_OUTPUT = "DRY RUN - not executed"

VERIFICATION_ERROR_PROMPT = """## Verification Failed: {command}

**Error Output**:
```
{error}
```

Please analyze this error carefully and fix the issue. Common causes include:
- Syntax errors in the code
- Type errors (missing types, wrong types)
- Missing imports or dependencies
- Logic errors or incorrect implementations
- Build configuration issues"""


def run_validations(
    commands: list[str],
    dry: bool,
    exec_fn: ExecFn = run_shell,
) -> list[ValidationResult]:
    """Run commands in order, stopping at the first failure.

    The returned list has one entry per command that was attempted, so a
    failure at index ``i`` yields ``i + 1`` results.
    """
    results: list[ValidationResult] = []
    if not commands:
        return results

    if dry:
        logger.info("DRY RUN - verification commands that would run:")
        for command in commands:
            logger.info("  %s", command)
            results.append(ValidationResult(command=command, success=True, output=DRY_RUN_OUTPUT))
        return results

    total = len(commands)
    logger.info("Running %d verification command%s...", total, "s" if total > 1 else "")

    for i, command in enumerate(commands, start=1):
        logger.info("Running verification [%d/%d]: %s", i, total, command)
        try:
            out = exec_fn(command)
        except Exception as e:
            stdout = e.stdout if isinstance(e, CommandError) else ""
            stderr = e.stderr if isinstance(e, CommandError) else ""
            logger.error("Verification failed: %s", command)
            if stdout.strip():
                logger.warning("  stdout: %s", stdout.strip())
            if stderr.strip():
                logger.error("  stderr: %s", stderr.strip())
            results.append(ValidationResult(
                command=command,
                success=False,
                error=stderr or stdout or str(e),
            ))
            break

        logger.info("Verification passed: %s", command)
        results.append(ValidationResult(command=command, success=True, output=out.stdout.strip()))

    if all(r.success for r in results):
        logger.info("All %d verification%s passed", total, "s" if total > 1 else "")
    return results


def format_verification_error(result: ValidationResult) -> str:
    """Turn a failed verification into a remediation prompt for the next attempt."""
    return VERIFICATION_ERROR_PROMPT.format(
        command=result.command,
        error=result.error or "No error output captured",
    )
