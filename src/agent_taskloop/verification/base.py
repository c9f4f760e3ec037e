"""Verification result types."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ValidationResult:
    """Outcome of one verification command."""
    command: str
    success: bool
    output: str | None = None
    error: str | None = None


def all_passed(results: list[ValidationResult]) -> bool:
    return all(r.success for r in results)


def first_failure(results: list[ValidationResult]) -> ValidationResult | None:
    for r in results:
        if not r.success:
            return r
    return None
