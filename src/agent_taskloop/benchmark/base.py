"""Benchmark run and per-model result records."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

PASS = "PASS"
FAIL = "FAIL"


@dataclass
class BenchmarkResult:
    """Outcome of running one model on its isolation branch."""
    model_id: str
    status: str
    duration_seconds: float = 0.0
    branch: str | None = None
    output: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    timestamp: float = 0.0

    @property
    def passed(self) -> bool:
        return self.status == PASS


@dataclass
class BenchmarkRun:
    """A completed benchmark run. Persisted once, never mutated."""
    run_id: str
    timestamp: float
    command: str
    base_branch: str
    input: dict[str, Any] = field(default_factory=dict)
    config: dict[str, Any] = field(default_factory=dict)
    results: list[BenchmarkResult] = field(default_factory=list)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    def metadata(self) -> dict[str, Any]:
        return {
            "id": self.run_id,
            "timestamp": self.timestamp,
            "command": self.command,
            "base_branch": self.base_branch,
            "config": self.config,
        }

    @staticmethod
    def result_to_dict(result: BenchmarkResult) -> dict[str, Any]:
        return asdict(result)
