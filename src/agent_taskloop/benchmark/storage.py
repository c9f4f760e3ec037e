"""Append-only on-disk storage for benchmark runs.

Layout per run::

    <base_dir>/<run_id>/metadata.json
    <base_dir>/<run_id>/input.json
    <base_dir>/<run_id>/results/<model-id>.json
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from .base import BenchmarkResult, BenchmarkRun

logger = logging.getLogger(__name__)


def result_file_name(model_id: str) -> str:
    return re.sub(r"[:/]", "-", model_id) + ".json"


class BenchmarkStorage:
    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)

    def save_run(self, run: BenchmarkRun) -> Path:
        """Write a run. Raises FileExistsError rather than overwrite one."""
        run_dir = self.base_dir / run.run_id
        if run_dir.exists():
            raise FileExistsError(f"Benchmark run already exists: {run.run_id}")
        results_dir = run_dir / "results"
        results_dir.mkdir(parents=True)

        _write_json(run_dir / "metadata.json", run.metadata())
        _write_json(run_dir / "input.json", run.input)
        for result in run.results:
            path = results_dir / result_file_name(result.model_id)
            if path.exists():
                # Same model listed twice in one run
                path = results_dir / f"{path.stem}-{int(result.timestamp * 1000)}.json"
            _write_json(path, BenchmarkRun.result_to_dict(result))

        logger.info("Saved benchmark run %s to %s", run.run_id, run_dir)
        return run_dir

    def get_run(self, run_id: str) -> BenchmarkRun | None:
        run_dir = self.base_dir / run_id
        if not run_dir.is_dir():
            return None
        try:
            metadata = _read_json(run_dir / "metadata.json")
            input_data = _read_json(run_dir / "input.json")
            results = [
                BenchmarkResult(**_read_json(path))
                for path in sorted((run_dir / "results").glob("*.json"))
            ]
        except (OSError, ValueError, TypeError) as e:
            logger.error("Failed to load benchmark run %s: %s", run_id, e)
            return None

        results.sort(key=lambda r: r.timestamp)
        return BenchmarkRun(
            run_id=metadata["id"],
            timestamp=metadata["timestamp"],
            command=metadata["command"],
            base_branch=metadata.get("base_branch", ""),
            input=input_data,
            config=metadata.get("config", {}),
            results=results,
        )

    def list_runs(self) -> list[dict[str, Any]]:
        """Run summaries, newest first."""
        if not self.base_dir.is_dir():
            return []
        runs = []
        for entry in self.base_dir.iterdir():
            metadata_path = entry / "metadata.json"
            if not metadata_path.is_file():
                continue
            try:
                metadata = _read_json(metadata_path)
            except (OSError, ValueError) as e:
                logger.warning("Skipping unreadable benchmark run %s: %s", entry.name, e)
                continue
            runs.append({
                "id": metadata["id"],
                "timestamp": metadata["timestamp"],
                "command": metadata["command"],
            })
        return sorted(runs, key=lambda r: r["timestamp"], reverse=True)


def _write_json(path: Path, data: Any) -> None:
    with open(path, "w") as f:
        json.dump(data, f, indent=2, default=str)


def _read_json(path: Path) -> Any:
    with open(path) as f:
        return json.load(f)
