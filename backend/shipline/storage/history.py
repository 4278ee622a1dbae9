"""Run history ledger in JSONL format, one file per day."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from shipline.pipeline.models import PipelineRunResult

logger = logging.getLogger(__name__)


def _runs_dir(data_dir: Path) -> Path:
    return data_dir / "runs"


def record_run(result: PipelineRunResult, data_dir: Path) -> Path:
    """Append a finished run to data/runs/{date}.jsonl.

    Note:
        Each run is a single JSON object on one line.
        File is created if it doesn't exist.
    """
    runs_dir = _runs_dir(data_dir)
    runs_dir.mkdir(parents=True, exist_ok=True)

    date_str = result.started_at.strftime("%Y-%m-%d")
    ledger_path = runs_dir / f"{date_str}.jsonl"

    with open(ledger_path, "a", encoding="utf-8") as f:
        f.write(result.model_dump_json() + "\n")

    logger.info(f"Recorded run {result.run_id} to {ledger_path}")
    return ledger_path


def load_runs(data_dir: Path, limit: int | None = None) -> list[PipelineRunResult]:
    """Load recorded runs, most recent first."""
    runs_dir = _runs_dir(data_dir)
    if not runs_dir.exists():
        return []

    runs: list[PipelineRunResult] = []
    for ledger_path in sorted(runs_dir.glob("*.jsonl")):
        with open(ledger_path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    runs.append(PipelineRunResult.model_validate_json(line))
                except ValidationError as e:
                    logger.warning(f"Skipping corrupt entry {ledger_path}:{line_no}: {e}")

    runs.sort(key=lambda r: r.started_at, reverse=True)
    return runs[:limit] if limit is not None else runs


def next_build_number(data_dir: Path) -> int:
    """One more than the highest recorded build number (1 for an empty ledger)."""
    runs = load_runs(data_dir)
    return max((r.build_number for r in runs), default=0) + 1
