"""Storage layer for Shipline - file-based run history.

This package provides:
- Run ledger (append finished runs to data/runs/{date}.jsonl)
- History queries (recent runs, next build number)
"""

from .history import load_runs, next_build_number, record_run

__all__ = [
    "record_run",
    "load_runs",
    "next_build_number",
]
