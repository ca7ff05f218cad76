from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import timezone
from pathlib import Path

import duckdb
import pandas as pd

from blast.config import RunConfig
from blast.metrics import Summary

_SUMMARY_COLUMNS = (
    "requests_dispatched",
    "requests_seen",
    "success_count",
    "error_count",
    "total_bytes",
    "success_rate",
    "requests_per_second",
    "mean_latency_ms",
    "fastest_ms",
    "slowest_ms",
    "elapsed_sec",
)


@dataclass(slots=True)
class Storage:
    db_path: Path

    def __post_init__(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> duckdb.DuckDBPyConnection:
        return duckdb.connect(str(self.db_path))

    def _init_schema(self) -> None:
        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS run_summary (
                    run_id TEXT PRIMARY KEY,
                    created_at TIMESTAMP,
                    target_url TEXT,
                    concurrency INTEGER,
                    config_json TEXT,
                    notes TEXT,
                    requests_dispatched INTEGER,
                    requests_seen INTEGER,
                    success_count INTEGER,
                    error_count INTEGER,
                    total_bytes BIGINT,
                    success_rate DOUBLE,
                    requests_per_second DOUBLE,
                    mean_latency_ms DOUBLE,
                    fastest_ms DOUBLE,
                    slowest_ms DOUBLE,
                    elapsed_sec DOUBLE,
                    error_types_json TEXT
                );
                """
            )

    def run_exists(self, run_id: str) -> bool:
        with self._connect() as con:
            result = con.execute(
                "SELECT COUNT(*) FROM run_summary WHERE run_id = ?",
                [run_id],
            ).fetchone()
            return bool(result and result[0] > 0)

    def save_run(self, config: RunConfig, run_id: str, summary: Summary) -> None:
        row = {
            "run_id": run_id,
            "created_at": config.created_at.astimezone(timezone.utc).replace(tzinfo=None),
            "target_url": config.target.url,
            "concurrency": config.concurrency,
            "config_json": json.dumps(config.to_metadata()),
            "notes": config.notes,
        }
        row.update({column: getattr(summary, column) for column in _SUMMARY_COLUMNS})
        row["error_types_json"] = json.dumps(dict(summary.error_types))
        summary_df = pd.DataFrame([row])
        with self._connect() as con:
            con.execute("INSERT INTO run_summary SELECT * FROM summary_df")

    def list_runs(self) -> pd.DataFrame:
        with self._connect() as con:
            return con.execute(
                """
                SELECT run_id, created_at, target_url, requests_dispatched, concurrency,
                       success_rate, requests_per_second, mean_latency_ms, notes
                FROM run_summary ORDER BY created_at DESC
                """
            ).fetchdf()

    def load_summary(self, run_id: str) -> Summary | None:
        columns = ", ".join(_SUMMARY_COLUMNS)
        with self._connect() as con:
            row = con.execute(
                f"SELECT {columns}, error_types_json FROM run_summary WHERE run_id = ?",
                [run_id],
            ).fetchone()
        if not row:
            return None
        values = dict(zip(_SUMMARY_COLUMNS, row[:-1]))
        return Summary(**values, error_types=json.loads(row[-1]))
