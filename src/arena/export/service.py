from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

import duckdb

EXPORT_DATASETS: dict[str, tuple[str, str]] = {
    "arena_matches": ("matches", "archived_at, match_id"),
    "arena_events": ("events", "match_id, turn_number, created_at"),
    "arena_turn_ledger": ("turn_ledger", "match_id, turn_number"),
}
EXPORT_FORMATS: dict[str, str] = {
    "csv": "HEADER, DELIMITER ','",
    "parquet": "FORMAT PARQUET",
}


def _sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class ExportService:
    """Copies the archive tables out of DuckDB as flat files, one file per table and format."""

    def __init__(self, archive_db: Path, formats: Sequence[str] = ("csv", "parquet")) -> None:
        unknown = sorted(set(formats) - set(EXPORT_FORMATS))
        if unknown:
            raise ValueError(f"unsupported export formats: {', '.join(unknown)}")
        self.archive_db = archive_db
        self.formats = tuple(formats)

    def export_required_datasets(self, output_dir: Path, match_id: str | None = None) -> list[Path]:
        if not self.archive_db.exists():
            raise RuntimeError(f"archive database not found: {self.archive_db}")
        output_dir.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []
        with duckdb.connect(str(self.archive_db)) as conn:
            for table, (stem, order_by) in EXPORT_DATASETS.items():
                query = f"SELECT * FROM {table}"
                if match_id is not None:
                    query += f" WHERE match_id = {_sql_literal(match_id)}"
                query += f" ORDER BY {order_by}"
                for fmt in self.formats:
                    written.append(self._copy(conn, query, output_dir / f"{stem}.{fmt}", EXPORT_FORMATS[fmt]))
        return written

    def _copy(self, conn: Any, query: str, target: Path, options: str) -> Path:
        conn.execute(f"COPY ({query}) TO '{target.as_posix()}' ({options})")
        return target
