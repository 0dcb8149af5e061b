"""
Repository for pipeline run audit records (``sync_runs`` table).
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from item_sync.db.repositories.base import BaseRepository, decode_json
from item_sync.models.meta import RunMetadata
from item_sync.utils.time_utils import from_iso, to_iso

logger = logging.getLogger(__name__)


class SyncRunRepository(BaseRepository):
    """Read/write access to ``sync_runs``."""

    def insert_run(self, run: RunMetadata) -> int:
        """Insert a new run record and return its ``run_id``."""
        self.execute(
            """
            INSERT INTO sync_runs (
                run_slug, pipeline_stage, status, request_params, from_cache,
                config_snapshot, rows_processed, error_message, started_at, finished_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                run.run_slug,
                run.pipeline_stage,
                run.status,
                json.dumps(run.request_params, default=str),
                int(run.from_cache),
                json.dumps(run.config_snapshot, default=str),
                run.rows_processed,
                run.error_message,
                to_iso(run.started_at),
                to_iso(run.finished_at),
            ),
        )
        return self.last_insert_rowid()

    def update_run(self, run: RunMetadata) -> None:
        """Update the mutable fields of an existing run record.

        Raises:
            ValueError: If ``run.run_id`` is ``None``.
        """
        if run.run_id is None:
            raise ValueError("Cannot update RunMetadata without a run_id.")
        self.execute(
            """
            UPDATE sync_runs SET
                status         = ?,
                from_cache     = ?,
                rows_processed = ?,
                error_message  = ?,
                finished_at    = ?
            WHERE run_id = ?;
            """,
            (
                run.status,
                int(run.from_cache),
                run.rows_processed,
                run.error_message,
                to_iso(run.finished_at),
                run.run_id,
            ),
        )

    def get_run_by_slug(self, run_slug: str) -> Optional[RunMetadata]:
        row = self.fetchone("SELECT * FROM sync_runs WHERE run_slug = ?;", (run_slug,))
        return _row_to_run(row) if row else None

    def get_recent_runs(
        self, pipeline_stage: Optional[str] = None, limit: int = 20
    ) -> list[RunMetadata]:
        """Fetch recent run records, most recent first, optionally by stage."""
        if pipeline_stage:
            rows = self.fetchall(
                """
                SELECT * FROM sync_runs
                WHERE pipeline_stage = ?
                ORDER BY started_at DESC, run_id DESC LIMIT ?;
                """,
                (pipeline_stage, limit),
            )
        else:
            rows = self.fetchall(
                "SELECT * FROM sync_runs ORDER BY started_at DESC, run_id DESC LIMIT ?;",
                (limit,),
            )
        return [_row_to_run(r) for r in rows]


def _row_to_run(row: sqlite3.Row) -> RunMetadata:
    return RunMetadata(
        run_id=row["run_id"],
        run_slug=row["run_slug"],
        pipeline_stage=row["pipeline_stage"],
        status=row["status"],
        request_params=decode_json(row["request_params"], {}),
        from_cache=bool(row["from_cache"]),
        config_snapshot=decode_json(row["config_snapshot"], {}),
        rows_processed=row["rows_processed"],
        error_message=row["error_message"],
        started_at=from_iso(row["started_at"]),
        finished_at=from_iso(row["finished_at"]),
    )
