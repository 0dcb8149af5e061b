"""
Abstract base class for pipeline stages.

Every stage follows the same contract:
  1. Receive ``AppConfig`` at construction.
  2. ``run(**kwargs)`` is the sole public API.
  3. ``run()`` ensures the schema exists, creates a ``RunMetadata`` record,
     calls ``_execute()``, and persists the run record with its final status.
  4. ``_execute()`` is the stage-specific implementation.

Stages never swallow errors: a failing ``_execute()`` is recorded as
``status='failed'`` and then re-raised to the caller.

Usage::

    class MyStage(PipelineStage):
        stage_name = "import"

        def _execute(self, run: RunMetadata, **kwargs) -> int:
            return 42

    run = MyStage(config=app_config).run(source_path="items.json")
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from uuid import uuid4

from item_sync.config import AppConfig
from item_sync.db.connection import get_connection
from item_sync.db.repositories.run_repo import SyncRunRepository
from item_sync.db.schema import apply_schema
from item_sync.models.meta import RunMetadata
from item_sync.utils.time_utils import Clock, utcnow

logger = logging.getLogger(__name__)


class PipelineStage(ABC):
    """Abstract base for all pipeline stages.

    Subclasses must:
      1. Set the ``stage_name`` class variable.
      2. Implement ``_execute(run, **kwargs) -> int``.

    Attributes:
        stage_name: A valid ``RunMetadata.pipeline_stage`` value.
        config: The application configuration for this run.
        db_path: SQLite path (defaults to ``config.database.db_path``).
        clock: Source of "now" for run timestamps and sync stamps.
    """

    stage_name: str

    def __init__(
        self,
        config: AppConfig,
        db_path: str | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.config = config
        self.db_path = db_path or config.database.db_path
        self.clock = clock

    def connect(self):
        """Open a connection with this stage's database settings."""
        return get_connection(
            self.db_path,
            wal_mode=self.config.database.wal_mode,
            busy_timeout_ms=self.config.database.busy_timeout_ms,
        )

    def run(self, **kwargs) -> RunMetadata:
        """Execute this pipeline stage.

        Returns:
            ``RunMetadata`` with ``status='success'``, ``rows_processed`` and
            ``finished_at`` set.

        Raises:
            Exception: Re-raises any exception from ``_execute()`` after
                recording ``status='failed'``.
        """
        with self.connect() as conn:
            apply_schema(conn)

        run = RunMetadata(
            run_slug=str(uuid4()),
            pipeline_stage=self.stage_name,
            request_params=self._describe_request(**kwargs),
            config_snapshot=self.config.model_dump(mode="json"),
            started_at=self.clock(),
        )
        logger.info("Stage [%s] starting | run_slug=%s", self.stage_name, run.run_slug)

        try:
            rows = self._execute(run=run, **kwargs)
        except Exception as exc:
            run.status = "failed"
            run.error_message = str(exc)
            run.finished_at = self.clock()
            logger.error(
                "Stage [%s] FAILED: %s | run_slug=%s",
                self.stage_name, exc, run.run_slug,
            )
            self._persist_run(run)
            raise

        run.status = "success"
        run.rows_processed = rows
        run.finished_at = self.clock()
        logger.info(
            "Stage [%s] completed | rows=%d | run_slug=%s",
            self.stage_name, rows, run.run_slug,
        )
        self._persist_run(run)
        return run

    @abstractmethod
    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Stage-specific implementation.

        Args:
            run: The in-progress ``RunMetadata`` record (mutable).
            **kwargs: Stage-specific parameters.

        Returns:
            Number of items processed.
        """
        ...

    def _describe_request(self, **kwargs) -> dict:
        """Return the JSON-safe request description stored on the run record."""
        return {k: str(v) for k, v in kwargs.items() if v is not None}

    def _persist_run(self, run: RunMetadata) -> None:
        """Write or update the run record.

        A failure here is logged, not raised, so it never masks the stage's
        own error.
        """
        try:
            with self.connect() as conn:
                repo = SyncRunRepository(conn)
                if run.run_id is None:
                    run.run_id = repo.insert_run(run)
                else:
                    repo.update_run(run)
        except Exception as exc:
            logger.error(
                "Failed to persist RunMetadata for run_slug=%s: %s",
                run.run_slug, exc,
            )
