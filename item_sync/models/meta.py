"""
Sync run metadata — the audit log of every pipeline stage execution.

Each run records a ``config_snapshot`` (the full ``AppConfig`` as a dict) and,
for fetch runs, the request parameters used, so any sync can be replayed.

``RunMetadata`` is the only model in the system that is NOT frozen; its
``status``, ``rows_processed``, ``error_message`` and ``finished_at`` fields are
updated as the stage executes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

VALID_PIPELINE_STAGES = frozenset({"fetch", "import"})
VALID_RUN_STATUSES = frozenset({"started", "success", "failed"})


class RunMetadata(BaseModel):
    """Pipeline execution audit record.

    Attributes:
        run_id: Auto-assigned DB PK; ``None`` before insertion.
        run_slug: UUID4 string uniquely identifying this run.
        pipeline_stage: Which stage produced this run record.
        status: Current execution status.
        request_params: Parameters the stage was invoked with (API params,
            source file path...).
        from_cache: ``True`` when a fetch run was served by the response cache.
        config_snapshot: Full ``AppConfig.model_dump()`` at run start time.
        rows_processed: Number of items reconciled.
        error_message: Error description if ``status == "failed"``.
        started_at: UTC datetime when the run began.
        finished_at: UTC datetime when the run completed or failed.
    """

    model_config = ConfigDict(frozen=False)

    run_id: Optional[int] = None
    run_slug: str
    pipeline_stage: str
    status: str = "started"
    request_params: dict[str, Any] = {}
    from_cache: bool = False
    config_snapshot: dict[str, Any] = {}
    rows_processed: int = 0
    error_message: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None

    @field_validator("pipeline_stage")
    @classmethod
    def validate_pipeline_stage(cls, v: str) -> str:
        if v not in VALID_PIPELINE_STAGES:
            raise ValueError(
                f"Unknown pipeline_stage '{v}'. Must be one of {sorted(VALID_PIPELINE_STAGES)}."
            )
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VALID_RUN_STATUSES:
            raise ValueError(
                f"Unknown status '{v}'. Must be one of {sorted(VALID_RUN_STATUSES)}."
            )
        return v
