"""
Query and request-parameter models.

``Page`` is the pagination window shared by all item queries.
``ItemFilter`` / ``StatFilter`` / ``ProfessionFilter`` are the three query
shapes served by ``ItemQueryEngine``. Every filter field is optional and an
unset field never constrains results.

``FetchParams`` is the parameter set accepted by the external item API. Field
names are snake_case; ``to_api_params()`` renders the API's own key spelling.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from item_sync.models.item import StatType

DEFAULT_LIMIT = 50


class Page(BaseModel):
    """Pagination window ``[offset, offset + limit)``."""

    model_config = ConfigDict(frozen=True)

    offset: int = 0
    limit: int = DEFAULT_LIMIT

    @field_validator("offset")
    @classmethod
    def validate_offset(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"offset must be >= 0, got {v}.")
        return v

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"limit must be > 0, got {v}.")
        return v


class ItemFilter(BaseModel):
    """Flat attribute filter. All set fields are ANDed."""

    model_config = ConfigDict(frozen=True)

    category: Optional[str] = None
    item_type: Optional[str] = None
    learnable: Optional[bool] = None
    min_level: Optional[int] = None
    sub_category: Optional[str] = None
    sub_type: Optional[str] = None


class StatFilter(BaseModel):
    """Embedded-stat filter.

    ``stat_name``, ``stat_type`` and ``min_value`` must all hold for the *same*
    stat entry. ``category`` / ``item_type`` constrain the item itself.
    """

    model_config = ConfigDict(frozen=True)

    stat_name: Optional[str] = None
    stat_type: Optional[StatType] = None
    min_value: Optional[float] = None
    category: Optional[str] = None
    item_type: Optional[str] = None


class ProfessionFilter(BaseModel):
    """Embedded-profession filter.

    ``profession`` and ``max_level`` must both hold for the *same* profession
    entry. ``category`` / ``item_type`` constrain the item itself.
    """

    model_config = ConfigDict(frozen=True)

    profession: Optional[str] = None
    max_level: Optional[int] = None
    category: Optional[str] = None
    item_type: Optional[str] = None


class FetchParams(BaseModel):
    """Query parameters for the external item API's list endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    category: Optional[str] = None
    core_stats: Optional[str] = Field(default=None, alias="coreStats")
    item_type: Optional[str] = Field(default=None, alias="itemType")
    learnable: Optional[bool] = None
    min_level: Optional[int] = Field(default=None, alias="minLevel")
    page: Optional[int] = None
    per_page: Optional[int] = None
    primary_stats: Optional[str] = Field(default=None, alias="primaryStats")
    profession: Optional[str] = None
    stats: Optional[str] = None
    sub_category: Optional[str] = Field(default=None, alias="subCategory")
    sub_type: Optional[str] = Field(default=None, alias="subType")

    def to_api_params(self) -> dict[str, Any]:
        """Return set parameters keyed by the API's spelling.

        ``None`` and empty-string values are omitted.
        """
        dumped = self.model_dump(by_alias=True, exclude_none=True)
        return {k: v for k, v in dumped.items() if v != ""}
