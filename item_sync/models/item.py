"""
Canonical item models.

``Item`` is the normalized record stored in the ``items`` table. Stats and
professions are embedded, ordered lists (stored as JSON columns), so an item is
always read and written as a single document.

``ItemUpdate`` carries a partial patch for the single-item update path; only
fields that are explicitly set are written.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

# Largest value an SQLite INTEGER column can hold.
MAX_MIN_LEVEL = 2**63 - 1


class StatType(StrEnum):
    """Classification bucket for an item stat."""

    CORE = "core"
    """Fundamental combat/survival numbers (attack, health, durability...)."""

    PRIMARY = "primary"
    """Character attributes (strength, agility, intelligence...)."""

    GENERAL = "general"
    """Everything else (critical chance, resistances without explicit type...)."""


class ItemStat(BaseModel):
    """A single named stat on an item.

    Attributes:
        name: Stat name as supplied by the source, e.g. ``"attack_power"``.
        value: Numeric value; never NaN.
        type: Classification bucket.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    value: float
    type: StatType

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: float) -> float:
        if math.isnan(v):
            raise ValueError("Stat value must not be NaN.")
        return v


class ItemProfession(BaseModel):
    """A profession able to use (or craft) an item, with its level requirement."""

    model_config = ConfigDict(frozen=True)

    name: str
    level: int

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Profession level must be >= 1, got {v}.")
        return v


class Item(BaseModel):
    """A game item in canonical form.

    Attributes:
        item_id: Store-assigned primary key; ``None`` before insertion.
        name: Display name; never blank.
        description: Optional free-form description.
        item_type: Item type; ``"unknown"`` when the source omits it.
        category: Top-level category, e.g. ``"combat"``.
        sub_category: Second-level category, e.g. ``"sword"``.
        sub_type: Further refinement, e.g. ``"magical"``.
        min_level: Minimum level required to use the item (>= 1).
        learnable: ``True`` if the item can be learned (recipes, patterns...).
        stats: Ordered embedded stats.
        professions: Ordered embedded profession requirements.
        external_id: Identifier in the source API's id space; unique when set.
        last_synced_at: UTC time of the last insert/update through sync.
        created_at: UTC time the store created the record.
    """

    model_config = ConfigDict(frozen=True)

    item_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    item_type: str = "unknown"
    category: Optional[str] = None
    sub_category: Optional[str] = None
    sub_type: Optional[str] = None
    min_level: int = 1
    learnable: bool = False
    stats: list[ItemStat] = []
    professions: list[ItemProfession] = []
    external_id: Optional[str] = None
    last_synced_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Item name must be a non-empty string.")
        return v

    @field_validator("min_level")
    @classmethod
    def validate_min_level(cls, v: int) -> int:
        if not 1 <= v <= MAX_MIN_LEVEL:
            raise ValueError(f"min_level must be between 1 and {MAX_MIN_LEVEL}, got {v}.")
        return v


# Fields that sync is allowed to overwrite on an existing record.
MUTABLE_ITEM_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "item_type",
    "category",
    "sub_category",
    "sub_type",
    "min_level",
    "learnable",
    "stats",
    "professions",
    "external_id",
    "last_synced_at",
)


class ItemUpdate(BaseModel):
    """Partial update for an existing item.

    Use ``model_dump(exclude_unset=True)`` to get only the fields the caller
    supplied; unset fields are left untouched in the store.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    description: Optional[str] = None
    item_type: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    sub_type: Optional[str] = None
    min_level: Optional[int] = None
    learnable: Optional[bool] = None
    stats: Optional[list[ItemStat]] = None
    professions: Optional[list[ItemProfession]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Item name must be a non-empty string.")
        return v

    @field_validator("min_level")
    @classmethod
    def validate_min_level(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 1 <= v <= MAX_MIN_LEVEL:
            raise ValueError(f"min_level must be between 1 and {MAX_MIN_LEVEL}, got {v}.")
        return v
