"""
Normalizer — raw external item payloads → canonical ``Item`` records.

``normalize()`` is a pure transform: it applies defaults, coerces numbers and
classifies stats, but never touches the store and never stamps
``last_synced_at`` (the reconciler does that).

Defaults:
  item_type → ``"unknown"``,  min_level → ``1``,  learnable → ``False``.
  An explicit ``learnable: false`` is kept as ``False``, not "absent".

Coercion:
  stat value        numeric as-is; else parsed; unparseable/NaN → ``0``
  profession level  int as-is; else parsed; unparseable or < 1  → ``1``

Stat classification (when the source gives no explicit ``type``) is a
case-insensitive substring match of the stat name, CORE vocabulary first,
then PRIMARY; otherwise ``general``.

Batch helpers:
  ``is_valid_raw_item()``           — object with a non-blank string ``name``
  ``extract_items_from_response()`` — bare list or ``{"items": [...]}``, invalid
                                      entries silently dropped
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Optional

from item_sync.errors import ItemValidationError
from item_sync.models.item import MAX_MIN_LEVEL, Item, ItemProfession, ItemStat, StatType
from item_sync.models.raw import RawItem, RawProfession, RawStat

logger = logging.getLogger(__name__)

CORE_STAT_TERMS: tuple[str, ...] = (
    "attack", "defense", "health", "mana", "stamina", "durability",
)
PRIMARY_STAT_TERMS: tuple[str, ...] = (
    "strength", "agility", "intelligence", "wisdom", "charisma",
)

DEFAULT_ITEM_TYPE = "unknown"
DEFAULT_MIN_LEVEL = 1
DEFAULT_PROFESSION_LEVEL = 1


# ── Item ──────────────────────────────────────────────────────────────────────

def normalize(raw: RawItem | Mapping[str, Any]) -> Item:
    """Convert one raw API item into a canonical ``Item``.

    Args:
        raw: A ``RawItem`` or the decoded JSON object it would be built from.

    Returns:
        An unsaved ``Item`` (``item_id`` and ``last_synced_at`` unset).

    Raises:
        ItemValidationError: If ``name`` is missing, not a string, or blank.
    """
    if not isinstance(raw, RawItem):
        if not isinstance(raw, Mapping):
            raise ItemValidationError(
                f"Raw item must be an object, got {type(raw).__name__}."
            )
        raw = RawItem.from_payload(raw)

    if not isinstance(raw.name, str):
        raise ItemValidationError(
            f"Raw item name must be a string, got {type(raw.name).__name__}."
        )
    if not raw.name.strip():
        raise ItemValidationError("Raw item name must not be blank.")

    return Item(
        name=raw.name,
        description=_optional_str(raw.description),
        item_type=_optional_str(raw.item_type) or DEFAULT_ITEM_TYPE,
        category=_optional_str(raw.category),
        sub_category=_optional_str(raw.sub_category),
        sub_type=_optional_str(raw.sub_type),
        min_level=_coerce_min_level(raw.min_level),
        learnable=_coerce_learnable(raw.learnable),
        stats=[normalize_stat(s) for s in raw.stats],
        professions=[normalize_profession(p) for p in raw.professions],
        external_id=_external_id(raw.id),
    )


# ── Stats ─────────────────────────────────────────────────────────────────────

def normalize_stat(raw: RawStat) -> ItemStat:
    name = "" if raw.name is None else str(raw.name)
    return ItemStat(
        name=name,
        value=coerce_stat_value(raw.value),
        type=classify_stat_type(raw.type, name),
    )


def coerce_stat_value(value: Any) -> float:
    """Return ``value`` as a finite float, or ``0.0`` if it cannot be one."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def classify_stat_type(explicit_type: Any, name: Optional[str]) -> StatType:
    """Classify a stat from its explicit type, falling back to its name.

    Any non-empty explicit type wins: ``core``/``primary`` (any case) map
    directly, every other value maps to ``general`` without consulting the
    name.
    """
    if explicit_type:
        lowered = str(explicit_type).strip().lower()
        if lowered == StatType.CORE:
            return StatType.CORE
        if lowered == StatType.PRIMARY:
            return StatType.PRIMARY
        return StatType.GENERAL

    if name:
        lowered_name = name.lower()
        if any(term in lowered_name for term in CORE_STAT_TERMS):
            return StatType.CORE
        if any(term in lowered_name for term in PRIMARY_STAT_TERMS):
            return StatType.PRIMARY

    return StatType.GENERAL


# ── Professions ───────────────────────────────────────────────────────────────

def normalize_profession(raw: RawProfession) -> ItemProfession:
    return ItemProfession(
        name="" if raw.name is None else str(raw.name),
        level=coerce_profession_level(raw.level),
    )


def coerce_profession_level(value: Any) -> int:
    """Return ``value`` as an integer >= 1, or ``1`` if it cannot be one.

    Fractional inputs are truncated (``"3.7"`` → ``3``).
    """
    level: Optional[int] = None
    if isinstance(value, bool):
        level = None
    elif isinstance(value, int):
        level = value
    elif isinstance(value, float):
        level = int(value) if math.isfinite(value) else None
    elif isinstance(value, str):
        text = value.strip()
        try:
            level = int(text)
        except ValueError:
            try:
                parsed = float(text)
            except ValueError:
                parsed = math.nan
            level = int(parsed) if math.isfinite(parsed) else None

    if level is None or level < 1:
        return DEFAULT_PROFESSION_LEVEL
    return level


# ── Batch extraction ──────────────────────────────────────────────────────────

def is_valid_raw_item(candidate: Any) -> bool:
    """Return ``True`` if ``candidate`` is an object with a non-blank string name."""
    return (
        isinstance(candidate, Mapping)
        and isinstance(candidate.get("name"), str)
        and candidate["name"].strip() != ""
    )


def extract_items_from_response(payload: Any) -> list[dict[str, Any]]:
    """Pull raw item objects out of an API response body.

    Accepts a bare list of items or an envelope object with an ``items`` list.
    Entries failing ``is_valid_raw_item()`` are dropped silently; any other
    payload shape yields an empty list.
    """
    entries = _response_entries(payload)
    if entries is None:
        logger.debug("Unrecognized response shape: %s", type(payload).__name__)
        return []

    valid = [dict(entry) for entry in entries if is_valid_raw_item(entry)]
    dropped = len(entries) - len(valid)
    if dropped:
        logger.debug("Dropped %d malformed item entr%s from response",
                     dropped, "y" if dropped == 1 else "ies")
    return valid


def validate_api_response(payload: Any) -> bool:
    """Return ``True`` only if the payload has a known shape and every entry is valid."""
    entries = _response_entries(payload)
    if entries is None:
        return False
    return all(is_valid_raw_item(entry) for entry in entries)


def _response_entries(payload: Any) -> Optional[list[Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping) and isinstance(payload.get("items"), list):
        return payload["items"]
    return None


# ── Sample data ───────────────────────────────────────────────────────────────

SAMPLE_RAW_ITEM: dict[str, Any] = {
    "id": "sword_power_001",
    "name": "Sword of Power",
    "description": "A mighty sword with magical properties",
    "itemType": "weapon",
    "category": "combat",
    "subCategory": "sword",
    "subType": "magical",
    "minLevel": 10,
    "learnable": False,
    "stats": [
        {"name": "attack_power", "value": 150, "type": "core"},
        {"name": "durability", "value": 100, "type": "core"},
        {"name": "magic_resistance", "value": 25, "type": "primary"},
        {"name": "critical_chance", "value": 15, "type": "general"},
    ],
    "professions": [
        {"name": "warrior", "level": 5},
        {"name": "paladin", "level": 3},
    ],
}


def sample_item() -> Item:
    """Return the normalized sample record used for smoke tests and seeding."""
    return normalize(SAMPLE_RAW_ITEM)


# ── Private helpers ───────────────────────────────────────────────────────────

def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _coerce_min_level(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return DEFAULT_MIN_LEVEL
    try:
        level = int(float(value)) if isinstance(value, str) else int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_MIN_LEVEL
    return level if 1 <= level <= MAX_MIN_LEVEL else DEFAULT_MIN_LEVEL


def _coerce_learnable(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value) if value is not None else False


def _external_id(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None
