"""
Raw item payloads as delivered by the external item API.

The API is loosely typed: numbers arrive as strings, optional fields are
missing, and extra vendor fields come and go. ``RawItem.from_payload()`` lifts
one JSON object into an explicit structure holding only what the normalizer
reads. Values are kept *uncoerced*: coercion and defaulting belong to
``item_sync.sync.normalizer``. Unrecognized keys are retained in ``extra``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

_RAW_ITEM_KEYS = frozenset({
    "id", "name", "description", "itemType", "category", "subCategory",
    "subType", "minLevel", "learnable", "stats", "professions",
})


@dataclass(frozen=True)
class RawStat:
    """One entry from a raw item's ``stats`` list."""

    name: Any = None
    value: Any = None
    type: Any = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "RawStat":
        return cls(name=data.get("name"), value=data.get("value"), type=data.get("type"))


@dataclass(frozen=True)
class RawProfession:
    """One entry from a raw item's ``professions`` list."""

    name: Any = None
    level: Any = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "RawProfession":
        return cls(name=data.get("name"), level=data.get("level"))


@dataclass(frozen=True)
class RawItem:
    """A single item exactly as the external API described it.

    Field names follow the API's camelCase keys mapped onto snake_case
    attributes. ``name`` is left as ``Any`` on purpose: validating it is the
    normalizer's job, and a non-string name must surface as an error there.
    """

    name: Any = None
    id: Any = None
    description: Any = None
    item_type: Any = None
    category: Any = None
    sub_category: Any = None
    sub_type: Any = None
    min_level: Any = None
    learnable: Any = None
    stats: tuple[RawStat, ...] = ()
    professions: tuple[RawProfession, ...] = ()
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "RawItem":
        """Build a ``RawItem`` from one decoded JSON object.

        Non-mapping entries inside ``stats`` / ``professions`` are skipped.
        """
        stats = tuple(
            RawStat.from_payload(s) for s in _as_list(data.get("stats"))
            if isinstance(s, Mapping)
        )
        professions = tuple(
            RawProfession.from_payload(p) for p in _as_list(data.get("professions"))
            if isinstance(p, Mapping)
        )
        return cls(
            name=data.get("name"),
            id=data.get("id"),
            description=data.get("description"),
            item_type=data.get("itemType"),
            category=data.get("category"),
            sub_category=data.get("subCategory"),
            sub_type=data.get("subType"),
            min_level=data.get("minLevel"),
            learnable=data.get("learnable"),
            stats=stats,
            professions=professions,
            extra={k: v for k, v in data.items() if k not in _RAW_ITEM_KEYS},
        )


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []
